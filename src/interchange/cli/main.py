"""
Main CLI entry point.
"""

import typer

from interchange import __version__
from interchange.cli import run, status


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"interchange version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="interchange",
    help="Interchange - flat-file record exchange with a partner system over FTP",
    add_completion=False,
)

app.add_typer(run.app, name="run")
app.add_typer(status.app, name="status")
app.add_typer(status.init_app, name="init-db")


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    Interchange - flat-file record exchange with a partner system over FTP.

    Run 'interchange <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
