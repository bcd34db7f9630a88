"""
interchange status / init-db - Inspect and prepare the exchange database.
"""

from pathlib import Path

import typer
from rich.table import Table

from interchange.cli.common import console, load_settings
from interchange.exceptions import InterchangeError
from interchange.store import DatabaseConnection, ExchangeStore

app = typer.Typer(name="status", help="Show outbound and inbound ledger counts", invoke_without_command=True)
init_app = typer.Typer(name="init-db", help="Create the exchange tables", invoke_without_command=True)


@app.callback()
def status(
    ctx: typer.Context,
    env: str | None = typer.Option(None, help="Environment overlay (config.<env>.yaml)"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
) -> None:
    """
    Show pending/sent record counts and the number of imported files.
    """
    if ctx.invoked_subcommand is not None:
        return

    settings = load_settings(project_dir, env, config_file)
    try:
        with DatabaseConnection(settings.database) as database:
            store = ExchangeStore(database.connection)
            store.initialize_schema()
            counts = store.status_counts()
            imported = store.imported_file_count()
    except InterchangeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    table = Table(title="Exchange status")
    table.add_column("Ledger", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("outbound pending", str(counts.get("PENDING", 0)))
    table.add_row("outbound sent", str(counts.get("SENT", 0)))
    table.add_row("inbound files imported", str(imported))
    console.print(table)


@init_app.callback()
def init_db(
    ctx: typer.Context,
    env: str | None = typer.Option(None, help="Environment overlay (config.<env>.yaml)"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
) -> None:
    """
    Create the exchange tables if they don't exist.
    """
    if ctx.invoked_subcommand is not None:
        return

    settings = load_settings(project_dir, env, config_file)
    try:
        with DatabaseConnection(settings.database) as database:
            ExchangeStore(database.connection).initialize_schema()
    except InterchangeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    console.print(f"[green]Exchange tables ready in {settings.database.path}[/green]")
