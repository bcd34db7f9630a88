"""
interchange run - Execute one exchange run.
"""

import json
from pathlib import Path

import typer
from rich.table import Table

from interchange.cli.common import console, load_settings
from interchange.coordinator import RunCoordinator, RunMode, RunReport
from interchange.records import Exported, NothingToDo

app = typer.Typer(name="run", help="Run the outbound export and/or inbound import", invoke_without_command=True)


@app.callback()
def run(
    ctx: typer.Context,
    mode: RunMode = typer.Argument(RunMode.ALL, help="Direction to run: outbound, inbound or all"),
    env: str | None = typer.Option(None, help="Environment overlay (config.<env>.yaml)"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Config file (default: <project-dir>/config.yaml)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    as_json: bool = typer.Option(False, "--json", help="Print the run report as JSON"),
) -> None:
    """
    Execute one run. Exits with status 1 if any step or file failed.
    """
    if ctx.invoked_subcommand is not None:
        return

    settings = load_settings(project_dir, env, config_file, verbose)
    with RunCoordinator(settings) as coordinator:
        report = coordinator.run(mode)

    if as_json:
        typer.echo(json.dumps(report.as_dict(), indent=2))
    else:
        _print_report(report)

    if not report.ok:
        raise typer.Exit(1)


def _print_report(report: RunReport) -> None:
    table = Table(title=f"Run {report.context.run_id} ({report.context.stamp})")
    table.add_column("Step", style="cyan")
    table.add_column("Result")

    if report.recovery.archived or report.recovery.discarded:
        table.add_row(
            "recovery",
            f"archived {len(report.recovery.archived)}, discarded {len(report.recovery.discarded)}",
        )

    if isinstance(report.outbound, NothingToDo):
        table.add_row("outbound", "[dim]nothing to export[/dim]")
    elif isinstance(report.outbound, Exported):
        batch = report.outbound.batch
        table.add_row("outbound", f"[green]{batch.file_name}[/green] ({batch.record_count} records)")

    if report.inbound is not None:
        for outcome in report.inbound.imported:
            note = "" if outcome.relocated else " [yellow](remote move failed)[/yellow]"
            table.add_row("inbound", f"[green]{outcome.name}[/green] ({outcome.record_count} records){note}")
        for outcome in report.inbound.failed:
            table.add_row("inbound", f"[red]{outcome.name}[/red]: {outcome.error}")
        if report.inbound.skipped:
            table.add_row("inbound", f"[dim]skipped {len(report.inbound.skipped)} already imported[/dim]")

    for error in report.errors:
        table.add_row("error", f"[red]{error}[/red]")

    console.print(table)
