"""
Helpers shared by CLI commands.
"""

from pathlib import Path

import typer
from rich.console import Console

from interchange.config import ExchangeSettings, load_config
from interchange.exceptions import ConfigurationError
from interchange.utils.logging import setup_logging_from_config

console = Console()


def load_settings(
    project_dir: Path,
    env: str | None,
    config_file: Path | None,
    verbose: bool = False,
) -> ExchangeSettings:
    """Load config, set up logging, and build settings; exit 1 on configuration errors."""
    try:
        config = load_config(project_dir, env=env, config_file=config_file)
        setup_logging_from_config(config.data, project_dir=project_dir, verbose=verbose)
        return ExchangeSettings.from_config(config, project_dir=project_dir)
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1) from e
