"""
Shared option handling for CLI commands.
"""

from pathlib import Path

import typer
from rich.console import Console

from shipflow.config.loader import Config, load_config
from shipflow.exceptions import ConfigurationError
from shipflow.observability import setup_structured_logging
from shipflow.utils.logging import setup_logging, setup_logging_from_config

console = Console(stderr=True)


def load_cli_config(
    config_path: Path | None,
    env: str | None,
    *,
    verbose: bool = False,
    json_logs: bool = False,
) -> Config:
    """Load configuration and set up logging; exits with code 2 on a bad config."""
    try:
        config = load_config(config_path, env=env)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e.message}")
        raise typer.Exit(2) from e

    level = "DEBUG" if verbose else config.get("logging.level", "INFO")
    if json_logs:
        setup_structured_logging(level=level)
    elif verbose:
        setup_logging(level=level)
    else:
        setup_logging_from_config(config.data)
    return config
