"""
shipflow content - Serve published sites from object storage.
"""

from pathlib import Path

import typer

from shipflow.cli.common import load_cli_config
from shipflow.service.content import run_content_server

app = typer.Typer(name="content", help="Serve published sites", invoke_without_command=True)


@app.callback()
def content(
    ctx: typer.Context,
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    host: str | None = typer.Option(None, help="Host to bind to (default: content.host)"),
    port: int | None = typer.Option(None, help="Port to bind to (default: content.port)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """
    Run the content server. The first label of the request host selects the site.
    """
    if ctx.invoked_subcommand is None:
        config = load_cli_config(config_path, env, verbose=verbose)
        run_content_server(config, host=host, port=port)
