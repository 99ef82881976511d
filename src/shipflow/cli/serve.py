"""
shipflow serve - Submission and status API.

Runs the HTTP service with:
- POST /upload - Clone, stage and enqueue a repository
- GET /status?id=<jobId> - Job status
- GET /health - Health check
"""

from pathlib import Path

import typer

from shipflow.cli.common import load_cli_config
from shipflow.service.server import run_service

app = typer.Typer(name="serve", help="Run the submission/status API", invoke_without_command=True)


@app.callback()
def serve(
    ctx: typer.Context,
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    host: str | None = typer.Option(None, help="Host to bind to (default: service.host)"),
    port: int | None = typer.Option(None, help="Port to bind to (default: service.port)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
) -> None:
    """
    Run the submission/status API as a long-running service.
    """
    if ctx.invoked_subcommand is None:
        config = load_cli_config(config_path, env, verbose=verbose, json_logs=json_logs)
        run_service(config, host=host, port=port)
