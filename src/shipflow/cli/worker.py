"""
shipflow worker - Build worker.

Consumes job ids from the build queue, builds each project and publishes the
build output. Stops on SIGINT/SIGTERM once the current job is finished.
"""

import asyncio
from pathlib import Path

import typer

from shipflow.cli.common import load_cli_config
from shipflow.service.server import run_worker

app = typer.Typer(name="worker", help="Run the build worker", invoke_without_command=True)


@app.callback()
def worker(
    ctx: typer.Context,
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    record_failures: bool | None = typer.Option(
        None, "--record-failures/--no-record-failures", help="Write status 'failed' for failed jobs"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
) -> None:
    """
    Run the build worker loop.
    """
    if ctx.invoked_subcommand is None:
        config = load_cli_config(config_path, env, verbose=verbose, json_logs=json_logs)
        overrides = {}
        if record_failures is not None:
            overrides["record_failures"] = record_failures
        asyncio.run(run_worker(config, **overrides))
