"""
shipflow submit / shipflow status - One-off job commands.
"""

import asyncio
from pathlib import Path

import typer
from rich.console import Console

from shipflow.cli.common import load_cli_config
from shipflow.config.loader import Config
from shipflow.connections import create_redis, create_storage
from shipflow.exceptions import QueueError, ShipflowError
from shipflow.pipeline.submission import JobSubmitter, SubmissionResult

console = Console()


async def _submit(config: Config, repository_url: str) -> SubmissionResult:
    storage = create_storage(config.storage)
    async with storage, create_redis(config.queue) as redis:
        submitter = JobSubmitter.from_config(config, storage, redis.queue)
        return await submitter.submit(repository_url)


async def _status(config: Config, job_id: str) -> str | None:
    async with create_redis(config.queue) as redis:
        return await redis.status.get(job_id)


def submit(
    repository_url: str = typer.Argument(..., help="Git URL of the repository to build"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """
    Clone a repository, stage it in object storage and queue it for building.
    """
    config = load_cli_config(config_path, env, verbose=verbose)
    try:
        result = asyncio.run(_submit(config, repository_url))
    except ShipflowError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        raise typer.Exit(1) from e

    console.print(f"[green]Queued[/green] job [bold]{result.job_id}[/bold] in {result.processing_time_ms}ms")
    typer.echo(result.job_id)


def status(
    job_id: str = typer.Argument(..., help="Job id returned by submit"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
) -> None:
    """
    Show the recorded status of a job.
    """
    config = load_cli_config(config_path, env)
    try:
        label = asyncio.run(_status(config, job_id))
    except QueueError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        raise typer.Exit(1) from e

    if label is None:
        console.print(f"[yellow]No status recorded for {job_id}[/yellow]")
        raise typer.Exit(1)
    typer.echo(label)
