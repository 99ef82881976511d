"""
Main CLI entry point.
"""

import typer

from shipflow import __version__
from shipflow.cli import content, jobs, serve, worker


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"shipflow version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="shipflow",
    help="Shipflow - clone, build and publish static sites through object storage",
    add_completion=True,
)

# Register subcommands
app.add_typer(serve.app, name="serve")
app.add_typer(worker.app, name="worker")
app.add_typer(content.app, name="content")
app.command(name="submit")(jobs.submit)
app.command(name="status")(jobs.status)


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        help="Show version and exit.",
    ),
):
    """
    Shipflow - clone, build and publish static sites through object storage.

    Run 'shipflow <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        if not version:
            typer.echo(ctx.get_help())
            raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
