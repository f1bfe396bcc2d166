"""Main CLI entry point for convoflow"""

import typer

from convoflow.__version__ import __version__
from convoflow.cli.commands import run as run_module
from convoflow.cli.commands import validate as validate_module
from convoflow.observability.logging import setup_logging

app = typer.Typer(
    name="convoflow",
    help="convoflow - compile and run conversational flows",
    add_completion=False,
)

# Register subcommands
app.command(name="validate", help="Compile a flow file and list its handlers")(
    validate_module.validate
)
app.command(name="run", help="Run a flow of a flow file against an in-memory session")(
    run_module.run
)


def version_callback(value: bool) -> None:
    """Print version and exit"""
    if value:
        typer.echo(f"convoflow version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level (DEBUG, INFO, WARNING, ERROR); defaults to the flow file setting",
    ),
) -> None:
    """convoflow - compile and run conversational flows"""
    ctx.obj = {"log_level": log_level}
    setup_logging((log_level or "WARNING").upper())


def cli() -> None:
    """Entry point for CLI"""
    app()


if __name__ == "__main__":
    cli()
