"""Run command: execute a flow locally and print what it sends."""

import asyncio
import importlib
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from convoflow.cli.options import apply_flow_log_level
from convoflow.config.loader import ConfigLoader
from convoflow.core.errors import ConvoflowError
from convoflow.dialog.flow_dialog import FlowDialog
from convoflow.handlers.registry import HandlerRegistry
from convoflow.session.memory import MemorySession

console = Console()


def _load_handlers(module: str | None) -> HandlerRegistry | None:
    if module is None:
        return None
    handlers = getattr(importlib.import_module(module), "handlers", None)
    if not isinstance(handlers, HandlerRegistry):
        raise typer.BadParameter(f"Module {module} has no 'handlers' HandlerRegistry")
    return handlers


def _parse_vars(assignments: list[str]) -> dict[str, str]:
    result = {}
    for assignment in assignments:
        name, sep, value = assignment.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expecting NAME=VALUE, got {assignment!r}")
        result[name] = value
    return result


def run(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Flow file, or a directory containing flows.yaml"),
    flow: str = typer.Option("onStart", "--flow", "-f", help="Flow to run"),
    module: str | None = typer.Option(
        None, "--module", "-m", help="Python module exposing a 'handlers' HandlerRegistry"
    ),
    variables: list[str] = typer.Option([], "--var", help="Session variable NAME=VALUE"),
) -> None:
    """Run a flow once and show the resulting session effects."""
    try:
        config = ConfigLoader.load(path)
        apply_flow_log_level(ctx, config.settings)
        dialog = FlowDialog.from_config(config, handlers=_load_handlers(module))
        session = MemorySession(current_frame={"dialog": dialog.name})
        session.set(_parse_vars(variables))
        asyncio.run(dialog.start_flow(session, flow))
    except (ConvoflowError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    table = Table(title=f"{dialog.name}:{flow}")
    table.add_column("Effect")
    table.add_column("Value")
    for message in session.sent:
        table.add_row("send", str(message))
    for dialog_name, tag, args in session.started:
        table.add_row("start", f"{dialog_name} tag={tag} args={args}")
    for result in session.finished:
        table.add_row("finish", repr(result))
    console.print(table)
    console.print(f"locals: {session.locals}")
    console.print(f"globals: {session.globals}")
