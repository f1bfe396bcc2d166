"""Validate command: compile a flow file and report what it registers."""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from convoflow.cli.options import apply_flow_log_level
from convoflow.config.loader import ConfigLoader
from convoflow.core.errors import ConvoflowError
from convoflow.dialog.flow_dialog import FlowDialog

console = Console()


def validate(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Flow file, or a directory containing flows.yaml"),
) -> None:
    """Compile every flow of a flow file."""
    try:
        config = ConfigLoader.load(path)
        apply_flow_log_level(ctx, config.settings)
        dialog = FlowDialog.from_config(config)
    except (ConvoflowError, FileNotFoundError) as e:
        console.print(f"[red]Invalid flow file {path}: {e}[/]")
        raise typer.Exit(1)

    table = Table(title=f"Dialog {dialog.name}")
    table.add_column("Flow key")
    table.add_column("Entry", justify="center")

    entry_keys = {dialog.flow_key(flow_path) for flow_path in dialog.flows.values()}
    for key in dialog.registry.keys():
        table.add_row(key, "*" if key in entry_keys else "")
    console.print(table)

    handlers = Table(title="Event handlers")
    handlers.add_column("Kind")
    handlers.add_column("Key")
    for dialog_name, tag in dialog.result_handlers:
        handlers.add_row("result", f"{dialog_name} / {tag}")
    for key in dialog.postback_handlers:
        handlers.add_row("postback", key)
    for key in dialog.payload_handlers:
        handlers.add_row("payload", key)
    console.print(handlers)

    console.print(f"[green]OK[/] {len(dialog.registry)} flow handlers compiled")
