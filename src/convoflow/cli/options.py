"""Options shared by CLI commands"""

import typer

from convoflow.config.models import FlowSettings
from convoflow.observability.logging import setup_logging


def apply_flow_log_level(ctx: typer.Context, settings: FlowSettings) -> None:
    """Configure logging from a flow file's settings unless --log-level was given."""
    if (ctx.obj or {}).get("log_level") is None:
        setup_logging(settings.log_level)
