"""convoflow - compile declarative conversation flows into dialog handlers.

Flows are written as nested lists of commands (messages, branches, loops,
sub-dialog starts) in Python or YAML. A FlowDialog compiles them into
handlers addressed by flow keys, so a conversation can be resumed by any
process from nothing but the key carried by the next event.

Quick start:
    from convoflow import FlowDialog, MemorySession

    dialog = FlowDialog("Greeter", flows={"onStart": ["Hello {{Name}}!"]})
    session = MemorySession(globals={"Name": "Ada"})
    await dialog.start_flow(session, "onStart")
"""

from convoflow.__version__ import __version__
from convoflow.app import DialogApp, Notification
from convoflow.config import ConfigLoader, FlowFileConfig, FlowSettings
from convoflow.core.errors import (
    CompilationError,
    ConfigError,
    ConvoflowError,
    DuplicateFlowKeyError,
    FlowInvariantError,
    InvalidActionError,
    InvalidFlowPathError,
    InvalidStartError,
    LoopContextError,
    SessionError,
    SessionLockedError,
    UndefinedFlowHandlerError,
    UndefinedHandlerError,
    UnrecognizedCommandError,
)
from convoflow.core.types import Options, Signal, make_handler_vars
from convoflow.dialog import Dialog, FlowDialog
from convoflow.flow import (
    append_flow_path_id,
    flow_key,
    normalize_flow,
    normalize_flow_command,
    var,
)
from convoflow.handlers import HandlerRegistry
from convoflow.session import MemorySession, Session

__all__ = [
    "__version__",
    # Dialogs and runtime
    "Dialog",
    "DialogApp",
    "FlowDialog",
    "HandlerRegistry",
    "MemorySession",
    "Notification",
    "Session",
    # Flow authoring
    "Options",
    "Signal",
    "append_flow_path_id",
    "flow_key",
    "make_handler_vars",
    "normalize_flow",
    "normalize_flow_command",
    "var",
    # Configuration
    "ConfigLoader",
    "FlowFileConfig",
    "FlowSettings",
    # Errors
    "CompilationError",
    "ConfigError",
    "ConvoflowError",
    "DuplicateFlowKeyError",
    "FlowInvariantError",
    "InvalidActionError",
    "InvalidFlowPathError",
    "InvalidStartError",
    "LoopContextError",
    "SessionError",
    "SessionLockedError",
    "UndefinedFlowHandlerError",
    "UndefinedHandlerError",
    "UnrecognizedCommandError",
]
