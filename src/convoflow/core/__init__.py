"""Core types and errors for convoflow."""

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
from convoflow.core.types import (
    VALUE_KEY,
    FlowPath,
    Jump,
    Options,
    Signal,
    StepResult,
    Vars,
    make_handler_vars,
)

__all__ = [
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
    "VALUE_KEY",
    "FlowPath",
    "Jump",
    "Options",
    "Signal",
    "StepResult",
    "Vars",
    "make_handler_vars",
]
