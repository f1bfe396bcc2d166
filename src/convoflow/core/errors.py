"""Core errors."""

from typing import Any


class ConvoflowError(Exception):
    """Base class for all convoflow errors."""

    pass


class ConfigError(ConvoflowError):
    """Raised when configuration is invalid."""


class CompilationError(ConvoflowError):
    """Raised while compiling a flow tree into handlers.

    Compilation errors are author errors: they surface when the dialog is
    constructed, before any request is processed.
    """

    pass


class UnrecognizedCommandError(CompilationError):
    """Raised when a command's type is neither given nor inferable."""

    def __init__(self, command: Any, reason: str | None = None):
        self.command = command
        message = f"Unrecognized command: {command!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class InvalidFlowPathError(CompilationError):
    """Raised when a flow path id or flow key is malformed."""

    pass


class DuplicateFlowKeyError(CompilationError):
    """Raised when two handlers are registered under the same flow key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Attempt to create handler with duplicate flow key: {key}")


class LoopContextError(CompilationError):
    """Raised when break/continue is compiled outside of a loop or switch."""

    def __init__(self, signal: str, path: Any):
        self.signal = signal
        self.path = path
        super().__init__(f"'{signal}' used outside of a loop at {path!r}")


class InvalidStartError(CompilationError):
    """Raised when a start command's dialog parameter has an invalid shape."""

    pass


class InvalidActionError(CompilationError):
    """Raised when an action cannot be normalized or compiled."""

    pass


class UndefinedFlowHandlerError(ConvoflowError):
    """Raised when a flow key has no registered handler."""

    def __init__(self, key: str, suggestion: str | None = None):
        self.key = key
        self.suggestion = suggestion
        message = f"Attempt to access undefined flow handler {key}"
        if suggestion:
            message = f"{message}. Did you mean {suggestion}?"
        super().__init__(message)


class UndefinedHandlerError(ConvoflowError):
    """Raised when an exec parameter names an unregistered handler."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Undefined handler: {name}")


class SessionError(ConvoflowError):
    """Raised when session operations fail."""

    pass


class SessionLockedError(SessionError):
    """Raised when a session is mutated after start() or finish()."""

    pass


class FlowInvariantError(ConvoflowError):
    """Raised when a compiled flow reaches a state the compiler should prevent."""

    pass
