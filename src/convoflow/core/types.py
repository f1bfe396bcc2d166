"""Core type definitions shared by the compiler and the runtime."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from convoflow.session.session import Session

FlowId = str | int
FlowPath = tuple[FlowId, ...]
Vars = Mapping[str, Any]

# Reserved variable holding the value a continuation was resumed with
VALUE_KEY = "value"


class Signal(Enum):
    """Loop control markers returned by break/continue steps.

    A step returning a signal stops the current sequence; the sequence runner
    redirects to the matching target in its Options.
    """

    BREAK = "break"
    CONTINUE = "continue"


@dataclass(frozen=True)
class Jump:
    """Tail transfer to the flow handler registered at ``path``.

    Steps that end by running another flow return a jump instead of awaiting
    it; ``FlowCompiler.invoke`` follows jumps in a loop, so the call stack
    stays flat however many flows a request runs through.
    """

    path: Any
    vars: Mapping[str, Any]


StepResult = Signal | Jump | Mapping[str, Any] | None
"""What a compiled step returns: a loop signal, a jump, variable updates, or nothing."""

Step = Callable[[Vars, "Session", FlowPath], Awaitable[StepResult]]
FlowHandler = Step

ResultHandler = Callable[["Session", Any], Awaitable[None]]
"""Handler invoked with the session and the value of an inbound event."""


@dataclass(frozen=True)
class Options:
    """Continuation targets threaded through compilation."""

    next_flow: FlowPath | None = None
    break_flow: FlowPath | None = None
    continue_flow: FlowPath | None = None

    def with_next(self, next_flow: FlowPath | None) -> "Options":
        return replace(self, next_flow=next_flow)

    def for_loop_body(
        self, next_flow: FlowPath, break_flow: FlowPath, continue_flow: FlowPath
    ) -> "Options":
        return Options(next_flow=next_flow, break_flow=break_flow, continue_flow=continue_flow)


def make_handler_vars(session: "Session", value: Any = None) -> dict[str, Any]:
    """Build the variable environment for a handler invocation.

    Locals shadow globals and volatiles shadow both. The reserved ``value``
    key holds the value a continuation was resumed with, and is only present
    when there is one.
    """
    handler_vars = {**session.globals, **session.locals, **session.volatiles}
    if value is not None:
        handler_vars[VALUE_KEY] = value
    return handler_vars
