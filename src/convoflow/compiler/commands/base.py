"""Base protocol for command compilers."""

from typing import TYPE_CHECKING, Any, Protocol

from convoflow.core.types import FlowPath, Options, Step
from convoflow.flow.commands import BaseCommand

if TYPE_CHECKING:
    from convoflow.compiler.flow_compiler import FlowCompiler


class CommandCompiler(Protocol):
    """Protocol for per-command compilers (one class per command type).

    A compiler turns one normalized command into a step. Commands that
    break the flow take over the rest of the sequence: the flow compiler
    hands them the continuation as ``options.next_flow``.
    """

    # Terminal breakers never reach the rest of the sequence
    terminal: bool

    def breaks_flow(self, command: Any) -> bool:
        """Whether the command suspends or redirects the enclosing sequence."""
        ...

    def compile(
        self,
        compiler: "FlowCompiler",
        command: Any,
        path: FlowPath,
        options: Options,
    ) -> Step:
        """Create the step function for the given command."""
        ...


def check_command(command: Any, expected: type[BaseCommand], compiler_name: str) -> None:
    if not isinstance(command, expected):
        raise ValueError(f"{compiler_name} received wrong command type: {type(command).__name__}")
