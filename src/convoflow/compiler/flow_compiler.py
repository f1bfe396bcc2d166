"""Flow compiler: turns a flow tree into flow handlers keyed by path.

A sequence of commands compiles into one handler that runs its steps in
order. When a command breaks the flow (it branches, waits for the user, or
starts a sub-dialog), the commands after it are compiled as a separate
continuation flow at ``path + ("flowN",)`` and the breaker is told to
resume there. Continuations are always looked up by key in the registry,
so a request that arrives much later can pick up where a previous one left
off.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol

from convoflow.compiler.factory import get_compiler_for_command
from convoflow.compiler.registry import FlowHandlerRegistry
from convoflow.config.models import FlowSettings
from convoflow.core.errors import FlowInvariantError, UndefinedFlowHandlerError
from convoflow.core.types import (
    FlowHandler,
    FlowPath,
    Jump,
    Options,
    ResultHandler,
    Signal,
    Step,
    StepResult,
    Vars,
    make_handler_vars,
)
from convoflow.flow.commands import BaseCommand, SubFlowCommand
from convoflow.flow.expansion import ParamExpander, call_handler
from convoflow.flow.normalizer import normalize_flow, normalize_flows
from convoflow.flow.path import append_flow_path_id

if TYPE_CHECKING:
    from convoflow.session.session import Session

logger = logging.getLogger(__name__)


class HandlerTables(Protocol):
    """The dialog tables compiled flows register their entry points in."""

    name: str

    def on_result(self, dialog: str, tag: str, handler: ResultHandler) -> None: ...

    def on_postback(self, key: str, handler: ResultHandler) -> None: ...

    def on_payload(self, key: str, handler: ResultHandler) -> None: ...


class FlowCompiler:
    """Compiles flows into handlers registered in a FlowHandlerRegistry."""

    def __init__(
        self,
        dialog: HandlerTables,
        registry: FlowHandlerRegistry,
        expander: ParamExpander,
        settings: FlowSettings | None = None,
    ):
        self.dialog = dialog
        self.registry = registry
        self.expander = expander
        self.settings = settings or FlowSettings()
        # (target key, referring path) pairs checked once everything is compiled
        self._references: list[tuple[str, FlowPath]] = []

    # -------------------------------------------------------------------------
    # Compilation
    # -------------------------------------------------------------------------

    def compile_flows(self, flows: Mapping[str, Any], path: FlowPath = ()) -> dict[str, FlowPath]:
        """Compile each entry point flow; returns entry id -> path."""
        entry_points: dict[str, FlowPath] = {}
        for flow_id, flow in normalize_flows(flows).items():
            flow_path = append_flow_path_id(path, flow_id)
            self.compile_flow(flow, flow_path)
            entry_points[flow_id] = flow_path
        return entry_points

    def compile_flow(
        self,
        flow: Any,
        path: FlowPath,
        options: Options | None = None,
        continuation_index: int = 0,
    ) -> FlowHandler:
        """Compile a flow and register its handler at path.

        Args:
            flow: Flow in any shorthand form
            path: Path the flow handler is registered under
            options: Continuation targets of the enclosing context
            continuation_index: Number of continuations already split off the
                sequence this flow belongs to

        Returns:
            The registered sequence handler
        """
        options = options or Options()
        commands = normalize_flow(flow)
        logger.debug(f"Compiling {self.registry.key(path)} with {len(commands)} commands")

        steps: list[Step] = []
        broken = False
        for position, command in enumerate(commands):
            if not isinstance(command, BaseCommand):
                steps.append(self._handler_step(command))
                continue

            command_compiler = get_compiler_for_command(command.type)
            if not command_compiler.breaks_flow(command):
                steps.append(command_compiler.compile(self, command, path, options))
                continue

            rest = commands[position + 1 :]
            command_options = options
            if rest and command_compiler.terminal:
                logger.warning(
                    f"Ignoring {len(rest)} unreachable commands after '{command.type}' "
                    f"in {self.registry.key(path)}"
                )
            elif rest:
                next_flow = self._compile_continuation(rest, path, options, continuation_index + 1)
                command_options = options.with_next(next_flow)

            steps.append(command_compiler.compile(self, command, path, command_options))
            broken = True
            break

        if not broken and options.next_flow is not None:
            steps.append(self._invoke_step(options.next_flow))

        return self.registry.add(path, self._sequence(steps, path, options))

    def _compile_continuation(
        self, rest: Sequence[Any], path: FlowPath, options: Options, index: int
    ) -> FlowPath:
        first = rest[0]
        if isinstance(first, SubFlowCommand):
            # An explicit sub-flow names the continuation; its body leads it
            continuation = append_flow_path_id(path, first.id)
            flow = [*normalize_flow(first.flow), *rest[1:]]
        else:
            continuation = append_flow_path_id(path, f"flow{index}")
            flow = list(rest)
        self.compile_flow(flow, continuation, options, index)
        return continuation

    def compile_command(self, command: BaseCommand, path: FlowPath, options: Options) -> Step:
        """Compile a single command without continuation handling."""
        return get_compiler_for_command(command.type).compile(self, command, path, options)

    def is_breaker(self, command: Any) -> bool:
        if not isinstance(command, BaseCommand):
            return False
        return get_compiler_for_command(command.type).breaks_flow(command)

    def is_terminal(self, command: Any) -> bool:
        """Whether nothing after the command in its sequence can run."""
        return self.is_breaker(command) and get_compiler_for_command(command.type).terminal

    def _sequence(self, steps: list[Step], path: FlowPath, options: Options) -> FlowHandler:
        key = self.registry.key(path)

        async def run_sequence(vars: Vars, session: "Session", _path: FlowPath = path) -> StepResult:
            current: Vars = vars
            for step in steps:
                result = await step(current, session, path)
                if isinstance(result, Jump):
                    return result
                if isinstance(result, Signal):
                    target = (
                        options.break_flow if result is Signal.BREAK else options.continue_flow
                    )
                    if target is None:
                        raise FlowInvariantError(f"'{result.value}' escaped its loop in {key}")
                    return Jump(target, current)
                if isinstance(result, Mapping):
                    current = {**current, **result}
            return None

        run_sequence.__name__ = f"flow_{key}"
        return run_sequence

    def _handler_step(self, handler: Callable[..., Any]) -> Step:
        async def run_handler(vars: Vars, session: "Session", path: FlowPath) -> StepResult:
            await call_handler(handler, vars, session, path)
            return None

        run_handler.__name__ = f"handler_{getattr(handler, '__name__', 'anonymous')}"
        return run_handler

    def _invoke_step(self, target: FlowPath) -> Step:
        async def invoke_next(vars: Vars, session: "Session", path: FlowPath) -> StepResult:
            return Jump(target, vars)

        return invoke_next

    # -------------------------------------------------------------------------
    # Invocation
    # -------------------------------------------------------------------------

    async def invoke(self, path: Any, vars: Vars, session: "Session") -> None:
        """Run the flow handler registered at path, then every flow it jumps to."""
        jump: Jump | None = Jump(path, vars)
        while jump is not None:
            handler = self.registry.get(jump.path)
            logger.debug(f"Invoking {self.registry.key(jump.path)}")
            result = await handler(jump.vars, session, jump.path)
            if isinstance(result, Signal):
                raise FlowInvariantError(
                    f"'{result.value}' escaped flow handler {self.registry.key(jump.path)}"
                )
            jump = result if isinstance(result, Jump) else None

    async def run(self, path: Any, session: "Session", value: Any = None) -> None:
        """Re-enter the flow at path for an inbound event."""
        await self.invoke(path, make_handler_vars(session, value), session)

    def continuation(self, path: Any) -> ResultHandler:
        """A ``(session, value)`` handler that resumes the flow at path."""

        async def resume(session: "Session", value: Any = None) -> None:
            await self.run(path, session, value)

        resume.__name__ = f"resume_{self.registry.key(path)}"
        return resume

    async def expand(self, param: Any, vars: Vars, session: "Session", path: FlowPath) -> Any:
        return await self.expander.expand(param, vars, session, path)

    # -------------------------------------------------------------------------
    # Flow references
    # -------------------------------------------------------------------------

    def add_reference(self, target: Any, source: FlowPath) -> str:
        """Record a reference to an existing flow; returns its key."""
        key = self.registry.key(target)
        self._references.append((key, source))
        return key

    def check_references(self) -> None:
        """Raise for any referenced flow key that was never registered."""
        for key, source in self._references:
            if key not in self.registry:
                raise UndefinedFlowHandlerError(key, self.registry.suggest(key))
            logger.debug(f"{self.registry.key(source)} refers to {key}")
