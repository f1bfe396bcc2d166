"""Break and continue compilers."""

from typing import TYPE_CHECKING, Any

from convoflow.core.errors import LoopContextError
from convoflow.core.types import FlowPath, Options, Signal, Step, StepResult, Vars

if TYPE_CHECKING:
    from convoflow.compiler.flow_compiler import FlowCompiler
    from convoflow.session.session import Session


class LoopControlCompiler:
    """Compiles break/continue into a step returning a Signal.

    The sequence runner that executes the step redirects to the matching
    target of its options, so the target must exist at compile time.
    """

    terminal = True
    signal: Signal

    def breaks_flow(self, command: Any) -> bool:
        return True

    def target(self, options: Options) -> FlowPath | None:
        raise NotImplementedError

    def compile(
        self, compiler: "FlowCompiler", command: Any, path: FlowPath, options: Options
    ) -> Step:
        if self.target(options) is None:
            raise LoopContextError(self.signal.value, compiler.registry.key(path))
        signal = self.signal

        async def signal_step(vars: Vars, session: "Session", _: FlowPath) -> StepResult:
            return signal

        signal_step.__name__ = f"{signal.value}_{command.id}"
        return signal_step


class BreakCompiler(LoopControlCompiler):
    signal = Signal.BREAK

    def target(self, options: Options) -> FlowPath | None:
        return options.break_flow


class ContinueCompiler(LoopControlCompiler):
    signal = Signal.CONTINUE

    def target(self, options: Options) -> FlowPath | None:
        return options.continue_flow
