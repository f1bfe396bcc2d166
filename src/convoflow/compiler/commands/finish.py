"""FinishCompiler - ends the current dialog frame with a result."""

from typing import TYPE_CHECKING, Any

from convoflow.compiler.commands.base import check_command
from convoflow.core.types import FlowPath, Options, Step, StepResult, Vars
from convoflow.flow.commands import FinishCommand
from convoflow.flow.path import append_flow_path_id

if TYPE_CHECKING:
    from convoflow.compiler.flow_compiler import FlowCompiler
    from convoflow.session.session import Session


class FinishCompiler:
    """Compiler for finish commands."""

    terminal = True

    def breaks_flow(self, command: Any) -> bool:
        return True

    def compile(
        self, compiler: "FlowCompiler", command: Any, path: FlowPath, options: Options
    ) -> Step:
        check_command(command, FinishCommand, type(self).__name__)
        result_param = command.finish
        finish_path = append_flow_path_id(path, command.id)

        async def finish_step(vars: Vars, session: "Session", _: FlowPath) -> StepResult:
            result = await compiler.expand(result_param, vars, session, finish_path)
            await session.finish(result)
            return None

        finish_step.__name__ = f"finish_{command.id}"
        return finish_step
