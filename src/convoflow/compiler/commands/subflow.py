"""SubFlowCompiler - explicitly named sub-flows."""

from typing import TYPE_CHECKING, Any

from convoflow.compiler.commands.base import check_command
from convoflow.core.types import FlowPath, Jump, Options, Step, StepResult, Vars
from convoflow.flow.commands import SubFlowCommand
from convoflow.flow.path import append_flow_path_id

if TYPE_CHECKING:
    from convoflow.compiler.flow_compiler import FlowCompiler
    from convoflow.session.session import Session


class SubFlowCompiler:
    """Compiles the body at ``path + id`` and invokes it by key."""

    terminal = False

    def breaks_flow(self, command: Any) -> bool:
        return True

    def compile(
        self, compiler: "FlowCompiler", command: Any, path: FlowPath, options: Options
    ) -> Step:
        check_command(command, SubFlowCommand, type(self).__name__)
        sub_path = append_flow_path_id(path, command.id)
        compiler.compile_flow(command.flow, sub_path, options)

        async def subflow_step(vars: Vars, session: "Session", _: FlowPath) -> StepResult:
            return Jump(sub_path, vars)

        subflow_step.__name__ = f"flow_{command.id}"
        return subflow_step
