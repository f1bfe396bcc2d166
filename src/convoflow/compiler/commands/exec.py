"""ExecCompiler - runs a named handler for its effect."""

from typing import TYPE_CHECKING, Any

from convoflow.compiler.commands.base import check_command
from convoflow.core.types import FlowPath, Options, Step, StepResult, Vars
from convoflow.flow.commands import ExecCommand
from convoflow.flow.path import append_flow_path_id

if TYPE_CHECKING:
    from convoflow.compiler.flow_compiler import FlowCompiler
    from convoflow.session.session import Session


class ExecCompiler:
    """Compiler for exec commands."""

    terminal = False

    def breaks_flow(self, command: Any) -> bool:
        return False

    def compile(
        self, compiler: "FlowCompiler", command: Any, path: FlowPath, options: Options
    ) -> Step:
        check_command(command, ExecCommand, type(self).__name__)
        param: dict[str, Any] = {"exec": command.exec}
        if command.args is not None:
            param["args"] = command.args
        exec_path = append_flow_path_id(path, command.id)

        async def exec_step(vars: Vars, session: "Session", _: FlowPath) -> StepResult:
            # Result is discarded; use set with an exec value to keep it
            await compiler.expander.exec(param, vars, session, exec_path)
            return None

        exec_step.__name__ = f"exec_{command.id}"
        return exec_step
