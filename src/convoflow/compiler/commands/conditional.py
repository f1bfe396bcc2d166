"""ConditionalCompiler - if/then/else routing."""

from typing import TYPE_CHECKING, Any

from convoflow.compiler.commands.base import check_command
from convoflow.core.types import FlowPath, Jump, Options, Step, StepResult, Vars
from convoflow.flow.commands import ConditionalCommand
from convoflow.flow.path import append_flow_path_id

if TYPE_CHECKING:
    from convoflow.compiler.flow_compiler import FlowCompiler
    from convoflow.session.session import Session


class ConditionalCompiler:
    """Compiler for conditional commands (routing only)."""

    terminal = False

    def breaks_flow(self, command: Any) -> bool:
        return True

    def compile(
        self, compiler: "FlowCompiler", command: Any, path: FlowPath, options: Options
    ) -> Step:
        """Create a conditional step.

        Both branches are compiled at ``path + id + ("then" | "else")`` with
        the enclosing options, so each resumes the rest of the sequence.
        """
        check_command(command, ConditionalCommand, type(self).__name__)
        conditional_path = append_flow_path_id(path, command.id)
        then_path = append_flow_path_id(conditional_path, "then")
        else_path = append_flow_path_id(conditional_path, "else")
        compiler.compile_flow(command.then, then_path, options)
        compiler.compile_flow(command.else_, else_path, options)
        test = command.test

        async def conditional_step(vars: Vars, session: "Session", _: FlowPath) -> StepResult:
            passed = await compiler.expand(test, vars, session, conditional_path)
            return Jump(then_path if passed else else_path, vars)

        conditional_step.__name__ = f"conditional_{command.id}"
        return conditional_step
