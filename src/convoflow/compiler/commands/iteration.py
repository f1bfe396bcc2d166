"""IterationCompiler - loops with initializer, condition and increment."""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from convoflow.compiler.commands.base import check_command
from convoflow.core.types import FlowPath, Jump, Options, Step, StepResult, Vars
from convoflow.flow.accessor import var
from convoflow.flow.commands import IterationCommand, SetCommand
from convoflow.flow.normalizer import normalize_flow
from convoflow.flow.path import append_flow_path_id

if TYPE_CHECKING:
    from convoflow.compiler.flow_compiler import FlowCompiler
    from convoflow.session.session import Session


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def increment_values(increment: Mapping[str, Any]) -> dict[str, Any]:
    """Numeric increments add to the variable; anything else is assigned."""
    return {
        name: var(name).add(value) if _is_number(value) else value
        for name, value in increment.items()
    }


class IterationCompiler:
    """Compiler for iteration commands.

    Four flows are registered under ``path + id``:

    - ``loop`` tests the condition and invokes ``do`` or ``end``
    - ``do`` is the body followed by the increment, then ``loop`` again
    - ``continue`` is the increment followed by ``loop``
    - ``end`` resumes the enclosing sequence
    """

    terminal = False

    def breaks_flow(self, command: Any) -> bool:
        return True

    def compile(
        self, compiler: "FlowCompiler", command: Any, path: FlowPath, options: Options
    ) -> Step:
        check_command(command, IterationCommand, type(self).__name__)
        loop_root = append_flow_path_id(path, command.id)
        loop_path = append_flow_path_id(loop_root, "loop")
        do_path = append_flow_path_id(loop_root, "do")
        continue_path = append_flow_path_id(loop_root, "continue")
        end_path = append_flow_path_id(loop_root, "end")

        increment = (
            [SetCommand(id="increment", set=increment_values(command.increment))]
            if command.increment
            else []
        )
        body = normalize_flow(command.do)
        if body and compiler.is_terminal(body[-1]):
            # The increment would be unreachable
            body_tail = []
        else:
            body_tail = increment

        compiler.compile_flow([], end_path, options)
        compiler.compile_flow(
            [*body, *body_tail],
            do_path,
            options.for_loop_body(loop_path, end_path, continue_path),
        )
        compiler.compile_flow(increment, continue_path, Options(next_flow=loop_path))

        condition = command.condition

        async def loop_step(vars: Vars, session: "Session", _: FlowPath = loop_path) -> StepResult:
            passed = await compiler.expand(condition, vars, session, loop_path)
            return Jump(do_path if passed else end_path, vars)

        loop_step.__name__ = f"loop_{command.id}"
        compiler.registry.add(loop_path, loop_step)

        init_step = (
            compiler.compile_command(SetCommand(id="init", set=command.init), loop_root, options)
            if command.init
            else None
        )

        async def iteration_step(vars: Vars, session: "Session", _: FlowPath) -> StepResult:
            current = vars
            if init_step is not None:
                updates = await init_step(vars, session, loop_root)
                if isinstance(updates, Mapping):
                    current = {**vars, **updates}
            return Jump(loop_path, current)

        iteration_step.__name__ = f"iteration_{command.id}"
        return iteration_step
