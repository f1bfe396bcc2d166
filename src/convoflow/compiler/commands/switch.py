"""SwitchCompiler - value-based case selection with fall-through."""

import logging
from typing import TYPE_CHECKING, Any

from convoflow.compiler.commands.base import check_command
from convoflow.core.types import FlowPath, Jump, Options, Step, StepResult, Vars
from convoflow.flow.commands import SwitchCommand
from convoflow.flow.path import append_flow_path_id

if TYPE_CHECKING:
    from convoflow.compiler.flow_compiler import FlowCompiler
    from convoflow.session.session import Session

logger = logging.getLogger(__name__)


def matches(value: Any, case_value: Any) -> bool:
    """Case match by equality, or by equal string forms (``1`` matches ``"1"``)."""
    if value == case_value:
        return True
    if value is None or case_value is None:
        return False
    return str(value) == str(case_value)


class SwitchCompiler:
    """Compiler for switch commands.

    Cases fall through: each case flow continues into the next case, the
    last one into ``default`` (or straight to ``end``). ``break`` inside a
    case jumps to ``end``, which resumes the enclosing sequence.
    """

    terminal = False

    def breaks_flow(self, command: Any) -> bool:
        return True

    def compile(
        self, compiler: "FlowCompiler", command: Any, path: FlowPath, options: Options
    ) -> Step:
        check_command(command, SwitchCommand, type(self).__name__)
        switch_path = append_flow_path_id(path, command.id)
        end_path = append_flow_path_id(switch_path, "end")
        compiler.compile_flow([], end_path, options)

        case_options = Options(break_flow=end_path, continue_flow=options.continue_flow)
        next_path = end_path
        default_path: FlowPath | None = None
        if command.default is not None:
            default_path = append_flow_path_id(switch_path, "default")
            compiler.compile_flow(command.default, default_path, case_options.with_next(end_path))
            next_path = default_path

        # Compiled last to first so each case knows the one that follows it
        case_paths: list[tuple[Any, FlowPath]] = []
        for case in reversed(command.cases):
            case_path = append_flow_path_id(switch_path, case.id)
            compiler.compile_flow(case.do, case_path, case_options.with_next(next_path))
            case_paths.insert(0, (case.match_value, case_path))
            next_path = case_path

        fallback = default_path or end_path
        value_param = command.value

        async def switch_step(vars: Vars, session: "Session", _: FlowPath) -> StepResult:
            value = await compiler.expand(value_param, vars, session, switch_path)
            target = next(
                (case_path for case_value, case_path in case_paths if matches(value, case_value)),
                fallback,
            )
            logger.debug(f"Switch {compiler.registry.key(switch_path)} on {value!r}")
            return Jump(target, vars)

        switch_step.__name__ = f"switch_{command.id}"
        return switch_step
