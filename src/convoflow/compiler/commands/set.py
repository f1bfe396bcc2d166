"""SetCompiler - assigns session variables."""

import logging
from typing import TYPE_CHECKING, Any

from convoflow.compiler.commands.base import check_command
from convoflow.core.types import FlowPath, Options, Step, StepResult, Vars
from convoflow.flow.commands import SetCommand
from convoflow.flow.path import append_flow_path_id

if TYPE_CHECKING:
    from convoflow.compiler.flow_compiler import FlowCompiler
    from convoflow.session.session import Session

logger = logging.getLogger(__name__)


class SetCompiler:
    """Compiler for set commands (assignment only)."""

    terminal = False

    def breaks_flow(self, command: Any) -> bool:
        return False

    def compile(
        self, compiler: "FlowCompiler", command: Any, path: FlowPath, options: Options
    ) -> Step:
        """Create a set step.

        The step saves the expanded values to the session and returns them,
        so the following steps of the sequence see the new values.
        """
        check_command(command, SetCommand, type(self).__name__)
        values_param = command.set
        set_path = append_flow_path_id(path, command.id)

        async def set_step(vars: Vars, session: "Session", _: FlowPath) -> StepResult:
            values = await compiler.expander.expand_set(values_param, vars, session, set_path)
            logger.debug(f"Setting {sorted(values)}")
            await session.save(values)
            return values

        set_step.__name__ = f"set_{command.id}"
        return set_step
