"""WaitCompiler - pauses the flow for a number of seconds."""

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from convoflow.compiler.commands.base import check_command
from convoflow.core.types import FlowPath, Options, Step, StepResult, Vars
from convoflow.flow.commands import WaitCommand
from convoflow.flow.path import append_flow_path_id

if TYPE_CHECKING:
    from convoflow.compiler.flow_compiler import FlowCompiler
    from convoflow.session.session import Session

logger = logging.getLogger(__name__)


class WaitCompiler:
    """Compiler for wait commands.

    Waits are in-process sleeps bounded by ``settings.max_wait_seconds``;
    they do not survive a restart of the process.
    """

    terminal = False

    def breaks_flow(self, command: Any) -> bool:
        return False

    def compile(
        self, compiler: "FlowCompiler", command: Any, path: FlowPath, options: Options
    ) -> Step:
        check_command(command, WaitCommand, type(self).__name__)
        seconds_param = command.seconds
        wait_path = append_flow_path_id(path, command.id)
        max_wait = compiler.settings.max_wait_seconds

        async def wait_step(vars: Vars, session: "Session", _: FlowPath) -> StepResult:
            value = await compiler.expand(seconds_param, vars, session, wait_path)
            try:
                seconds = max(float(value or 0), 0.0)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid wait duration: {value!r}") from e
            if max_wait is not None and seconds > max_wait:
                logger.warning(f"Clamping wait of {seconds}s to {max_wait}s")
                seconds = max_wait
            await asyncio.sleep(seconds)
            return None

        wait_step.__name__ = f"wait_{command.id}"
        return wait_step
