"""StartCompiler - starts a sub-dialog and resumes when its result arrives."""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from convoflow.compiler.commands.base import check_command
from convoflow.core.errors import InvalidStartError
from convoflow.core.types import FlowPath, Options, Step, StepResult, Vars
from convoflow.flow.commands import StartCommand
from convoflow.flow.expansion import TEMPLATE_MARKERS
from convoflow.flow.path import append_flow_path_id

if TYPE_CHECKING:
    from convoflow.compiler.flow_compiler import FlowCompiler
    from convoflow.session.session import Session

logger = logging.getLogger(__name__)

START_PARAM_HELP = (
    "expecting a dialog name, a [name, args] pair, a {dialog, args} mapping, "
    "or a handler returning one of these"
)


def is_computed(param: Any) -> bool:
    return callable(param) or (isinstance(param, Mapping) and "exec" in param)


def check_start_param(param: Any) -> None:
    """Validate the shape of a literal start parameter."""
    if is_computed(param) or isinstance(param, str):
        return
    if isinstance(param, (list, tuple)) and 1 <= len(param) <= 2:
        if isinstance(param[0], str) or is_computed(param[0]):
            return
    if isinstance(param, Mapping) and "dialog" in param:
        return
    raise InvalidStartError(f"Invalid start parameter {param!r}: {START_PARAM_HELP}")


def parse_start_value(value: Any, default_args: Any = None) -> tuple[str, Any]:
    """Split an expanded start parameter into (dialog name, args)."""
    name: Any = None
    args = default_args
    if isinstance(value, str):
        name = value
    elif isinstance(value, (list, tuple)) and 1 <= len(value) <= 2:
        name = value[0]
        if len(value) == 2:
            args = value[1]
    elif isinstance(value, Mapping) and "dialog" in value:
        name = value["dialog"]
        args = value.get("args", default_args)
    if not isinstance(name, str) or not name:
        raise InvalidStartError(f"Invalid start parameter {value!r}: {START_PARAM_HELP}")
    if args is not None and not isinstance(args, Mapping):
        raise InvalidStartError(f"Start arguments must be a mapping, but received {args!r}")
    return name, args


def static_dialog_name(param: Any) -> str | None:
    """The dialog name if it is known at compile time."""
    if isinstance(param, (list, tuple)) and param:
        param = param[0]
    elif isinstance(param, Mapping) and "exec" not in param:
        param = param.get("dialog")
    if isinstance(param, str) and not any(marker in param for marker in TEMPLATE_MARKERS):
        return param
    return None


class StartCompiler:
    """Compiler for start commands.

    The continuation (``then``, or just the rest of the sequence) is compiled
    at ``path + id`` and registered as the result handler for the started
    dialog, tagged with its own flow key. Dialogs computed at run time are
    registered under the wildcard dialog name.
    """

    terminal = False

    def breaks_flow(self, command: Any) -> bool:
        return True

    def compile(
        self, compiler: "FlowCompiler", command: Any, path: FlowPath, options: Options
    ) -> Step:
        check_command(command, StartCommand, type(self).__name__)
        check_start_param(command.start)
        start_path = append_flow_path_id(path, command.id)
        start_param = command.start
        args_param = command.args

        tag: str | None = None
        if command.then is not None or options.next_flow is not None:
            compiler.compile_flow(command.then or [], start_path, options)
            tag = compiler.registry.key(start_path)
            dialog_name = static_dialog_name(start_param) or compiler.settings.wildcard_dialog
            compiler.dialog.on_result(dialog_name, tag, compiler.continuation(start_path))
            logger.debug(f"Result of {dialog_name} resumes {tag}")

        async def start_step(vars: Vars, session: "Session", _: FlowPath) -> StepResult:
            value = await compiler.expand(start_param, vars, session, start_path)
            default_args = (
                await compiler.expand(args_param, vars, session, start_path)
                if args_param is not None
                else None
            )
            name, args = parse_start_value(value, default_args)
            await session.start(name, tag, args)
            return None

        start_step.__name__ = f"start_{command.id}"
        return start_step
