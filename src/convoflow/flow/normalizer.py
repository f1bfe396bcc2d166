"""Command normalization.

Authors may write flows in several shorthand forms: bare strings, handlers,
``when``/``unless`` sugar, ``for``/``while``/``until`` loops, and
mappings of actions, items or switch cases keyed by id. Everything here
rewrites those forms into the canonical models of ``convoflow.flow.commands``.

Normalization is pure and idempotent: already-canonical models pass through
unchanged.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from convoflow.core.errors import CompilationError, InvalidActionError, UnrecognizedCommandError
from convoflow.flow.accessor import var
from convoflow.flow.commands import (
    ACTION_TYPES,
    COMMAND_MODELS,
    MESSAGE_TYPES,
    Action,
    BaseCommand,
    BreakCommand,
    ConditionalCommand,
    ContinueCommand,
    ExecCommand,
    FinishCommand,
    Item,
    IterationCommand,
    Negated,
    SetCommand,
    StartCommand,
    SubFlowCommand,
    SwitchCase,
    SwitchCommand,
    WaitCommand,
)

logger = logging.getLogger(__name__)

# Keys that identify a command when no explicit type is given, in priority order
_INFERENCE_KEYS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("finish",), "finish"),
    (("start",), "start"),
    (("wait",), "wait"),
    (("set",), "set"),
    (("if", "when", "unless"), "conditional"),
    (("switch",), "switch"),
    (("exec",), "exec"),
    (("for", "while", "until"), "iteration"),
    (("break",), "break"),
    (("continue",), "continue"),
    (("flow",), "flow"),
)


# =============================================================================
# Predicates
# =============================================================================


def is_message_type(cmd_type: Any) -> bool:
    return cmd_type in MESSAGE_TYPES


def is_command_type(cmd_type: Any) -> bool:
    return isinstance(cmd_type, str) and cmd_type in COMMAND_MODELS


def is_action_type(action_type: Any) -> bool:
    return isinstance(action_type, str) and action_type in ACTION_TYPES


def infer_command_type(command: Mapping[str, Any]) -> str | None:
    """Infer a command's type from the keys present.

    ``mediaUrl`` wins over ``text`` so that captioned images are images.
    ``finish`` is matched on presence, since a finish result may be falsy.
    """
    if command.get("mediaUrl") is not None or command.get("media_url") is not None:
        return "image"
    if command.get("text") is not None:
        return "text"
    for keys, cmd_type in _INFERENCE_KEYS:
        if any(key in command for key in keys):
            return cmd_type
    return None


def infer_action_type(action: Mapping[str, Any], default_type: str | None = None) -> str | None:
    if action.get("uri") is not None:
        return "link"
    if action.get("amount") is not None:
        return "buy"
    if action.get("then") is not None or action.get("thenFlow") is not None:
        return default_type
    return None


def is_flow_command(obj: Any) -> bool:
    if isinstance(obj, (str, BaseCommand)) or callable(obj):
        return True
    if isinstance(obj, Mapping):
        return is_command_type(obj.get("type") or infer_command_type(obj))
    return False


def is_flow(obj: Any) -> bool:
    return isinstance(obj, (list, tuple)) or is_flow_command(obj)


def is_action(obj: Any, default_type: str = "reply") -> bool:
    if isinstance(obj, Action):
        return True
    if not isinstance(obj, Mapping):
        return False
    return is_action_type(obj.get("type") or infer_action_type(obj, default_type))


# =============================================================================
# Flows and commands
# =============================================================================


def normalize_flows(flows: Mapping[str, Any]) -> dict[str, list[Any]]:
    """Normalize a mapping of entry point id -> flow."""
    if not isinstance(flows, Mapping):
        raise CompilationError(f"Expecting a mapping describing flows, but received: {flows!r}")
    return {str(flow_id): normalize_flow(flow) for flow_id, flow in flows.items()}


def normalize_flow(flow: Any) -> list[Any]:
    """Normalize a flow into a list of command models and handlers."""
    if flow is None:
        return []
    if isinstance(flow, (list, tuple)):
        return [normalize_flow_command(command) for command in flow]
    if isinstance(flow, (str, BaseCommand, Mapping)) or callable(flow):
        return [normalize_flow_command(flow)]
    raise UnrecognizedCommandError(flow, "expecting a string, mapping, handler or list")


def normalize_flow_command(command: Any) -> BaseCommand | Callable[..., Any]:
    """Normalize a single command."""
    if isinstance(command, BaseCommand):
        return command
    if isinstance(command, str):
        return COMMAND_MODELS["text"](text=command)
    if callable(command):
        return command
    if not isinstance(command, Mapping):
        raise UnrecognizedCommandError(command)

    cmd_type = command.get("type") or infer_command_type(command)
    if cmd_type is None:
        raise UnrecognizedCommandError(command, "cannot infer command type")
    if not is_command_type(cmd_type):
        raise UnrecognizedCommandError(command, f"unknown type {cmd_type!r}")

    builder = _BUILDERS[cmd_type]
    try:
        return builder(command, cmd_type)
    except PydanticValidationError as e:
        raise UnrecognizedCommandError(command, str(e)) from e


def _id(raw: Mapping[str, Any]) -> dict[str, str]:
    return {"id": str(raw["id"])} if raw.get("id") is not None else {}


def _normalize_message(raw: Mapping[str, Any], cmd_type: str) -> BaseCommand:
    data = {**raw, "type": cmd_type}
    if raw.get("actions") is not None:
        data["actions"] = normalize_actions(raw["actions"], "reply")
    if raw.get("items") is not None:
        data["items"] = normalize_items(raw["items"])
    return COMMAND_MODELS[cmd_type].model_validate(data)


def _normalize_conditional(raw: Mapping[str, Any], cmd_type: str) -> BaseCommand:
    if "unless" in raw:
        test: Any = Negated(raw["unless"])
    else:
        test = raw["if"] if "if" in raw else raw.get("when")
    return ConditionalCommand(
        test=test,
        then=normalize_flow(raw.get("then")),
        else_=normalize_flow(raw.get("else")),
        **_id(raw),
    )


def _normalize_switch(raw: Mapping[str, Any], cmd_type: str) -> BaseCommand:
    if "switch" not in raw:
        raise UnrecognizedCommandError(raw, "switch requires a 'switch' value")
    default = raw.get("default")
    return SwitchCommand(
        value=raw["switch"],
        cases=normalize_cases(raw.get("cases") or []),
        default=normalize_flow(default) if default is not None else None,
        **_id(raw),
    )


def _normalize_iteration(raw: Mapping[str, Any], cmd_type: str) -> BaseCommand:
    init = raw.get("init") or {}
    increment = raw.get("increment") or {}
    if "for" in raw:
        init, condition, increment = desugar_for(raw["for"])
    elif "while" in raw:
        condition = raw["while"]
    elif "until" in raw:
        condition = Negated(raw["until"])
    else:
        condition = raw.get("condition", True)
    return IterationCommand(
        init=dict(init),
        condition=condition,
        increment=dict(increment),
        do=normalize_flow(raw.get("do")),
        **_id(raw),
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def desugar_for(clause: Any) -> tuple[dict[str, Any], Any, dict[str, Any]]:
    """Expand ``for: [init, limit_or_condition, increment]``.

    ``init`` may be a mapping or a bare variable name (initialized to 0). A
    numeric limit becomes ``var < limit`` and a numeric increment becomes
    ``{var: step}`` on the first initialized variable; the increment
    defaults to 1.
    """
    if not isinstance(clause, (list, tuple)) or not 1 <= len(clause) <= 3:
        raise UnrecognizedCommandError(clause, "for expects [init, condition, increment]")
    init, limit, incr = (list(clause) + [None, None])[:3]

    if isinstance(init, str):
        init = {init: 0}
    elif init is None:
        init = {}
    elif not isinstance(init, Mapping):
        raise UnrecognizedCommandError(clause, "for initializer must be a name or a mapping")
    var_name = next(iter(init), None)

    def require_var() -> str:
        if var_name is None:
            raise UnrecognizedCommandError(clause, "numeric limit or increment requires a loop variable")
        return var_name

    if limit is None:
        condition: Any = True
    elif _is_number(limit):
        condition = var(require_var()).lt(limit)
    else:
        condition = limit

    if incr is None:
        increment = {var_name: 1} if var_name is not None else {}
    elif _is_number(incr):
        increment = {require_var(): incr}
    elif isinstance(incr, Mapping):
        increment = dict(incr)
    else:
        raise UnrecognizedCommandError(clause, "for increment must be a number or a mapping")

    return dict(init), condition, increment


def _normalize_start(raw: Mapping[str, Any], cmd_type: str) -> BaseCommand:
    then = raw.get("then")
    return StartCommand(
        start=raw.get("start"),
        args=raw.get("args"),
        then=normalize_flow(then) if then is not None else None,
        **_id(raw),
    )


def _normalize_finish(raw: Mapping[str, Any], cmd_type: str) -> BaseCommand:
    return FinishCommand(finish=raw.get("finish"), **_id(raw))


def _normalize_set(raw: Mapping[str, Any], cmd_type: str) -> BaseCommand:
    values = raw.get("set")
    if not isinstance(values, Mapping):
        raise UnrecognizedCommandError(raw, "set expects a mapping of variable names to values")
    return SetCommand(set=dict(values), **_id(raw))


def _normalize_exec(raw: Mapping[str, Any], cmd_type: str) -> BaseCommand:
    return ExecCommand(exec=raw.get("exec"), args=raw.get("args"), **_id(raw))


def _normalize_wait(raw: Mapping[str, Any], cmd_type: str) -> BaseCommand:
    seconds = raw["wait"] if "wait" in raw else raw.get("seconds", 0)
    return WaitCommand(seconds=seconds, **_id(raw))


def _normalize_break(raw: Mapping[str, Any], cmd_type: str) -> BaseCommand:
    return BreakCommand(**_id(raw))


def _normalize_continue(raw: Mapping[str, Any], cmd_type: str) -> BaseCommand:
    return ContinueCommand(**_id(raw))


def _normalize_subflow(raw: Mapping[str, Any], cmd_type: str) -> BaseCommand:
    if raw.get("id") is None:
        raise UnrecognizedCommandError(raw, "an explicit flow requires an id")
    return SubFlowCommand(flow=normalize_flow(raw.get("flow")), **_id(raw))


_BUILDERS: dict[str, Callable[[Mapping[str, Any], str], BaseCommand]] = {
    "text": _normalize_message,
    "image": _normalize_message,
    "list": _normalize_message,
    "carousel": _normalize_message,
    "conditional": _normalize_conditional,
    "switch": _normalize_switch,
    "iteration": _normalize_iteration,
    "start": _normalize_start,
    "finish": _normalize_finish,
    "set": _normalize_set,
    "exec": _normalize_exec,
    "wait": _normalize_wait,
    "break": _normalize_break,
    "continue": _normalize_continue,
    "flow": _normalize_subflow,
}


# =============================================================================
# Switch cases
# =============================================================================


def normalize_cases(cases: Any) -> list[SwitchCase]:
    """Normalize switch cases; a mapping becomes an ordered list of {id, do}."""
    if isinstance(cases, Mapping):
        return [SwitchCase(id=str(case_id), do=normalize_flow(flow)) for case_id, flow in cases.items()]
    if isinstance(cases, (list, tuple)):
        return [_normalize_case(case) for case in cases]
    raise CompilationError(f"Expecting a list or mapping of switch cases, but received: {cases!r}")


def _normalize_case(case: Any) -> SwitchCase:
    if isinstance(case, SwitchCase):
        return case
    if not isinstance(case, Mapping) or case.get("id") is None:
        raise CompilationError(f"Switch case must be a mapping with an id, but received: {case!r}")
    return SwitchCase(id=str(case["id"]), case=case.get("case"), do=normalize_flow(case.get("do")))


# =============================================================================
# Actions and items
# =============================================================================


def normalize_actions(actions: Any, default_type: str = "reply") -> list[Action] | Callable[..., Any]:
    """Normalize static actions into a list; dynamic (callable) actions pass through."""
    if callable(actions) and not isinstance(actions, BaseModel):
        return actions
    if isinstance(actions, (list, tuple)):
        return [
            normalize_action(_get_id(action), action, default_type, key_is_text=False)
            for action in actions
        ]
    if isinstance(actions, Mapping):
        return [normalize_action(str(key), action, default_type) for key, action in actions.items()]
    raise InvalidActionError(f"Expecting a list or mapping describing actions, but received: {actions!r}")


def _get_id(obj: Any) -> str | None:
    value = obj.get("id") if isinstance(obj, Mapping) else getattr(obj, "id", None)
    return str(value) if value is not None else None


def normalize_action(
    key: str | None,
    action: Any,
    default_type: str = "reply",
    key_is_text: bool = True,
) -> Action:
    """Normalize one action.

    A flow given in place of an action becomes an action of ``default_type``
    whose ``then`` is that flow. The key supplies the id when the action has
    none, and the display text unless the action has one or is a ``share``.
    """
    if isinstance(action, Action):
        if action.id is None and key is not None:
            return action.model_copy(update={"id": key})
        return action

    if is_action(action, default_type):
        action_type = action.get("type") or infer_action_type(action, default_type)
        action_id = action.get("id", key)
        data = {**action, "type": action_type, "id": str(action_id) if action_id is not None else None}
        if action_type == "share":
            data.pop("text", None)
        elif data.get("text") is None:
            data["text"] = key if key_is_text and key is not None else data["id"]
        if data.get("then") is not None:
            data["then"] = normalize_flow(data["then"])
        try:
            return Action.model_validate(data)
        except PydanticValidationError as e:
            raise InvalidActionError(f"Invalid action {action!r}: {e}") from e

    if isinstance(action, Mapping) and action.get("type") is None and infer_command_type(action) is None:
        raise InvalidActionError(
            "Action type must be one of buy, link, postback, reply, share or locationRequest. "
            f"Unable to infer type of {action!r}"
        )

    if is_flow(action):
        return Action(id=key, type=default_type, text=key, then=normalize_flow(action))

    raise InvalidActionError(f"Unable to normalize action {action!r} for id: {key}")


def normalize_items(items: Any) -> list[Item] | Callable[..., Any]:
    """Normalize static items into a list; dynamic (callable) items pass through."""
    if callable(items) and not isinstance(items, BaseModel):
        return items
    if isinstance(items, (list, tuple)):
        return [_normalize_item(_get_id(item) or str(index), item) for index, item in enumerate(items)]
    if isinstance(items, Mapping):
        return [_normalize_item(str(key), item, title=str(key)) for key, item in items.items()]
    raise CompilationError(f"Expecting a list or mapping describing items, but received: {items!r}")


def _normalize_item(item_id: str, item: Any, title: str | None = None) -> Item:
    if isinstance(item, Item):
        return item if item.id is not None else item.model_copy(update={"id": item_id})
    if not isinstance(item, Mapping):
        raise CompilationError(f"Expecting a mapping describing an item, but received: {item!r}")
    data = {**item, "id": item_id}
    if data.get("title") is None and title is not None:
        data["title"] = title
    if item.get("actions") is not None:
        data["actions"] = normalize_actions(item["actions"], "postback")
    try:
        return Item.model_validate(data)
    except PydanticValidationError as e:
        raise CompilationError(f"Invalid item {item!r}: {e}") from e
