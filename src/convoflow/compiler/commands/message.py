"""MessageCompiler - sends text, image, list and carousel messages."""

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from convoflow.compiler.commands.base import check_command
from convoflow.core.errors import InvalidActionError
from convoflow.core.types import FlowPath, Jump, Options, Step, StepResult, Vars
from convoflow.flow.commands import Action, Item, MessageCommand
from convoflow.flow.normalizer import normalize_actions, normalize_items
from convoflow.flow.path import append_flow_path_id

if TYPE_CHECKING:
    from convoflow.compiler.flow_compiler import FlowCompiler
    from convoflow.session.session import Session

logger = logging.getLogger(__name__)

# Action types that can carry a flow
FLOW_ACTION_TYPES = ("postback", "reply")


def _is_dynamic(value: Any) -> bool:
    return callable(value) and not isinstance(value, (list, Mapping))


def _compact(params: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}


def action_params(action: Action) -> dict[str, Any]:
    """The action as sent to the channel: no id and no flow references."""
    return _compact(
        {
            "type": action.type,
            "text": action.text,
            "uri": action.uri,
            "payload": action.payload,
            "amount": action.amount,
            "currency": action.currency,
            **(action.model_extra or {}),
        }
    )


def message_params(command: MessageCommand) -> dict[str, Any]:
    return _compact(
        {
            "type": command.type,
            "text": command.text,
            "mediaUrl": command.media_url,
            "mediaType": command.media_type,
            **(command.model_extra or {}),
        }
    )


def item_params(item: Item) -> dict[str, Any]:
    return _compact(
        {
            "title": item.title,
            "description": item.description,
            "mediaUrl": item.media_url,
            "mediaType": item.media_type,
            **(item.model_extra or {}),
        }
    )


def has_reply(actions: Any) -> bool:
    if not isinstance(actions, list):
        return False
    return any(
        (action.type if isinstance(action, Action) else action.get("type")) == "reply"
        for action in actions
        if isinstance(action, (Action, Mapping))
    )


class MessageCompiler:
    """Compiler for message commands.

    A message breaks the flow when it offers reply actions (the sequence
    resumes when the user picks one) or when its actions or items are
    computed at run time. Reply and postback actions get a flow key as
    payload; the inbound event carrying it is routed back to that flow.
    """

    terminal = False

    def is_dynamic(self, command: Any) -> bool:
        """Whether any actions or items are computed at run time."""
        if _is_dynamic(command.actions) or _is_dynamic(command.items):
            return True
        return any(_is_dynamic(item.actions) for item in command.items or [])

    def breaks_flow(self, command: Any) -> bool:
        if self.is_dynamic(command):
            return True
        if has_reply(command.actions):
            return True
        return any(has_reply(item.actions) for item in command.items or [])

    def compile(
        self, compiler: "FlowCompiler", command: Any, path: FlowPath, options: Options
    ) -> Step:
        check_command(command, MessageCommand, type(self).__name__)
        breaks = self.breaks_flow(command)
        message_path = append_flow_path_id(path, command.id)
        params = message_params(command)

        actions: list[dict[str, Any]] | Callable[..., Any] | None = None
        if _is_dynamic(command.actions):
            actions = command.actions
        elif command.actions is not None:
            actions = [
                self._compile_action(compiler, action, path, options)
                for action in command.actions
            ]

        items: list[dict[str, Any]] | Callable[..., Any] | None = None
        if _is_dynamic(command.items):
            items = command.items
        elif command.items is not None:
            items = [self._compile_item(compiler, item, path, options) for item in command.items]

        dynamic = self.is_dynamic(command)

        async def message_step(vars: Vars, session: "Session", _: FlowPath) -> StepResult:
            message = await compiler.expand(params, vars, session, message_path)
            if actions is not None:
                message["actions"] = await self._expand_actions(
                    compiler, actions, vars, session, message_path, options
                )
            if items is not None:
                message["items"] = await self._expand_items(
                    compiler, items, vars, session, message_path, options
                )
            await session.send(message)

            if breaks and dynamic and options.next_flow is not None:
                replies = has_reply(message.get("actions")) or any(
                    has_reply(item.get("actions")) for item in message.get("items") or []
                )
                if not replies:
                    return Jump(options.next_flow, vars)
            return None

        message_step.__name__ = f"message_{command.id}"
        return message_step

    # -------------------------------------------------------------------------
    # Static actions and items
    # -------------------------------------------------------------------------

    def _compile_action(
        self, compiler: "FlowCompiler", action: Action, path: FlowPath, options: Options
    ) -> dict[str, Any]:
        params = action_params(action)
        has_flow = action.then is not None or action.then_flow is not None

        if action.type not in FLOW_ACTION_TYPES:
            if has_flow:
                raise InvalidActionError(
                    f"Action {action.id!r} of type {action.type} cannot carry a flow; "
                    "only postback and reply actions can"
                )
            return params

        if action.then_flow is not None:
            params["payload"] = compiler.add_reference(action.then_flow, path)
            return params

        if action.type == "postback" and action.then is None:
            # Plain postback; the payload is up to the author
            return params

        action_id = action.id if action.id is not None else action.text
        if not isinstance(action_id, str):
            raise InvalidActionError(f"Action {action!r} needs an id")
        action_path = append_flow_path_id(path, action_id)

        if action.type == "reply":
            # Replies resume the enclosing sequence once their flow completes
            compiler.compile_flow(action.then or [], action_path, options)
            register = compiler.dialog.on_payload
        else:
            compiler.compile_flow(action.then, action_path, Options())
            register = compiler.dialog.on_postback

        key = compiler.registry.key(action_path)
        register(key, compiler.continuation(action_path))
        logger.debug(f"Registered {action.type} action {key}")
        params["payload"] = key
        return params

    def _compile_item(
        self, compiler: "FlowCompiler", item: Item, path: FlowPath, options: Options
    ) -> dict[str, Any]:
        params = item_params(item)
        if _is_dynamic(item.actions):
            params["actions"] = item.actions
        elif item.actions is not None:
            item_path = append_flow_path_id(path, item.id) if item.id is not None else path
            params["actions"] = [
                self._compile_action(compiler, action, item_path, options)
                for action in item.actions
            ]
        return params

    # -------------------------------------------------------------------------
    # Run time expansion
    # -------------------------------------------------------------------------

    async def _expand_actions(
        self,
        compiler: "FlowCompiler",
        actions: list[dict[str, Any]] | Callable[..., Any],
        vars: Vars,
        session: "Session",
        path: FlowPath,
        options: Options,
    ) -> list[dict[str, Any]]:
        if isinstance(actions, list):
            return await compiler.expand(actions, vars, session, path)
        raw = await compiler.expand(actions, vars, session, path)
        if raw is None:
            return []
        return [
            self._dynamic_action(compiler, a, options) for a in normalize_actions(raw, "reply")
        ]

    async def _expand_items(
        self,
        compiler: "FlowCompiler",
        items: list[dict[str, Any]] | Callable[..., Any],
        vars: Vars,
        session: "Session",
        path: FlowPath,
        options: Options,
    ) -> list[dict[str, Any]]:
        if isinstance(items, list):
            expanded = []
            for item in items:
                item_actions = item.get("actions")
                item = await compiler.expand(
                    {k: v for k, v in item.items() if k != "actions"}, vars, session, path
                )
                if item_actions is not None:
                    item["actions"] = await self._expand_actions(
                        compiler, item_actions, vars, session, path, options
                    )
                expanded.append(item)
            return expanded

        raw = await compiler.expand(items, vars, session, path)
        if raw is None:
            return []
        result = []
        for item in normalize_items(raw):
            params = item_params(item)
            if _is_dynamic(item.actions):
                raise InvalidActionError("Computed items cannot carry computed actions")
            if item.actions is not None:
                params["actions"] = [
                    self._dynamic_action(compiler, a, options) for a in item.actions
                ]
            result.append(params)
        return result

    def _dynamic_action(
        self, compiler: "FlowCompiler", action: Action, options: Options
    ) -> dict[str, Any]:
        if action.then is not None:
            raise InvalidActionError(
                f"Computed action {action.id!r} cannot carry a flow; use thenFlow to "
                "refer to an existing one"
            )
        params = action_params(action)
        if action.then_flow is not None:
            if action.type not in FLOW_ACTION_TYPES:
                raise InvalidActionError(
                    f"Action {action.id!r} of type {action.type} cannot carry a flow"
                )
            params["payload"] = compiler.registry.key(action.then_flow)
        elif action.type == "reply" and "payload" not in params and options.next_flow is not None:
            # Picking the reply resumes the rest of the sequence
            params["payload"] = compiler.registry.key(options.next_flow)
        return params
