"""Notification dispatch.

``DialogApp`` owns the dialogs of an application and routes each inbound
notification to the handler of the dialog running the session's current
frame. Missing handlers are logged and the event is dropped.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from convoflow.app.models import Notification, SessionSnapshot
from convoflow.core.errors import ConfigError
from convoflow.dialog.dialog import Dialog
from convoflow.observability.logging import ContextLogger
from convoflow.session.memory import MemorySession
from convoflow.session.session import Session

logger = logging.getLogger(__name__)

SessionFactory = Callable[..., Session]
EventHandler = Callable[[Notification], Awaitable[None] | None]


class DialogApp:
    """Routes notifications to dialogs."""

    def __init__(
        self,
        dialogs: Iterable[Dialog] | None = None,
        session_factory: SessionFactory | None = None,
    ):
        self.dialogs: dict[str, Dialog] = {}
        self.session_factory = session_factory or MemorySession.from_snapshot
        self.event_handlers: dict[str, EventHandler] = {}
        if dialogs:
            self.add_dialogs(*dialogs)

    def add_dialogs(self, *dialogs: Dialog | Iterable[Dialog]) -> None:
        for dialog in dialogs:
            if isinstance(dialog, Dialog):
                logger.debug(f"Added dialog {dialog.name}")
                self.dialogs[dialog.name] = dialog
            elif isinstance(dialog, Iterable) and not isinstance(dialog, (str, Mapping)):
                self.add_dialogs(*dialog)
            else:
                raise ConfigError(f"Expecting a Dialog instance, but received {dialog!r}")

    def get_dialog(self, name: str) -> Dialog | None:
        return self.dialogs.get(name)

    def on_event(self, event: str, handler: EventHandler) -> None:
        """Run handler for every notification of this event, besides frame dispatch."""
        self.event_handlers[event] = handler

    def session_from_snapshot(self, snapshot: SessionSnapshot) -> Session:
        return self.session_factory(snapshot, app=self)

    async def handle_notification(self, notification: Mapping[str, Any] | Notification) -> None:
        """Validate a notification and dispatch it.

        Raises:
            ConfigError: If the notification is malformed
        """
        if not isinstance(notification, Notification):
            try:
                notification = Notification.model_validate(notification)
            except ValidationError as e:
                raise ConfigError(f"Invalid notification: {e}") from e

        app_handler = self.event_handlers.get(notification.event)
        if app_handler is not None:
            result = app_handler(notification)
            if inspect.isawaitable(result):
                await result

        if notification.event.startswith("frame_"):
            await self.handle_frame_event(notification)

    async def handle_frame_event(self, notification: Notification) -> None:
        session = self.session_from_snapshot(notification.session)
        log = ContextLogger(__name__).with_context(
            session_id=session.id, event=notification.event
        )
        dialog = self.get_dialog(session.dialog_name or "")
        if dialog is None:
            log.warning(f"No dialog named {session.dialog_name!r} for session {session.id}")
            return

        event = notification.event
        if event == "frame_start":
            await self._dispatch(
                log, dialog.start_handler, session, None, f"start of {dialog.name}"
            )
        elif event in ("frame_result", "frame_end"):
            await self._handle_result(log, dialog, session, notification)
        elif event in ("frame_input", "frame_message"):
            await self._handle_input(log, dialog, session, notification)
        elif event == "frame_default":
            await self._dispatch(
                log,
                dialog.default_handler,
                session,
                notification.data,
                f"default of {dialog.name}",
            )
        else:
            log.warning(f"Unhandled frame event {event}")

    async def _handle_result(
        self,
        log: logging.LoggerAdapter,
        dialog: Dialog,
        session: Session,
        notification: Notification,
    ) -> None:
        completed = notification.session.completed_frame
        if completed is None:
            log.error(f"Result event without a completed frame in dialog {dialog.name}")
            return
        handler = dialog.get_result_handler(completed.dialog, completed.tag)
        if handler is None:
            log.error(
                f"Couldn't find result handler for {completed.dialog}.{completed.tag} "
                f"in dialog {dialog.name}"
            )
            return
        await handler(session, completed.result)

    async def _handle_input(
        self,
        log: logging.LoggerAdapter,
        dialog: Dialog,
        session: Session,
        notification: Notification,
    ) -> None:
        data = notification.data
        if data.payload:
            await self._dispatch(
                log, dialog.get_payload_handler(data.payload), session, data.text, data.payload
            )
        elif data.postback:
            await self._dispatch(
                log, dialog.get_postback_handler(data.postback), session, data.args, data.postback
            )
        elif data.intent and dialog.get_intent_handler(data.intent):
            handler = dialog.get_intent_handler(data.intent)
            await self._dispatch(log, handler, session, data.entities, data.intent)
        elif dialog.default_handler is not None:
            await dialog.default_handler(session, data)
        else:
            log.warning(
                f"Dialog {dialog.name} received intent {data.intent}, but no handler found"
            )

    async def _dispatch(
        self,
        log: logging.LoggerAdapter,
        handler: Callable[[Session, Any], Awaitable[None]] | None,
        session: Session,
        value: Any,
        description: str,
    ) -> None:
        if handler is None:
            log.warning(f"Couldn't find handler for {description}")
            return
        await handler(session, value)
