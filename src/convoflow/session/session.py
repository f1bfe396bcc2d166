"""Conversation session.

A session is the per-request view of a conversation: its global variables,
the current dialog frame (dialog name, tag and local variables) and the
volatile variables of this request. Effects (saving variables, sending
messages, starting and finishing frames) go through transport hooks
implemented by subclasses.

After ``start()`` or ``finish()`` the current frame belongs to someone
else, so the session locks and every further effect raises.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from convoflow.core.errors import SessionError, SessionLockedError
from convoflow.observability.logging import ContextLogger

if TYPE_CHECKING:
    from convoflow.app.dispatcher import DialogApp
    from convoflow.app.models import SessionSnapshot
    from convoflow.dialog.dialog import Dialog

VOLATILE_PREFIX = "_"


def variable_scope(name: str) -> str:
    """``_name`` is volatile, ``Name`` is global, anything else is local."""
    if name.startswith(VOLATILE_PREFIX):
        return "volatiles"
    if name[:1].isupper():
        return "globals"
    return "locals"


def infer_message_type(message: Mapping[str, Any]) -> str:
    if message.get("mediaUrl") is not None:
        return "image"
    if message.get("items") is not None:
        return "list"
    if message.get("text") is not None:
        return "text"
    raise SessionError(f"Unable to infer the type of message {dict(message)!r}")


class Session(ABC):
    """Base session; subclasses implement the transport hooks."""

    def __init__(
        self,
        id: str,
        globals: Mapping[str, Any] | None = None,
        current_frame: Mapping[str, Any] | None = None,
        volatiles: Mapping[str, Any] | None = None,
        app: "DialogApp | None" = None,
    ):
        if not id:
            raise SessionError("A session requires an id")
        frame = dict(current_frame or {})
        self._id = id
        self._globals: dict[str, Any] = dict(globals or {})
        self._locals: dict[str, Any] = dict(frame.get("locals") or {})
        self._volatiles: dict[str, Any] = dict(volatiles or {})
        self._frame_id: str | None = frame.get("id")
        self._dialog_name: str | None = frame.get("dialog")
        self._tag: str | None = frame.get("tag")
        self.app = app
        self.locked = False
        self.log = ContextLogger(__name__).with_context(
            session_id=id, frame_id=self._frame_id, dialog=self._dialog_name
        )

    @classmethod
    def from_snapshot(cls, snapshot: "SessionSnapshot", **kwargs: Any) -> "Session":
        """Create a session from a validated notification snapshot."""
        return cls(
            snapshot.id,
            globals=snapshot.globals,
            current_frame=snapshot.current_frame.model_dump(),
            volatiles=snapshot.volatiles,
            **kwargs,
        )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def frame_id(self) -> str | None:
        return self._frame_id

    @property
    def dialog_name(self) -> str | None:
        return self._dialog_name

    @property
    def dialog(self) -> "Dialog | None":
        if self.app is None or self._dialog_name is None:
            return None
        return self.app.get_dialog(self._dialog_name)

    @property
    def tag(self) -> str | None:
        return self._tag

    @property
    def globals(self) -> dict[str, Any]:
        return self._globals

    @property
    def locals(self) -> dict[str, Any]:
        return self._locals

    @property
    def volatiles(self) -> dict[str, Any]:
        return self._volatiles

    def get(self, name: str, default: Any = None) -> Any:
        """Look up a variable; volatiles shadow locals, locals shadow globals."""
        for scope in (self._volatiles, self._locals, self._globals):
            if name in scope:
                return scope[name]
        return default

    def set(self, name: str | Mapping[str, Any], value: Any = None) -> None:
        """Set one variable, or every key of a mapping, in its scope."""
        if isinstance(name, Mapping):
            for key, val in name.items():
                self.set(key, val)
            return
        if not isinstance(name, str) or not name:
            raise SessionError(f"Invalid variable name: {name!r}")
        getattr(self, f"_{variable_scope(name)}")[name] = value

    # -------------------------------------------------------------------------
    # Effects
    # -------------------------------------------------------------------------

    def check_lock(self) -> None:
        if self.locked:
            raise SessionLockedError(
                "Session locked: no operations allowed after start() or finish()"
            )

    async def save(self, values: Mapping[str, Any] | None = None) -> None:
        """Set values (if given) and persist globals and locals."""
        self.check_lock()
        if values:
            self.set(values)
        self.log.debug("Saving session variables")
        await self._update(self._globals, self._locals)

    async def send(self, message: str | Mapping[str, Any]) -> None:
        """Send a message; a string is sent as a text message."""
        self.check_lock()
        if isinstance(message, str):
            params: dict[str, Any] = {"type": "text", "text": message}
        elif isinstance(message, Mapping):
            params = dict(message)
            params.setdefault("type", infer_message_type(params))
        else:
            raise SessionError(f"Expecting a string or mapping message, but received {message!r}")
        self.log.debug(f"Sending {params['type']} message")
        await self._send_message(params)

    async def start(
        self, dialog: str, tag: str | None = None, locals: Mapping[str, Any] | None = None
    ) -> None:
        """Start a new frame running ``dialog``; its result is routed by tag."""
        self.check_lock()
        self.locked = True
        try:
            self.log.debug(f"Starting dialog {dialog} (tag={tag})")
            await self._start_frame(dialog, tag, dict(locals or {}))
        except Exception:
            self.locked = False
            raise

    async def finish(self, result: Any = None) -> None:
        """End the current frame, handing result to the parent frame."""
        self.check_lock()
        self.locked = True
        try:
            self.log.debug("Finishing frame")
            await self._end_frame(result)
        except Exception:
            self.locked = False
            raise

    # -------------------------------------------------------------------------
    # Transport hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    async def _start_frame(self, dialog: str, tag: str | None, locals: dict[str, Any]) -> None:
        """Push a frame for dialog onto the session stack."""

    @abstractmethod
    async def _end_frame(self, result: Any) -> None:
        """Pop the current frame with a result."""

    @abstractmethod
    async def _update(self, globals: dict[str, Any], locals: dict[str, Any]) -> None:
        """Persist variables."""

    @abstractmethod
    async def _send_message(self, message: dict[str, Any]) -> None:
        """Deliver a message to the user."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._id} dialog={self._dialog_name}>"
