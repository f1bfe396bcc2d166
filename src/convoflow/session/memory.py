"""In-memory session that records its effects."""

from typing import Any

from convoflow.session.session import Session


class MemorySession(Session):
    """Session whose transport hooks record effects in lists.

    Useful for tests and for running flows locally: ``sent`` holds the
    messages, ``started`` the ``(dialog, tag, locals)`` of started frames,
    ``finished`` the results and ``saves`` snapshots of saved variables.
    """

    def __init__(self, id: str = "memory-session", *args: Any, **kwargs: Any):
        super().__init__(id, *args, **kwargs)
        self.sent: list[dict[str, Any]] = []
        self.started: list[tuple[str, str | None, dict[str, Any]]] = []
        self.finished: list[Any] = []
        self.saves: list[dict[str, dict[str, Any]]] = []

    @property
    def texts(self) -> list[Any]:
        """Text of every message sent so far."""
        return [message.get("text") for message in self.sent]

    async def _start_frame(self, dialog: str, tag: str | None, locals: dict[str, Any]) -> None:
        self.started.append((dialog, tag, locals))

    async def _end_frame(self, result: Any) -> None:
        self.finished.append(result)

    async def _update(self, globals: dict[str, Any], locals: dict[str, Any]) -> None:
        self.saves.append({"globals": dict(globals), "locals": dict(locals)})

    async def _send_message(self, message: dict[str, Any]) -> None:
        self.sent.append(message)
