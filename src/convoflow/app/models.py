"""Notification models.

Inbound notifications describe one event of one session: which frame it
concerns, the session variables, and event data (user input, a picked
action, or the result of a completed frame).
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Frame(BaseModel):
    """A dialog frame on the session stack."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    dialog: str | None = None
    tag: str | None = None
    locals: dict[str, Any] = Field(default_factory=dict)
    result: Any = None


class SessionSnapshot(BaseModel):
    """Session state carried by a notification."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    globals: dict[str, Any] = Field(default_factory=dict)
    volatiles: dict[str, Any] = Field(default_factory=dict)
    stack: list[Frame] = Field(default_factory=list, description="Top of stack first")
    completed_frame: Frame | None = Field(default=None, alias="completedFrame")

    @field_validator("completed_frame", mode="before")
    @classmethod
    def first_completed_frame(cls, value: Any) -> Any:
        """Accept a list of completed frames; the most recent comes first."""
        if isinstance(value, list):
            return value[0] if value else None
        return value

    @property
    def current_frame(self) -> Frame:
        return self.stack[0] if self.stack else Frame()


class MessageData(BaseModel):
    """User input: an intent with entities, a payload, or a postback."""

    model_config = ConfigDict(extra="allow")

    text: str | None = None
    intent: str | None = None
    entities: dict[str, Any] = Field(default_factory=dict)
    payload: str | None = None
    postback: str | None = None
    args: Any = None


class Notification(BaseModel):
    """One inbound event."""

    event: str
    session: SessionSnapshot
    data: MessageData = Field(default_factory=MessageData)
