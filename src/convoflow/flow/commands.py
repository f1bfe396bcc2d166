"""Canonical flow command models.

The normalizer turns every shorthand an author may write into one of these
models. Each command kind has its own class with only the relevant fields,
discriminated on ``type``. Parameters that are evaluated at run time
(templates, handlers, exec mappings) are typed ``Any``; nested flows are
lists of already-normalized commands or handlers.

Field aliases keep the authoring vocabulary (``if``, ``else``, ``mediaUrl``,
``thenFlow``) while the Python attributes stay valid identifiers.
"""

from collections.abc import Callable
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

MESSAGE_TYPES = ("text", "image", "list", "carousel")
ACTION_TYPES = ("reply", "postback", "link", "share", "buy", "locationRequest")

ActionType = Literal["reply", "postback", "link", "share", "buy", "locationRequest"]


class Negated:
    """A parameter whose expanded value is logically inverted.

    Produced by ``unless`` and ``until``; the expansion engine evaluates
    ``param`` (literal, template, handler or exec mapping) and negates it.
    """

    __slots__ = ("param",)

    def __init__(self, param: Any):
        self.param = param

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Negated) and other.param == self.param

    def __repr__(self) -> str:
        return f"Negated({self.param!r})"


class FlowModel(BaseModel):
    """Base model for everything that appears in a flow tree."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        extra="ignore",
    )


class Action(FlowModel):
    """A button or quick reply attached to a message or item."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    type: ActionType
    text: Any = None
    uri: Any = None
    payload: Any = None
    amount: Any = None
    currency: Any = None
    then: list[Any] | None = Field(default=None, description="Flow run when the action fires")
    then_flow: Any = Field(
        default=None, alias="thenFlow", description="Path of an existing flow to run instead"
    )


class Item(FlowModel):
    """An element of a list or carousel message."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    title: Any = None
    description: Any = None
    media_url: Any = Field(default=None, alias="mediaUrl")
    media_type: Any = Field(default=None, alias="mediaType")
    actions: list[Action] | Callable[..., Any] | None = None


class SwitchCase(FlowModel):
    """One case of a switch; ``case`` defaults to the id."""

    id: str
    case: Any = None
    do: list[Any] = Field(default_factory=list)

    @property
    def match_value(self) -> Any:
        return self.id if self.case is None else self.case


class BaseCommand(FlowModel):
    """Base configuration shared by all commands."""

    id: str


class MessageCommand(BaseCommand):
    """Base for commands that send a message. Unknown keys are sent as-is."""

    model_config = ConfigDict(extra="allow")

    text: Any = None
    media_url: Any = Field(default=None, alias="mediaUrl")
    media_type: Any = Field(default=None, alias="mediaType")
    actions: list[Action] | Callable[..., Any] | None = None
    items: list[Item] | Callable[..., Any] | None = None


class TextCommand(MessageCommand):
    type: Literal["text"] = "text"
    id: str = "text"


class ImageCommand(MessageCommand):
    type: Literal["image"] = "image"
    id: str = "image"


class ListCommand(MessageCommand):
    type: Literal["list"] = "list"
    id: str = "list"


class CarouselCommand(MessageCommand):
    type: Literal["carousel"] = "carousel"
    id: str = "carousel"


class ConditionalCommand(BaseCommand):
    """Run ``then`` or ``else`` depending on ``if``."""

    type: Literal["conditional"] = "conditional"
    id: str = "if"
    test: Any = Field(alias="if")
    then: list[Any] = Field(default_factory=list)
    else_: list[Any] = Field(default_factory=list, alias="else")


class SwitchCommand(BaseCommand):
    """Select a case by value; cases fall through unless they break."""

    type: Literal["switch"] = "switch"
    id: str = "switch"
    value: Any = Field(alias="switch")
    cases: list[SwitchCase] = Field(default_factory=list)
    default: list[Any] | None = None


class IterationCommand(BaseCommand):
    """Loop with initializer, condition and increment maps."""

    type: Literal["iteration"] = "iteration"
    id: str = "loop"
    init: dict[str, Any] = Field(default_factory=dict)
    condition: Any = True
    increment: dict[str, Any] = Field(default_factory=dict)
    do: list[Any] = Field(default_factory=list)


class StartCommand(BaseCommand):
    """Start a sub-dialog; ``then`` runs when its result arrives."""

    type: Literal["start"] = "start"
    id: str = "start"
    start: Any
    args: Any = None
    then: list[Any] | None = None


class FinishCommand(BaseCommand):
    """End the current dialog frame with a result."""

    type: Literal["finish"] = "finish"
    id: str = "finish"
    finish: Any = None


class SetCommand(BaseCommand):
    """Assign session variables."""

    type: Literal["set"] = "set"
    id: str = "set"
    set: dict[str, Any]


class ExecCommand(BaseCommand):
    """Run a named handler for its effect."""

    type: Literal["exec"] = "exec"
    id: str = "exec"
    exec: Any
    args: Any = None


class WaitCommand(BaseCommand):
    type: Literal["wait"] = "wait"
    id: str = "wait"
    seconds: Any = 0


class BreakCommand(BaseCommand):
    type: Literal["break"] = "break"
    id: str = "break"


class ContinueCommand(BaseCommand):
    type: Literal["continue"] = "continue"
    id: str = "continue"


class SubFlowCommand(BaseCommand):
    """Explicitly named sub-flow, addressable under its own id."""

    type: Literal["flow"] = "flow"
    flow: list[Any] = Field(default_factory=list)


Command = Annotated[
    TextCommand
    | ImageCommand
    | ListCommand
    | CarouselCommand
    | ConditionalCommand
    | SwitchCommand
    | IterationCommand
    | StartCommand
    | FinishCommand
    | SetCommand
    | ExecCommand
    | WaitCommand
    | BreakCommand
    | ContinueCommand
    | SubFlowCommand,
    Field(discriminator="type"),
]

COMMAND_MODELS: dict[str, type[BaseCommand]] = {
    "text": TextCommand,
    "image": ImageCommand,
    "list": ListCommand,
    "carousel": CarouselCommand,
    "conditional": ConditionalCommand,
    "switch": SwitchCommand,
    "iteration": IterationCommand,
    "start": StartCommand,
    "finish": FinishCommand,
    "set": SetCommand,
    "exec": ExecCommand,
    "wait": WaitCommand,
    "break": BreakCommand,
    "continue": ContinueCommand,
    "flow": SubFlowCommand,
}

COMMAND_TYPES = tuple(COMMAND_MODELS)


def to_raw(command: BaseCommand) -> dict[str, Any]:
    """Dump a command back to its authoring (aliased) dict form."""
    return command.model_dump(by_alias=True, exclude_none=True)


__all__ = [
    "ACTION_TYPES",
    "COMMAND_MODELS",
    "COMMAND_TYPES",
    "MESSAGE_TYPES",
    "Action",
    "ActionType",
    "BaseCommand",
    "BreakCommand",
    "CarouselCommand",
    "Command",
    "ConditionalCommand",
    "ContinueCommand",
    "ExecCommand",
    "FinishCommand",
    "ImageCommand",
    "Item",
    "IterationCommand",
    "ListCommand",
    "MessageCommand",
    "Negated",
    "SetCommand",
    "StartCommand",
    "SubFlowCommand",
    "SwitchCase",
    "SwitchCommand",
    "TextCommand",
    "WaitCommand",
    "to_raw",
]
