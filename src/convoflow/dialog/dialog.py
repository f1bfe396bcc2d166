"""Dialog handler tables.

A dialog reacts to the events of the frames running it. Handlers are async
``(session, value)`` callables registered per event kind:

- start: the frame was just started
- intent: the user said something classified as an intent
- result: a frame this dialog started has finished
- postback / payload: the user picked an action carrying a key
- default: nothing else matched
"""

from typing import Any

from convoflow.core.types import ResultHandler

WILDCARD = "*"


class Dialog:
    """A named set of event handlers."""

    def __init__(self, name: str, nlp_model_name: str | None = None):
        if not isinstance(name, str) or not name:
            raise ValueError(f"Dialog name must be a non-empty string, got {name!r}")
        self.name = name
        self.nlp_model_name = nlp_model_name
        # Dialog name that result handlers of computed start targets register under
        self.wildcard = WILDCARD
        self.start_handler: ResultHandler | None = None
        self.default_handler: ResultHandler | None = None
        self.intent_handlers: dict[str, ResultHandler] = {}
        self.result_handlers: dict[tuple[str, str | None], ResultHandler] = {}
        self.postback_handlers: dict[str, ResultHandler] = {}
        self.payload_handlers: dict[str, ResultHandler] = {}

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def on_start(self, handler: ResultHandler) -> ResultHandler:
        self.start_handler = handler
        return handler

    def on_intent(self, intent: str, handler: ResultHandler) -> ResultHandler:
        self.intent_handlers[intent] = handler
        return handler

    def on_result(self, dialog: str, tag: str | None, handler: ResultHandler) -> ResultHandler:
        """Handle the result of ``dialog`` started with ``tag``; ``"*"`` matches any dialog."""
        self.result_handlers[(dialog, tag)] = handler
        return handler

    def on_postback(self, key: str, handler: ResultHandler) -> ResultHandler:
        self.postback_handlers[key] = handler
        return handler

    def on_payload(self, key: str, handler: ResultHandler) -> ResultHandler:
        self.payload_handlers[key] = handler
        return handler

    def on_default(self, handler: ResultHandler) -> ResultHandler:
        self.default_handler = handler
        return handler

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get_intent_handler(self, intent: str) -> ResultHandler | None:
        return self.intent_handlers.get(intent)

    def get_result_handler(self, dialog: str | None, tag: str | None) -> ResultHandler | None:
        handler = self.result_handlers.get((dialog, tag)) if dialog is not None else None
        return handler or self.result_handlers.get((self.wildcard, tag))

    def get_postback_handler(self, key: str) -> ResultHandler | None:
        return self.postback_handlers.get(key)

    def get_payload_handler(self, key: str) -> ResultHandler | None:
        return self.payload_handlers.get(key)

    def to_object(self) -> dict[str, Any]:
        """Summary of the events this dialog handles."""
        patterns: list[dict[str, Any]] = [{"intent": intent} for intent in self.intent_handlers]
        patterns += [{"result": [dialog, tag]} for dialog, tag in self.result_handlers]
        return {
            "name": self.name,
            "nlp_model_name": self.nlp_model_name,
            "patterns": patterns,
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
