"""Logging configuration for convoflow.

Records logged through a ``ContextLogger`` adapter carry the conversation
they belong to (session, dialog, ...). ``setup_logging`` installs a filter
that gives every record those fields, so the console format can print them
and the JSON file handler emits them as keys.
"""

import logging
import logging.config
from collections.abc import MutableMapping
from typing import Any

# Fields shown in every console line; "-" when a record has no conversation
CONTEXT_FIELDS = ("dialog", "session_id")

CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(dialog)s/%(session_id)s] %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(dialog)s %(session_id)s %(message)s"


class ConversationContextFilter(logging.Filter):
    """Fills in missing conversation fields so formatters can rely on them."""

    def filter(self, record: logging.LogRecord) -> bool:
        for field in CONTEXT_FIELDS:
            if getattr(record, field, None) is None:
                setattr(record, field, "-")
        return True


def setup_logging(level: str = "WARNING", log_file: str | None = None) -> None:
    """
    Configure the ``convoflow`` logger.

    Args:
        level: Log level name, case insensitive
        log_file: Optional path of a rotating file receiving JSON records
    """
    level = level.upper()
    handlers: dict[str, dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "filters": ["conversation"],
            "level": level,
        },
    }
    formatters: dict[str, dict[str, Any]] = {
        "console": {"format": CONSOLE_FORMAT, "datefmt": "%H:%M:%S"},
    }

    if log_file:
        formatters["json"] = {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": JSON_FORMAT,
        }
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "formatter": "json",
            "filters": ["conversation"],
            "level": level,
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"conversation": {"()": ConversationContextFilter}},
            "formatters": formatters,
            "handlers": handlers,
            "loggers": {
                "convoflow": {"handlers": list(handlers), "level": level, "propagate": False},
            },
        }
    )


class ConversationAdapter(logging.LoggerAdapter):
    """Adapter whose context is merged with any ``extra`` given per call."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs


class ContextLogger:
    """Logger factory binding conversation context to a module logger."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def with_context(self, **context: Any) -> ConversationAdapter:
        """Bind context fields such as ``session_id`` and ``dialog``."""
        return ConversationAdapter(self.logger, context)
