"""Flow handler registry.

Maps flow keys to compiled handlers. Each key is written exactly once, at
dialog construction; at request time handlers are only looked up.
"""

import difflib
import logging
from collections.abc import Iterator
from typing import Any

from convoflow.core.errors import (
    DuplicateFlowKeyError,
    InvalidFlowPathError,
    UndefinedFlowHandlerError,
)
from convoflow.core.types import FlowHandler
from convoflow.flow.path import flow_key

logger = logging.getLogger(__name__)


class FlowHandlerRegistry:
    """Registry of compiled flow handlers for one dialog."""

    def __init__(self, dialog_name: str):
        self.dialog_name = dialog_name
        self._handlers: dict[str, FlowHandler] = {}

    def key(self, path: Any) -> str:
        """Qualified flow key of a path (or relative key string)."""
        return flow_key(self.dialog_name, path)

    def add(self, path: Any, handler: FlowHandler) -> FlowHandler:
        """Register handler at path.

        Raises:
            DuplicateFlowKeyError: If the key is already registered
        """
        key = self.key(path)
        if key in self._handlers:
            raise DuplicateFlowKeyError(key)
        logger.debug(f"Registered flow handler {key}")
        self._handlers[key] = handler
        return handler

    def get(self, path: Any) -> FlowHandler:
        """Look up the handler at path.

        Raises:
            UndefinedFlowHandlerError: With the closest registered key as a suggestion
        """
        key = self.key(path)
        handler = self._handlers.get(key)
        if handler is None:
            raise UndefinedFlowHandlerError(key, self.suggest(key))
        return handler

    def suggest(self, key: str) -> str | None:
        """Closest registered key, or None if nothing is registered."""
        matches = difflib.get_close_matches(key, list(self._handlers), n=1, cutoff=0.0)
        return matches[0] if matches else None

    def keys(self) -> list[str]:
        return list(self._handlers)

    def __contains__(self, path: object) -> bool:
        try:
            return self.key(path) in self._handlers
        except InvalidFlowPathError:
            return False

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)
