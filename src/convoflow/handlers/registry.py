"""Registry of named handlers referenced by ``exec`` from flows."""

import inspect
import logging
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from convoflow.core.errors import UndefinedHandlerError

logger = logging.getLogger(__name__)

# Named handlers receive the merged handler variables and exec arguments
NamedHandler = Callable[..., Any]


class HandlerRegistry:
    """Registry for named handlers.

    Flows refer to Python code by name only (``exec: lookup_order``), so the
    YAML never carries import paths.

    Usage:
        handlers = HandlerRegistry()

        @handlers.register("lookup_order")
        async def lookup_order(vars):
            return {"status": "shipped"}

        result = await handlers.execute("lookup_order", {"order_id": "123"})
    """

    def __init__(self, handlers: Mapping[str, NamedHandler] | None = None) -> None:
        self._handlers: dict[str, NamedHandler] = dict(handlers or {})

    def register_handler(self, name: str, handler: NamedHandler) -> None:
        """Register a handler under ``name``, replacing any previous one."""
        if name in self._handlers:
            logger.debug(f"Replacing handler '{name}'")
        self._handlers[name] = handler

    def register(self, name: str | None = None) -> Callable[[NamedHandler], NamedHandler]:
        """Decorator form of register_handler; defaults to the function name."""

        def decorator(handler: NamedHandler) -> NamedHandler:
            self.register_handler(name or handler.__name__, handler)
            return handler

        return decorator

    def get(self, name: str) -> NamedHandler:
        try:
            return self._handlers[name]
        except KeyError:
            raise UndefinedHandlerError(name) from None

    async def execute(self, name: str, vars: Mapping[str, Any]) -> Any:
        """Execute a handler with the given variables.

        Args:
            name: Registered handler name
            vars: Handler variables merged with the exec arguments

        Returns:
            Whatever the handler returns, awaited if it is awaitable

        Raises:
            UndefinedHandlerError: If no handler is registered under name
        """
        handler = self.get(name)
        logger.debug(f"Executing handler '{name}'")

        try:
            sig = inspect.signature(handler)
        except ValueError:
            # Cannot inspect (e.g. built-in), pass vars directly
            result = handler(dict(vars))
        else:
            params = sig.parameters
            if not params:
                result = handler()
            elif (
                len(params) == 1
                or next(iter(params)) == "vars"
                or any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params.values())
            ):
                result = handler(dict(vars))
            else:
                # Match variables to keyword arguments
                kwargs = {k: v for k, v in vars.items() if k in params}
                result = handler(**kwargs)

        if inspect.isawaitable(result):
            result = await result
        return result

    def names(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)
