"""Parameter expansion.

Every runtime parameter of a command (message text, conditions, ``set``
values, ``start`` arguments, ...) goes through ``ParamExpander.expand``:

- handlers are called with as many of ``(vars, session, path)`` as they accept
- lists and mappings are expanded element-wise, concurrently
- ``{"exec": name, "args": {...}}`` runs a named handler
- strings containing ``{{`` are rendered as Jinja2 templates
"""

import asyncio
import inspect
import logging
import re
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from cachetools import LRUCache
from jinja2 import ChainableUndefined, Environment, Template
from pydantic import BaseModel

from convoflow.core.errors import UndefinedHandlerError
from convoflow.core.types import FlowPath, Vars
from convoflow.flow.accessor import lookup
from convoflow.flow.commands import Negated
from convoflow.handlers.registry import HandlerRegistry

if TYPE_CHECKING:
    from convoflow.session.session import Session

logger = logging.getLogger(__name__)

TEMPLATE_MARKERS = ("{{", "{%")
DESTRUCTURE_PATTERN = re.compile(r"^\{\s*([A-Za-z_]\w*(?:\s*,\s*[A-Za-z_]\w*)*)\s*\}$")


def _positional_arity(fn: Callable[..., Any]) -> int | None:
    """Number of positional parameters fn accepts; None means unlimited."""
    try:
        params = inspect.signature(fn).parameters.values()
    except (ValueError, TypeError):
        return 1
    count = 0
    for param in params:
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            count += 1
    return count


async def call_handler(
    fn: Callable[..., Any], vars: Vars, session: "Session | None", path: FlowPath
) -> Any:
    """Call a value handler and await its result if needed."""
    args = (vars, session, path)
    arity = _positional_arity(fn)
    result = fn(*(args if arity is None else args[:arity]))
    if inspect.isawaitable(result):
        result = await result
    return result


def parse_destructuring(key: str) -> list[str] | None:
    """``"{a, b}"`` -> ``["a", "b"]``; None for ordinary keys."""
    match = DESTRUCTURE_PATTERN.match(key.strip())
    if not match:
        return None
    return [name.strip() for name in match.group(1).split(",")]


def _finalize(value: Any) -> Any:
    # None renders as an empty string rather than "None"
    return "" if value is None else value


class ParamExpander:
    """Evaluates command parameters against handler variables."""

    def __init__(
        self,
        handlers: HandlerRegistry | Mapping[str, Callable[..., Any]] | None = None,
        template_cache_size: int = 256,
    ):
        if isinstance(handlers, HandlerRegistry):
            self.handlers = handlers
        else:
            self.handlers = HandlerRegistry(handlers)
        self.env = Environment(undefined=ChainableUndefined, finalize=_finalize, autoescape=False)
        self._templates: LRUCache[str, Template] = LRUCache(maxsize=template_cache_size)

    async def expand(
        self, param: Any, vars: Vars, session: "Session | None" = None, path: FlowPath = ()
    ) -> Any:
        if isinstance(param, Negated):
            return not await self.expand(param.param, vars, session, path)
        if isinstance(param, BaseModel):
            return param
        if callable(param):
            return await call_handler(param, vars, session, path)
        if isinstance(param, (list, tuple)):
            return list(await asyncio.gather(*(self.expand(p, vars, session, path) for p in param)))
        if isinstance(param, Mapping):
            if "exec" in param:
                return await self.exec(param, vars, session, path)
            return await self._expand_mapping(param, vars, session, path)
        if isinstance(param, str):
            return self.render(param, vars)
        return param

    async def _expand_mapping(
        self, param: Mapping[str, Any], vars: Vars, session: "Session | None", path: FlowPath
    ) -> dict[str, Any]:
        keys = list(param)
        values = await asyncio.gather(*(self.expand(param[k], vars, session, path) for k in keys))
        return {k: v for k, v in zip(keys, values) if v is not None}

    async def exec(
        self, param: Mapping[str, Any], vars: Vars, session: "Session | None" = None, path: FlowPath = ()
    ) -> Any:
        """Run the named handler of an exec mapping.

        Accepts ``{"exec": name}``, ``{"exec": name, "args": {...}}`` and
        ``{"exec": [name, args]}``. The handler is called with the handler
        variables overlaid with the expanded args.
        """
        target = param["exec"]
        args = param.get("args")
        if isinstance(target, (list, tuple)) and 1 <= len(target) <= 2:
            name = target[0]
            if len(target) == 2:
                args = target[1]
        else:
            name = target
        if not isinstance(name, str):
            raise UndefinedHandlerError(repr(name))

        expanded_args = await self.expand(args, vars, session, path) if args is not None else {}
        if not isinstance(expanded_args, Mapping):
            raise UndefinedHandlerError(
                f"{name} (expecting a mapping of arguments, but received {expanded_args!r})"
            )
        return await self.handlers.execute(name, {**vars, **expanded_args})

    async def expand_set(
        self, param: Mapping[str, Any], vars: Vars, session: "Session | None" = None, path: FlowPath = ()
    ) -> dict[str, Any]:
        """Expand a ``set`` mapping.

        A key like ``"{a, b}"`` evaluates its value once and assigns its
        members ``a`` and ``b``. Unlike plain expansion, None values are kept
        so a variable can be cleared.
        """
        keys = list(param)
        values = await asyncio.gather(*(self.expand(param[k], vars, session, path) for k in keys))
        result: dict[str, Any] = {}
        for key, value in zip(keys, values):
            names = parse_destructuring(key)
            if names is None:
                result[key] = value
            else:
                for name in names:
                    result[name] = lookup(value, name)
        return result

    def render(self, text: str, vars: Vars) -> str:
        """Render a template string; strings without markers are returned as-is."""
        if not any(marker in text for marker in TEMPLATE_MARKERS):
            return text
        template = self._templates.get(text)
        if template is None:
            logger.debug(f"Compiling template {text!r}")
            template = self.env.from_string(text)
            self._templates[text] = template
        return template.render(dict(vars))
