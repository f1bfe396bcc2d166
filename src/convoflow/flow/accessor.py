"""Variable access combinators for flow expressions.

Instead of writing ``lambda vars: vars["order"]["total"] > 100`` an author
can write ``var("order.total").gt(100)``. Every method returns a new
accessor, and accessors are callable with the handler variables, so they can
be used anywhere a handler is accepted (``if``, ``switch``, ``set`` values,
``start`` parameters, ...).

    >>> var("a.b").gt(3)({"a": {"b": 4}})
    True
    >>> var("name").call("lower")({"name": "ADA"})
    'ada'

Arguments that are themselves accessors are resolved against the same
variables: ``var("a").equals(var("b"))``.
"""

import operator
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from convoflow.core.types import Vars


def lookup(value: Any, key: Any) -> Any:
    """Get a member of a mapping, sequence or object; None when absent."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        return value.get(key)
    if isinstance(value, Sequence) and not isinstance(value, str):
        try:
            return value[int(key)]
        except (ValueError, IndexError, TypeError):
            return None
    if isinstance(key, str):
        return getattr(value, key, None)
    return None


def _ordering(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    # Ordering against a missing value is false rather than a TypeError
    def compare(value: Any, other: Any) -> bool:
        if value is None or other is None:
            return False
        try:
            return bool(op(value, other))
        except TypeError:
            return False

    return compare


def _arithmetic(op: Callable[[Any, Any], Any]) -> Callable[[Any, Any], Any]:
    def compute(value: Any, other: Any) -> Any:
        if value is None or other is None:
            return None
        return op(value, other)

    return compute


class Accessor:
    """A composable ``(vars) -> value`` function."""

    __slots__ = ("_resolve", "_description")

    def __init__(self, resolve: Callable[[Vars], Any], description: str = "vars"):
        self._resolve = resolve
        self._description = description

    def __call__(self, vars: Vars, *_: Any) -> Any:
        return self._resolve(vars)

    def __repr__(self) -> str:
        return f"<Accessor {self._description}>"

    def _resolve_arg(self, arg: Any, vars: Vars) -> Any:
        return arg(vars) if isinstance(arg, Accessor) else arg

    def _derive(self, fn: Callable[[Any, Vars], Any], label: str) -> "Accessor":
        parent = self._resolve
        return Accessor(lambda vars: fn(parent(vars), vars), f"{self._description}{label}")

    def _binary(self, op: Callable[[Any, Any], Any], other: Any, name: str) -> "Accessor":
        return self._derive(
            lambda value, vars: op(value, self._resolve_arg(other, vars)),
            f".{name}({other!r})",
        )

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def attr(self, name: str) -> "Accessor":
        return self._derive(lambda value, _: lookup(value, name), f".{name}")

    def item(self, index: Any) -> "Accessor":
        return self._derive(lambda value, _: lookup(value, index), f"[{index!r}]")

    def get(self, path: str) -> "Accessor":
        """Follow a dotted path, e.g. ``get("order.items.0")``."""
        accessor = self
        for segment in path.split("."):
            if segment:
                accessor = accessor.attr(segment)
        return accessor

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------

    def apply(self, fn: Callable[..., Any], *args: Any) -> "Accessor":
        """Apply ``fn(value, *args)``."""
        if not callable(fn):
            raise TypeError(f"Expecting a function argument to apply, but received {fn!r}")
        return self._derive(
            lambda value, vars: fn(value, *(self._resolve_arg(a, vars) for a in args)),
            f".apply({getattr(fn, '__name__', fn)!r})",
        )

    def call(self, method: str, *args: Any) -> "Accessor":
        """Call a method of the value, e.g. ``call("lower")``; None if it has none."""

        def invoke(value: Any, vars: Vars) -> Any:
            bound = getattr(value, method, None)
            if value is None or not callable(bound):
                return None
            return bound(*(self._resolve_arg(a, vars) for a in args))

        return self._derive(invoke, f".{method}()")

    # -------------------------------------------------------------------------
    # Comparison
    # -------------------------------------------------------------------------

    def gt(self, other: Any) -> "Accessor":
        return self._binary(_ordering(operator.gt), other, "gt")

    def gte(self, other: Any) -> "Accessor":
        return self._binary(_ordering(operator.ge), other, "gte")

    def lt(self, other: Any) -> "Accessor":
        return self._binary(_ordering(operator.lt), other, "lt")

    def lte(self, other: Any) -> "Accessor":
        return self._binary(_ordering(operator.le), other, "lte")

    def equals(self, other: Any) -> "Accessor":
        return self._binary(operator.eq, other, "equals")

    def not_equals(self, other: Any) -> "Accessor":
        return self._binary(operator.ne, other, "not_equals")

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------

    def is_truthy(self) -> "Accessor":
        return self._derive(lambda value, _: bool(value), ".is_truthy()")

    def is_falsy(self) -> "Accessor":
        return self._derive(lambda value, _: not value, ".is_falsy()")

    def is_none(self) -> "Accessor":
        return self._derive(lambda value, _: value is None, ".is_none()")

    def is_string(self) -> "Accessor":
        return self._derive(lambda value, _: isinstance(value, str), ".is_string()")

    def is_list(self) -> "Accessor":
        return self._derive(lambda value, _: isinstance(value, (list, tuple)), ".is_list()")

    def is_dict(self) -> "Accessor":
        return self._derive(lambda value, _: isinstance(value, Mapping), ".is_dict()")

    def is_number(self) -> "Accessor":
        return self._derive(
            lambda value, _: isinstance(value, (int, float)) and not isinstance(value, bool),
            ".is_number()",
        )

    # -------------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------------

    def add(self, other: Any) -> "Accessor":
        return self._binary(_arithmetic(operator.add), other, "add")

    def sub(self, other: Any) -> "Accessor":
        return self._binary(_arithmetic(operator.sub), other, "sub")

    def mul(self, other: Any) -> "Accessor":
        return self._binary(_arithmetic(operator.mul), other, "mul")

    def div(self, other: Any) -> "Accessor":
        return self._binary(_arithmetic(operator.truediv), other, "div")

    def pow(self, other: Any) -> "Accessor":
        return self._binary(_arithmetic(operator.pow), other, "pow")


def var(path: str = "") -> Accessor:
    """Accessor for a variable, or a dotted path into one; ``var()`` is all vars."""
    return Accessor(lambda vars: vars).get(path)
