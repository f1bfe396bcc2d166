"""Tests for parameter expansion"""

import asyncio

import pytest

from convoflow.core.errors import UndefinedHandlerError
from convoflow.flow.accessor import var
from convoflow.flow.commands import Negated, TextCommand
from convoflow.flow.expansion import ParamExpander, call_handler, parse_destructuring
from convoflow.handlers.registry import HandlerRegistry


@pytest.fixture
def expander() -> ParamExpander:
    handlers = HandlerRegistry()

    @handlers.register()
    def double(n, times=2):
        return n * times

    @handlers.register()
    async def profile(vars):
        return {"name": "Ada", "age": vars.get("age", 36)}

    return ParamExpander(handlers)


class TestCallHandler:
    """Tests for calling handlers with as many arguments as they take"""

    @pytest.mark.asyncio
    async def test_passes_only_accepted_arguments(self):
        """Test handlers receive a prefix of (vars, session, path)"""
        # Arrange
        session = object()
        path = ("onStart",)

        # Act & Assert
        assert await call_handler(lambda: "none", {}, session, path) == "none"
        assert await call_handler(lambda v: v, {"a": 1}, session, path) == {"a": 1}
        assert await call_handler(lambda v, s: s, {}, session, path) is session
        assert await call_handler(lambda v, s, p: p, {}, session, path) == path
        assert await call_handler(lambda *args: len(args), {}, session, path) == 3

    @pytest.mark.asyncio
    async def test_awaits_coroutines(self):
        """Test async handlers are awaited"""

        async def handler(vars):
            return vars["x"] + 1

        assert await call_handler(handler, {"x": 1}, None, ()) == 2


class TestExpand:
    """Tests for ParamExpander.expand"""

    @pytest.mark.asyncio
    async def test_literals_pass_through(self, expander):
        assert await expander.expand(5, {}) == 5
        assert await expander.expand(None, {}) is None
        assert await expander.expand("plain text", {}) == "plain text"

    @pytest.mark.asyncio
    async def test_templates_render_with_vars(self, expander):
        """Test strings with markers are Jinja2 templates"""
        result = await expander.expand("Hello {{ Name }}, {% if n > 1 %}many{% endif %}", {"Name": "Ada", "n": 2})
        assert result == "Hello Ada, many"

    @pytest.mark.asyncio
    async def test_missing_template_variables_render_empty(self, expander):
        """Test undefined and None values render as empty strings"""
        assert await expander.expand("[{{ missing.deep }}]", {}) == "[]"
        assert await expander.expand("[{{ nothing }}]", {"nothing": None}) == "[]"

    @pytest.mark.asyncio
    async def test_nested_structures_expand_recursively(self, expander):
        """Test lists and mappings are expanded element-wise"""
        # Arrange
        param = {"greeting": "Hi {{ name }}", "values": [var("n"), "{{ n }}"], "skip": None}

        # Act
        result = await expander.expand(param, {"name": "Bo", "n": 3})

        # Assert
        assert result == {"greeting": "Hi Bo", "values": [3, "3"]}

    @pytest.mark.asyncio
    async def test_siblings_expand_concurrently(self, expander):
        """Test sibling handlers run concurrently rather than one after another"""
        # Arrange
        started: list[str] = []
        gate = asyncio.Event()

        async def first(vars):
            started.append("first")
            await gate.wait()
            return 1

        async def second(vars):
            started.append("second")
            gate.set()
            return 2

        # Act
        result = await asyncio.wait_for(expander.expand([first, second], {}), timeout=1)

        # Assert
        assert result == [1, 2]
        assert started == ["first", "second"]

    @pytest.mark.asyncio
    async def test_negated_inverts_truthiness(self, expander):
        assert await expander.expand(Negated("{{ x }}"), {"x": ""}) is True
        assert await expander.expand(Negated(var("x")), {"x": 1}) is False

    @pytest.mark.asyncio
    async def test_models_are_not_expanded(self, expander):
        command = TextCommand(text="{{ x }}")
        assert await expander.expand(command, {"x": 1}) is command

    @pytest.mark.asyncio
    async def test_templates_are_cached(self, expander):
        """Test a template string is compiled once"""
        await expander.expand("{{ a }}", {"a": 1})
        await expander.expand("{{ a }}", {"a": 2})

        assert list(expander._templates.keys()) == ["{{ a }}"]


class TestExec:
    """Tests for exec parameters"""

    @pytest.mark.asyncio
    async def test_exec_name(self, expander):
        assert await expander.expand({"exec": "profile"}, {}) == {"name": "Ada", "age": 36}

    @pytest.mark.asyncio
    async def test_exec_args_overlay_vars(self, expander):
        """Test expanded args are merged over the handler variables"""
        result = await expander.expand({"exec": "double", "args": {"n": "{{ m }}"}}, {"n": 1, "m": "ab"})
        assert result == "abab"

    @pytest.mark.asyncio
    async def test_exec_pair_form(self, expander):
        assert await expander.expand({"exec": ["double", {"n": 4}]}, {}) == 8

    @pytest.mark.asyncio
    async def test_exec_unknown_handler(self, expander):
        with pytest.raises(UndefinedHandlerError, match="nope"):
            await expander.expand({"exec": "nope"}, {})

    @pytest.mark.asyncio
    async def test_exec_args_must_be_a_mapping(self, expander):
        with pytest.raises(UndefinedHandlerError):
            await expander.expand({"exec": "double", "args": [1]}, {})


class TestExpandSet:
    """Tests for set expansion"""

    def test_parse_destructuring(self):
        assert parse_destructuring("{a, b}") == ["a", "b"]
        assert parse_destructuring("{ single }") == ["single"]
        assert parse_destructuring("plain") is None
        assert parse_destructuring("{a b}") is None

    @pytest.mark.asyncio
    async def test_destructuring_assigns_members(self, expander):
        """Test a destructuring key assigns each named member"""
        # Act
        result = await expander.expand_set({"{name, age, city}": {"exec": "profile"}}, {"age": 7})

        # Assert
        assert result == {"name": "Ada", "age": 7, "city": None}

    @pytest.mark.asyncio
    async def test_none_values_are_kept(self, expander):
        """Test set can clear a variable"""
        assert await expander.expand_set({"a": None, "b": "{{ x }}"}, {"x": 2}) == {"a": None, "b": "2"}


def test_expander_accepts_plain_mapping_of_handlers():
    """Test a mapping of handlers is wrapped in a registry"""
    expander = ParamExpander({"f": lambda: 1})

    assert isinstance(expander.handlers, HandlerRegistry)
    assert "f" in expander.handlers
