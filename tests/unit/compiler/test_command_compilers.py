"""Tests for individual command compilers"""

import pytest

from convoflow.compiler.commands.base import check_command
from convoflow.compiler.commands.start import check_start_param, parse_start_value, static_dialog_name
from convoflow.compiler.commands.switch import matches
from convoflow.compiler.commands.wait import WaitCompiler
from convoflow.compiler.factory import CommandCompilerRegistry, get_compiler_for_command
from convoflow.config.models import FlowSettings
from convoflow.core.errors import CompilationError, InvalidStartError
from convoflow.flow.commands import COMMAND_TYPES, MESSAGE_TYPES, SetCommand, WaitCommand


class TestCommandCompilerRegistry:
    """Tests for the command compiler registry"""

    def test_every_command_type_has_a_compiler(self):
        assert set(COMMAND_TYPES) <= set(CommandCompilerRegistry.types())

    def test_message_types_share_a_compiler(self):
        compilers = {id(get_compiler_for_command(t)) for t in MESSAGE_TYPES}
        assert len(compilers) == 1

    def test_unknown_type(self):
        with pytest.raises(CompilationError, match="Unknown command type: 'teleport'"):
            get_compiler_for_command("teleport")

    def test_terminal_commands(self):
        assert get_compiler_for_command("finish").terminal
        assert get_compiler_for_command("break").terminal
        assert not get_compiler_for_command("iteration").terminal

    def test_check_command_rejects_wrong_model(self):
        with pytest.raises(ValueError, match="WaitCompiler received wrong command type"):
            check_command(SetCommand(set={}), WaitCommand, WaitCompiler.__name__)


class TestSetAndExec:
    """Tests for set and exec"""

    @pytest.mark.asyncio
    async def test_set_saves_and_exposes_values(self, make_dialog, session):
        """Test set persists values and later steps see them"""
        # Arrange
        dialog = make_dialog({"onStart": [{"set": {"count": 2, "Name": "Ada"}}, "{{ Name }} x{{ count }}"]})

        # Act
        await dialog.start_flow(session, "onStart")

        # Assert
        assert session.texts == ["Ada x2"]
        assert session.locals == {"count": 2}
        assert session.globals == {"Name": "Ada"}
        assert session.saves[-1] == {"globals": {"Name": "Ada"}, "locals": {"count": 2}}

    @pytest.mark.asyncio
    async def test_set_with_exec_and_destructuring(self, make_dialog, session):
        # Arrange
        handlers = {"lookup": lambda vars: {"status": "shipped", "eta": 2}}
        dialog = make_dialog(
            {"onStart": [{"set": {"{status, eta}": {"exec": "lookup"}}}, "{{ status }} in {{ eta }}"]},
            handlers=handlers,
        )

        # Act
        await dialog.start_flow(session, "onStart")

        # Assert
        assert session.texts == ["shipped in 2"]

    @pytest.mark.asyncio
    async def test_exec_runs_for_effect(self, make_dialog, session):
        """Test exec calls the handler with args and discards the result"""
        # Arrange
        calls = []

        def record(item, quantity):
            calls.append((item, quantity))
            return {"ignored": True}

        dialog = make_dialog(
            {"onStart": [{"exec": "record", "args": {"item": "{{ sku }}", "quantity": 2}}, "done"]},
            handlers={"record": record},
        )
        session.set("sku", "A-1")

        # Act
        await dialog.start_flow(session, "onStart")

        # Assert
        assert calls == [("A-1", 2)]
        assert "ignored" not in session.locals
        assert session.texts == ["done"]


class TestWait:
    """Tests for wait"""

    @pytest.mark.asyncio
    async def test_wait_is_clamped_to_max(self, make_dialog, session, monkeypatch):
        # Arrange
        slept = []

        async def fake_sleep(seconds):
            slept.append(seconds)

        monkeypatch.setattr("convoflow.compiler.commands.wait.asyncio.sleep", fake_sleep)
        dialog = make_dialog(
            {"onStart": ["before", {"wait": "{{ delay }}"}, "after"]},
            settings=FlowSettings(max_wait_seconds=0.5),
        )
        session.set("delay", "30")

        # Act
        await dialog.start_flow(session, "onStart")

        # Assert
        assert slept == [0.5]
        assert session.texts == ["before", "after"]

    @pytest.mark.asyncio
    async def test_invalid_wait_duration(self, make_dialog, session):
        dialog = make_dialog({"onStart": [{"wait": "soon"}]})

        with pytest.raises(ValueError, match="Invalid wait duration"):
            await dialog.start_flow(session, "onStart")


class TestStartParams:
    """Tests for start parameter shapes"""

    @pytest.mark.parametrize(
        "param", ["Survey", ["Survey"], ["Survey", {"a": 1}], {"dialog": "Survey"}, lambda vars: "S"]
    )
    def test_valid_params(self, param):
        check_start_param(param)

    @pytest.mark.parametrize("param", [42, [], ["a", {}, "extra"], {"args": {}}])
    def test_invalid_params(self, param):
        with pytest.raises(InvalidStartError):
            check_start_param(param)

    def test_invalid_start_fails_dialog_construction(self, make_dialog):
        with pytest.raises(InvalidStartError):
            make_dialog({"onStart": [{"start": 42}]})

    def test_parse_start_value(self):
        assert parse_start_value("S") == ("S", None)
        assert parse_start_value(["S", {"a": 1}]) == ("S", {"a": 1})
        assert parse_start_value({"dialog": "S"}, {"b": 2}) == ("S", {"b": 2})
        with pytest.raises(InvalidStartError):
            parse_start_value(["S", "not args"])
        with pytest.raises(InvalidStartError):
            parse_start_value("")

    def test_static_dialog_name(self):
        assert static_dialog_name(["Survey", {}]) == "Survey"
        assert static_dialog_name({"dialog": "Survey"}) == "Survey"
        assert static_dialog_name("{{ target }}") is None
        assert static_dialog_name({"exec": "pick"}) is None


def test_switch_matches_by_string_form():
    assert matches(1, "1")
    assert matches("a", "a")
    assert not matches(None, "None")
    assert not matches(2, "1")
