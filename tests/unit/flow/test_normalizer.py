"""Tests for command normalization"""

import pytest

from convoflow.core.errors import CompilationError, InvalidActionError, UnrecognizedCommandError
from convoflow.flow.accessor import Accessor
from convoflow.flow.commands import (
    Action,
    ConditionalCommand,
    FinishCommand,
    ImageCommand,
    IterationCommand,
    Negated,
    SetCommand,
    StartCommand,
    SubFlowCommand,
    SwitchCommand,
    TextCommand,
    WaitCommand,
    to_raw,
)
from convoflow.flow.normalizer import (
    desugar_for,
    infer_command_type,
    normalize_actions,
    normalize_cases,
    normalize_flow,
    normalize_flow_command,
    normalize_flows,
    normalize_items,
)


class TestNormalizeFlowCommand:
    """Tests for single command normalization"""

    def test_string_becomes_text_command(self):
        """Test a bare string is a text message"""
        assert normalize_flow_command("Hello") == TextCommand(id="text", text="Hello")

    def test_handler_passes_through(self):
        """Test callables are kept as opaque handlers"""

        def handler(vars):
            return None

        assert normalize_flow_command(handler) is handler

    def test_normalization_is_idempotent(self):
        """Test normalizing a canonical command returns it unchanged"""
        # Arrange
        command = normalize_flow_command({"if": True, "then": "yes", "else": "no"})

        # Act
        again = normalize_flow_command(command)

        # Assert
        assert again is command

    def test_explicit_type_wins_over_inference(self):
        """Test an explicit type is not second-guessed"""
        command = normalize_flow_command({"type": "finish", "text": "ignored", "finish": 1})
        assert isinstance(command, FinishCommand)

    def test_unknown_type_is_rejected(self):
        """Test an unknown explicit type raises"""
        with pytest.raises(UnrecognizedCommandError, match="unknown type"):
            normalize_flow_command({"type": "teleport"})

    def test_uninferable_mapping_is_rejected(self):
        """Test a mapping without recognizable keys raises"""
        with pytest.raises(UnrecognizedCommandError, match="cannot infer"):
            normalize_flow_command({"colour": "blue"})

    def test_non_command_value_is_rejected(self):
        """Test numbers are not commands"""
        with pytest.raises(UnrecognizedCommandError):
            normalize_flow_command(42)


class TestRawRoundTrip:
    """Tests for dumping canonical commands back to their authoring form"""

    @pytest.mark.parametrize(
        "flow",
        [
            {"if": True, "then": "yes", "else": ["no", {"finish": False}]},
            {"unless": "{{ ok }}", "then": "a", "else": "b"},
            {"for": ["i", 3], "do": ["{{ i }}", {"break": True}]},
            {"switch": "{{ x }}", "cases": {"a": "A", "b": ["B", {"continue": True}]}, "default": "D"},
            {"text": "Pick", "actions": {"Yes": "Great", "No": {"thenFlow": "onStart.other"}}},
            {"type": "list", "items": {"Red": {"description": "warm", "actions": {"Buy": "Bought"}}}},
            {"start": "Survey", "args": {"n": 1}, "then": "Thanks"},
            {"wait": 2},
            {"finish": "done"},
        ],
    )
    def test_renormalizing_raw_form_is_identity(self, flow):
        """Test normalize(to_raw(c)) gives back the same canonical commands"""
        # Arrange
        commands = normalize_flow(flow)

        # Act
        again = normalize_flow([to_raw(command) for command in commands])

        # Assert
        assert again == commands

    def test_raw_form_uses_authoring_keys(self):
        """Test aliases such as if and else appear in the dump"""
        raw = to_raw(normalize_flow_command({"if": True, "then": "yes"}))

        assert raw == {
            "id": "if",
            "type": "conditional",
            "if": True,
            "then": [{"id": "text", "type": "text", "text": "yes"}],
            "else": [],
        }


class TestInference:
    """Tests for command type inference"""

    def test_media_url_wins_over_text(self):
        """Test a captioned image is an image"""
        command = normalize_flow_command({"text": "caption", "mediaUrl": "http://x/y.png"})
        assert isinstance(command, ImageCommand)
        assert command.media_url == "http://x/y.png"

    def test_text_wins_over_command_keys(self):
        """Test text outranks the command keys"""
        assert infer_command_type({"text": "hi", "finish": True}) == "text"

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ({"finish": None}, "finish"),
            ({"finish": 0, "start": "X"}, "finish"),
            ({"start": "X", "wait": 1}, "start"),
            ({"wait": 1, "set": {}}, "wait"),
            ({"set": {}, "if": True}, "set"),
            ({"when": True, "switch": 1}, "conditional"),
            ({"unless": True}, "conditional"),
            ({"switch": 1, "exec": "h"}, "switch"),
            ({"exec": "h", "for": []}, "exec"),
            ({"while": True, "break": True}, "iteration"),
            ({"until": True}, "iteration"),
            ({"break": True, "continue": True}, "break"),
            ({"continue": True, "flow": []}, "continue"),
            ({"flow": []}, "flow"),
        ],
    )
    def test_inference_priority(self, raw, expected):
        """Test the first matching key decides the type"""
        assert infer_command_type(raw) == expected

    def test_finish_matches_on_presence(self):
        """Test a falsy finish result still means finish"""
        command = normalize_flow_command({"finish": False})
        assert isinstance(command, FinishCommand)
        assert command.finish is False


class TestConditionals:
    """Tests for if/when/unless"""

    def test_when_is_an_alias_of_if(self):
        """Test when behaves like if"""
        command = normalize_flow_command({"when": "{{ ok }}", "then": "yes"})

        assert isinstance(command, ConditionalCommand)
        assert command.test == "{{ ok }}"
        assert command.then == [TextCommand(text="yes")]
        assert command.else_ == []

    def test_unless_negates_the_test(self):
        """Test unless inverts the test and keeps its branches"""
        # Act
        command = normalize_flow_command({"unless": "{{ ok }}", "then": "a", "else": "b"})

        # Assert
        assert command.test == Negated("{{ ok }}")
        assert command.then == [TextCommand(text="a")]
        assert command.else_ == [TextCommand(text="b")]


class TestIterations:
    """Tests for for/while/until loops"""

    def test_for_with_numeric_limit(self):
        """Test [name, limit] counts from zero by one"""
        # Act
        command = normalize_flow_command({"for": ["i", 3], "do": "{{ i }}"})

        # Assert
        assert isinstance(command, IterationCommand)
        assert command.init == {"i": 0}
        assert isinstance(command.condition, Accessor)
        assert command.condition({"i": 2}) is True
        assert command.condition({"i": 3}) is False
        assert command.increment == {"i": 1}

    def test_for_with_mapping_and_numeric_step(self):
        """Test a mapping initializer with a numeric step"""
        init, condition, increment = desugar_for([{"i": 1}, 10, 2])

        assert init == {"i": 1}
        assert condition({"i": 9}) is True
        assert increment == {"i": 2}

    def test_for_with_explicit_condition(self):
        """Test a non-numeric limit is used as the condition"""

        def condition(vars):
            return vars["i"] < 6

        init, cond, increment = desugar_for([{"i": 1}, condition, {"i": 2}])

        assert cond is condition
        assert increment == {"i": 2}

    def test_for_without_variable_rejects_numeric_limit(self):
        """Test a numeric limit needs a loop variable"""
        with pytest.raises(UnrecognizedCommandError):
            desugar_for([None, 3])

    def test_for_rejects_bad_shapes(self):
        """Test for expects one to three elements"""
        with pytest.raises(UnrecognizedCommandError):
            desugar_for([])
        with pytest.raises(UnrecognizedCommandError):
            desugar_for("i")

    def test_while_and_until(self):
        """Test while keeps and until negates the condition"""
        loop = normalize_flow_command({"while": "{{ more }}", "do": []})
        until = normalize_flow_command({"until": "{{ done }}", "do": []})

        assert loop.condition == "{{ more }}"
        assert until.condition == Negated("{{ done }}")


class TestOtherCommands:
    """Tests for the remaining command shapes"""

    def test_start_with_then(self):
        """Test start keeps its args and normalizes then"""
        command = normalize_flow_command({"start": "Survey", "args": {"n": 1}, "then": "Thanks"})

        assert isinstance(command, StartCommand)
        assert command.start == "Survey"
        assert command.args == {"n": 1}
        assert command.then == [TextCommand(text="Thanks")]

    def test_set_requires_mapping(self):
        """Test set rejects non-mapping values"""
        assert isinstance(normalize_flow_command({"set": {"a": 1}}), SetCommand)
        with pytest.raises(UnrecognizedCommandError):
            normalize_flow_command({"set": ["a"]})

    def test_wait_seconds(self):
        """Test wait takes its seconds from the wait key"""
        command = normalize_flow_command({"wait": 2})
        assert isinstance(command, WaitCommand)
        assert command.seconds == 2

    def test_subflow_requires_id(self):
        """Test an explicit sub-flow needs an id"""
        command = normalize_flow_command({"flow": ["a"], "id": "named"})
        assert isinstance(command, SubFlowCommand)
        assert command.id == "named"
        with pytest.raises(UnrecognizedCommandError):
            normalize_flow_command({"flow": ["a"]})

    def test_switch_cases_mapping_keeps_order(self):
        """Test a case mapping becomes an ordered list of cases"""
        command = normalize_flow_command({"switch": "{{ x }}", "cases": {"a": "A", "b": "B"}})

        assert isinstance(command, SwitchCommand)
        assert [case.id for case in command.cases] == ["a", "b"]
        assert command.cases[0].match_value == "a"
        assert command.default is None

    def test_switch_case_list_requires_ids(self):
        """Test listed cases need an id"""
        cases = normalize_cases([{"id": "one", "case": 1, "do": "One"}])
        assert cases[0].match_value == 1
        with pytest.raises(CompilationError):
            normalize_cases([{"do": "x"}])


class TestFlows:
    """Tests for flows and flow mappings"""

    def test_none_is_an_empty_flow(self):
        assert normalize_flow(None) == []

    def test_single_command_becomes_list(self):
        assert normalize_flow("Hi") == [TextCommand(text="Hi")]

    def test_flows_must_be_a_mapping(self):
        """Test flow entry points must be keyed"""
        with pytest.raises(CompilationError):
            normalize_flows(["Hi"])

    def test_flows_mapping(self):
        flows = normalize_flows({"onStart": "Hi", "other": ["a", "b"]})
        assert list(flows) == ["onStart", "other"]
        assert len(flows["other"]) == 2


class TestActions:
    """Tests for action normalization"""

    def test_mapping_keys_become_id_and_text(self):
        """Test a flow keyed by its label becomes a reply"""
        # Act
        actions = normalize_actions({"Yes": "Great", "No": ["Too bad"]})

        # Assert
        assert [a.id for a in actions] == ["Yes", "No"]
        assert [a.text for a in actions] == ["Yes", "No"]
        assert all(a.type == "reply" for a in actions)
        assert actions[0].then == [TextCommand(text="Great")]

    def test_link_and_buy_are_inferred(self):
        """Test uri means link and amount means buy"""
        actions = normalize_actions(
            [{"id": "site", "uri": "http://x"}, {"id": "pay", "amount": 10, "currency": "USD"}]
        )

        assert [a.type for a in actions] == ["link", "buy"]
        assert actions[0].text == "site"

    def test_share_drops_text(self):
        """Test share actions carry no text"""
        actions = normalize_actions({"Share": {"type": "share", "text": "x"}})
        assert actions[0].text is None

    def test_then_flow_uses_default_type(self):
        """Test an action pointing to a flow takes the default type"""
        actions = normalize_actions({"Go": {"thenFlow": "onStart.other"}}, "postback")

        assert actions[0].type == "postback"
        assert actions[0].then_flow == "onStart.other"

    def test_untyped_action_is_rejected(self):
        """Test a mapping that is neither an action nor a command raises"""
        with pytest.raises(InvalidActionError, match="Unable to infer"):
            normalize_actions({"Bad": {"colour": "red"}})

    def test_dynamic_actions_pass_through(self):
        def actions(vars):
            return []

        assert normalize_actions(actions) is actions

    def test_existing_action_gets_key_as_id(self):
        action = Action(type="reply", text="Ok")
        assert normalize_actions({"ok": action})[0].id == "ok"


class TestItems:
    """Tests for item normalization"""

    def test_mapping_keys_become_id_and_title(self):
        items = normalize_items({"Red": {"description": "warm"}})

        assert items[0].id == "Red"
        assert items[0].title == "Red"
        assert items[0].description == "warm"

    def test_list_items_default_to_index_ids(self):
        items = normalize_items([{"title": "A"}, {"id": "b", "title": "B"}])
        assert [item.id for item in items] == ["0", "b"]

    def test_item_actions_default_to_postback(self):
        """Test item actions carrying flows are postbacks"""
        items = normalize_items([{"title": "A", "actions": {"Pick": "Picked"}}])
        assert items[0].actions[0].type == "postback"

    def test_items_must_be_mappings(self):
        with pytest.raises(CompilationError):
            normalize_items(["plain"])
