"""Tests for DialogApp notification dispatch"""

import logging

import pytest

from convoflow.app.dispatcher import DialogApp
from convoflow.app.models import Notification
from convoflow.core.errors import ConfigError
from convoflow.dialog.dialog import Dialog
from convoflow.session.memory import MemorySession
from tests.mocks import RecordingHandler, make_notification


@pytest.fixture
def dialog() -> Dialog:
    return Dialog("Main")


@pytest.fixture
def app(dialog) -> DialogApp:
    return DialogApp([dialog])


class TestModels:
    """Tests for notification parsing"""

    def test_completed_frame_list_takes_first(self):
        notification = Notification.model_validate(
            make_notification("frame_result", "Main", completed_frame={"dialog": "Sub", "result": 1})
        )

        assert notification.session.completed_frame.dialog == "Sub"
        assert notification.session.current_frame.dialog == "Main"

    @pytest.mark.asyncio
    async def test_invalid_notification_is_config_error(self, app):
        with pytest.raises(ConfigError, match="Invalid notification"):
            await app.handle_notification({"event": "frame_start"})


class TestRegistration:
    """Tests for adding dialogs"""

    def test_add_nested_dialogs(self):
        app = DialogApp()
        app.add_dialogs([Dialog("A"), [Dialog("B")]])

        assert sorted(app.dialogs) == ["A", "B"]
        assert app.get_dialog("A").name == "A"

    def test_add_non_dialog(self):
        with pytest.raises(ConfigError):
            DialogApp().add_dialogs("A")


class TestDispatch:
    """Tests for frame events"""

    @pytest.mark.asyncio
    async def test_frame_start(self, app, dialog):
        # Arrange
        handler = RecordingHandler()
        dialog.on_start(handler)

        # Act
        await app.handle_notification(make_notification("frame_start", "Main", locals={"a": 1}))

        # Assert
        assert len(handler.calls) == 1
        session, value = handler.calls[0]
        assert isinstance(session, MemorySession)
        assert session.locals == {"a": 1}
        assert session.dialog is dialog
        assert value is None

    @pytest.mark.asyncio
    async def test_frame_result_by_dialog_and_tag(self, app, dialog):
        """Test results are routed by the completed frame's dialog and tag"""
        # Arrange
        exact = RecordingHandler()
        wildcard = RecordingHandler()
        dialog.on_result("Sub", "t1", exact)
        dialog.on_result("*", "t2", wildcard)

        # Act
        await app.handle_notification(
            make_notification(
                "frame_result", "Main", completed_frame={"dialog": "Sub", "tag": "t1", "result": 7}
            )
        )
        await app.handle_notification(
            make_notification(
                "frame_result", "Main", completed_frame={"dialog": "Any", "tag": "t2", "result": 8}
            )
        )

        # Assert
        assert exact.values == [7]
        assert wildcard.values == [8]

    @pytest.mark.asyncio
    async def test_frame_result_without_handler_logs_error(self, app, caplog):
        with caplog.at_level(logging.ERROR, logger="convoflow.app.dispatcher"):
            await app.handle_notification(
                make_notification("frame_result", "Main", completed_frame={"dialog": "Sub", "tag": "x"})
            )

        assert "Couldn't find result handler for Sub.x" in caplog.text

    @pytest.mark.asyncio
    async def test_input_payload_postback_and_intent(self, app, dialog):
        # Arrange
        payload = RecordingHandler()
        postback = RecordingHandler()
        intent = RecordingHandler()
        dialog.on_payload("Main:onStart.yes", payload)
        dialog.on_postback("Main:onStart.buy", postback)
        dialog.on_intent("greet", intent)

        # Act
        await app.handle_notification(
            make_notification("frame_input", "Main", data={"payload": "Main:onStart.yes", "text": "Yes"})
        )
        await app.handle_notification(
            make_notification("frame_input", "Main", data={"postback": "Main:onStart.buy", "args": {"n": 1}})
        )
        await app.handle_notification(
            make_notification("frame_message", "Main", data={"intent": "greet", "entities": {"who": "x"}})
        )

        # Assert
        assert payload.values == ["Yes"]
        assert postback.values == [{"n": 1}]
        assert intent.values == [{"who": "x"}]

    @pytest.mark.asyncio
    async def test_unmatched_input_goes_to_default(self, app, dialog):
        default = RecordingHandler()
        dialog.on_default(default)

        await app.handle_notification(make_notification("frame_input", "Main", data={"intent": "other"}))

        assert default.values[0].intent == "other"

    @pytest.mark.asyncio
    async def test_unknown_dialog_is_ignored(self, app, caplog):
        with caplog.at_level(logging.WARNING, logger="convoflow.app.dispatcher"):
            await app.handle_notification(make_notification("frame_start", "Nobody"))

        assert "No dialog named 'Nobody'" in caplog.text

    @pytest.mark.asyncio
    async def test_app_event_handler_runs_for_any_event(self, app):
        """Test on_event handlers see non-frame notifications too"""
        # Arrange
        seen = []

        async def on_session_end(notification):
            seen.append(notification.event)

        app.on_event("session_end", on_session_end)

        # Act
        await app.handle_notification(make_notification("session_end", "Main"))

        # Assert
        assert seen == ["session_end"]
