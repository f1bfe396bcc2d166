"""Tests for session variables and effects"""

import pytest

from convoflow.core.errors import SessionError, SessionLockedError
from convoflow.session.memory import MemorySession
from convoflow.session.session import infer_message_type, variable_scope
from tests.mocks import FailingSession


@pytest.mark.parametrize(
    "name,scope",
    [("_tmp", "volatiles"), ("Name", "globals"), ("name", "locals"), ("n1", "locals")],
)
def test_variable_scope(name, scope):
    assert variable_scope(name) == scope


def test_session_requires_id():
    with pytest.raises(SessionError):
        MemorySession("")


def test_set_routes_by_scope():
    """Test each variable lands in the scope its name implies"""
    # Arrange
    session = MemorySession("s")

    # Act
    session.set({"Name": "Ada", "count": 1, "_draft": "x"})

    # Assert
    assert session.globals == {"Name": "Ada"}
    assert session.locals == {"count": 1}
    assert session.volatiles == {"_draft": "x"}


def test_get_prefers_volatiles_then_locals():
    session = MemorySession(
        "s", globals={"x": 1}, current_frame={"locals": {"x": 2}}, volatiles={"x": 3}
    )

    assert session.get("x") == 3
    assert session.get("missing", "default") == "default"


def test_frame_properties():
    session = MemorySession(
        "s", current_frame={"id": "f1", "dialog": "Main", "tag": "Main:onStart.start"}
    )

    assert session.frame_id == "f1"
    assert session.dialog_name == "Main"
    assert session.tag == "Main:onStart.start"
    assert session.dialog is None


@pytest.mark.parametrize(
    "message,expected",
    [
        ({"text": "hi"}, "text"),
        ({"text": "caption", "mediaUrl": "http://x"}, "image"),
        ({"items": []}, "list"),
    ],
)
def test_infer_message_type(message, expected):
    assert infer_message_type(message) == expected


def test_infer_message_type_fails_for_empty_message():
    with pytest.raises(SessionError):
        infer_message_type({})


@pytest.mark.asyncio
async def test_send_string_and_mapping(session):
    """Test strings become text messages and mapping types are inferred"""
    await session.send("Hello")
    await session.send({"mediaUrl": "http://x/a.png"})

    assert session.sent == [
        {"type": "text", "text": "Hello"},
        {"type": "image", "mediaUrl": "http://x/a.png"},
    ]


@pytest.mark.asyncio
async def test_send_rejects_other_values(session):
    with pytest.raises(SessionError):
        await session.send(42)


@pytest.mark.asyncio
async def test_start_locks_session(session):
    """Test no effect is allowed after start"""
    # Act
    await session.start("Survey", "tag-1", {"n": 1})

    # Assert
    assert session.started == [("Survey", "tag-1", {"n": 1})]
    with pytest.raises(SessionLockedError):
        await session.send("too late")
    with pytest.raises(SessionLockedError):
        await session.finish()


@pytest.mark.asyncio
async def test_finish_locks_session(session):
    await session.finish({"ok": True})

    assert session.finished == [{"ok": True}]
    with pytest.raises(SessionLockedError):
        await session.save({"x": 1})


@pytest.mark.asyncio
async def test_failed_start_unlocks_session():
    """Test a transport failure leaves the session usable"""
    # Arrange
    session = FailingSession("s")

    # Act
    with pytest.raises(ConnectionError):
        await session.start("Survey")

    # Assert
    assert session.locked is False
    assert session.attempts == 1
    await session.send("still here")
    assert session.texts == ["still here"]


@pytest.mark.asyncio
async def test_failed_finish_unlocks_session():
    session = FailingSession("s")

    with pytest.raises(ConnectionError):
        await session.finish(1)

    assert session.locked is False
