"""Shared fixtures for convoflow tests."""

import logging
from collections.abc import Callable
from typing import Any

import pytest

from convoflow.dialog.flow_dialog import FlowDialog
from convoflow.session.memory import MemorySession

DIALOG_NAME = "TestDialog"


@pytest.fixture
def session() -> MemorySession:
    """Empty in-memory session running the test dialog."""
    return MemorySession("session-1", current_frame={"id": "frame-1", "dialog": DIALOG_NAME})


@pytest.fixture
def make_dialog() -> Callable[..., FlowDialog]:
    """Factory fixture compiling flows into a FlowDialog named TestDialog.

    Usage:
        def test_something(make_dialog):
            dialog = make_dialog({"onStart": ["Hello"]})
    """

    def _create(flows: dict[str, Any], **kwargs: Any) -> FlowDialog:
        return FlowDialog(kwargs.pop("name", DIALOG_NAME), flows, **kwargs)

    return _create


@pytest.fixture(autouse=True)
def reset_convoflow_logger():
    """Undo setup_logging() so caplog keeps seeing convoflow records."""
    yield
    logger = logging.getLogger("convoflow")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
