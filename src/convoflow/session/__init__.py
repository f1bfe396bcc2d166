"""Conversation sessions"""

from convoflow.session.memory import MemorySession
from convoflow.session.session import Session, variable_scope

__all__ = ["MemorySession", "Session", "variable_scope"]
