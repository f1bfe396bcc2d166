"""Application: notification models and dispatch"""

from convoflow.app.dispatcher import DialogApp
from convoflow.app.models import Frame, MessageData, Notification, SessionSnapshot

__all__ = ["DialogApp", "Frame", "MessageData", "Notification", "SessionSnapshot"]
