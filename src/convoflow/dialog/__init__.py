"""Dialogs"""

from convoflow.dialog.dialog import WILDCARD, Dialog
from convoflow.dialog.flow_dialog import FlowDialog

__all__ = ["WILDCARD", "Dialog", "FlowDialog"]
