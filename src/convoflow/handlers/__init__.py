"""Named handlers for convoflow"""

from convoflow.handlers.registry import HandlerRegistry, NamedHandler

__all__ = ["HandlerRegistry", "NamedHandler"]
