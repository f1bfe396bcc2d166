"""Command compilers module."""

from convoflow.compiler.commands.base import CommandCompiler
from convoflow.compiler.commands.conditional import ConditionalCompiler
from convoflow.compiler.commands.exec import ExecCompiler
from convoflow.compiler.commands.finish import FinishCompiler
from convoflow.compiler.commands.iteration import IterationCompiler
from convoflow.compiler.commands.loop_control import BreakCompiler, ContinueCompiler
from convoflow.compiler.commands.message import MessageCompiler
from convoflow.compiler.commands.set import SetCompiler
from convoflow.compiler.commands.start import StartCompiler
from convoflow.compiler.commands.subflow import SubFlowCompiler
from convoflow.compiler.commands.switch import SwitchCompiler
from convoflow.compiler.commands.wait import WaitCompiler

__all__ = [
    "CommandCompiler",
    "MessageCompiler",
    "ConditionalCompiler",
    "SwitchCompiler",
    "IterationCompiler",
    "StartCompiler",
    "FinishCompiler",
    "SetCompiler",
    "ExecCompiler",
    "WaitCompiler",
    "BreakCompiler",
    "ContinueCompiler",
    "SubFlowCompiler",
]
