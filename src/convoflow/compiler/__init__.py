"""Flow compilation: commands to flow handlers keyed by path."""

from convoflow.compiler.factory import CommandCompilerRegistry, get_compiler_for_command
from convoflow.compiler.flow_compiler import FlowCompiler, HandlerTables
from convoflow.compiler.registry import FlowHandlerRegistry

__all__ = [
    "CommandCompilerRegistry",
    "FlowCompiler",
    "FlowHandlerRegistry",
    "HandlerTables",
    "get_compiler_for_command",
]
