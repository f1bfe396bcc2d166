"""Command compiler registry (extensible without modification)."""

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
from convoflow.core.errors import CompilationError
from convoflow.flow.commands import MESSAGE_TYPES


class CommandCompilerRegistry:
    """Registry for command compilers."""

    _compilers: dict[str, CommandCompiler] = {}

    @classmethod
    def register(cls, command_type: str, compiler: CommandCompiler) -> None:
        """Register a compiler for a command type."""
        cls._compilers[command_type] = compiler

    @classmethod
    def get(cls, command_type: str) -> CommandCompiler:
        """Get the compiler for a command type."""
        compiler = cls._compilers.get(command_type)
        if not compiler:
            raise CompilationError(
                f"Unknown command type: '{command_type}'. Available: {list(cls._compilers.keys())}"
            )
        return compiler

    @classmethod
    def types(cls) -> list[str]:
        return list(cls._compilers)


# Initialize default compilers
_message_compiler = MessageCompiler()
for _message_type in MESSAGE_TYPES:
    CommandCompilerRegistry.register(_message_type, _message_compiler)
CommandCompilerRegistry.register("conditional", ConditionalCompiler())
CommandCompilerRegistry.register("switch", SwitchCompiler())
CommandCompilerRegistry.register("iteration", IterationCompiler())
CommandCompilerRegistry.register("start", StartCompiler())
CommandCompilerRegistry.register("finish", FinishCompiler())
CommandCompilerRegistry.register("set", SetCompiler())
CommandCompilerRegistry.register("exec", ExecCompiler())
CommandCompilerRegistry.register("wait", WaitCompiler())
CommandCompilerRegistry.register("break", BreakCompiler())
CommandCompilerRegistry.register("continue", ContinueCompiler())
CommandCompilerRegistry.register("flow", SubFlowCompiler())


def get_compiler_for_command(command_type: str) -> CommandCompiler:
    """Get the appropriate compiler for a command type."""
    return CommandCompilerRegistry.get(command_type)
