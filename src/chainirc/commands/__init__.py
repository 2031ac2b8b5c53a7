"""Command layer: parsing, registry, handlers and the interpreter."""

from .interpreter import CommandInterpreter, default_read_policy, is_retryable_read
from .parser import Command, format_command, parse
from .registry import COMMAND_NAMES, COMMAND_SPECS, CommandSpec, Requirement
from .types import CommandResult, CommandSignal, WriteJob

__all__ = [
    "COMMAND_NAMES",
    "COMMAND_SPECS",
    "Command",
    "CommandInterpreter",
    "CommandResult",
    "CommandSignal",
    "CommandSpec",
    "Requirement",
    "WriteJob",
    "default_read_policy",
    "format_command",
    "is_retryable_read",
    "parse",
]
