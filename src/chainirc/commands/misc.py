"""Misc command handlers: help, clear and exit."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..terminal import Severity
from .help_text import HELP_TEXTS, all_commands_help, format_help_text
from .registry import build_spec_map
from .types import CommandResult, CommandSignal

if TYPE_CHECKING:
    from .contracts import CommandDependencies as _CommandDependencies
else:
    class _CommandDependencies:
        pass


class MiscCommandHandlers:
    """Explicit handlers for help/clear/exit commands."""

    def __init__(self, dependencies: _CommandDependencies) -> None:
        self._deps = dependencies

    async def show_help(self, args: tuple[str, ...]) -> CommandResult:
        """Show help information."""
        if not args:
            lines = all_commands_help()
        else:
            name = " ".join(args).lower()
            if name not in HELP_TEXTS:
                spec = build_spec_map().get(name)
                if spec is not None:
                    name = spec.name
            if name not in HELP_TEXTS:
                self._deps.emit(f"Unknown command: {name}", Severity.ERROR)
                self._deps.emit("Type 'help' to see available commands.", Severity.INFO)
                return None
            lines = format_help_text(name)
        for line in lines:
            self._deps.emit(line, Severity.INFO)
        return None

    async def clear_screen(self, args: tuple[str, ...]) -> CommandResult:
        return CommandSignal(kind="clear")

    async def exit_app(self, args: tuple[str, ...]) -> CommandResult:
        """Exit the application."""
        return CommandSignal(kind="exit")
