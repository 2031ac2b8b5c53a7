"""Command dispatch orchestration (registry lookup)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .registry import CommandCallable, CommandSpec, build_command_map, build_spec_map
from .types import CommandResult


@dataclass(slots=True)
class CommandDispatcher:
    """Resolve and dispatch parsed commands to handler methods."""

    handler_groups: dict[str, Any]
    _command_map: dict[str, CommandCallable] = field(init=False)
    _spec_map: dict[str, CommandSpec] = field(init=False)

    def __post_init__(self) -> None:
        self._command_map = build_command_map(self.handler_groups)
        self._spec_map = build_spec_map()

    def resolve(self, name: str) -> Optional[CommandSpec]:
        return self._spec_map.get(name)

    async def dispatch(self, spec: CommandSpec, args: tuple[str, ...]) -> CommandResult:
        """Dispatch one command with already-parsed args."""
        command_handler = self._command_map.get(spec.name)
        if command_handler is not None:
            return await command_handler(args)

        raise ValueError(f"Unknown command: {spec.name}")
