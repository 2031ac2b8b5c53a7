"""Pending-operation status handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..terminal import Severity
from .types import CommandResult

if TYPE_CHECKING:
    from .contracts import CommandDependencies as _CommandDependencies
else:
    class _CommandDependencies:
        pass


class OperationCommandHandlers:
    """Explicit handlers for the status command."""

    def __init__(self, dependencies: _CommandDependencies) -> None:
        self._deps = dependencies

    async def show_status(self, args: tuple[str, ...]) -> CommandResult:
        """List pending operations, or re-check the one named by handle."""
        deps = self._deps
        if args:
            await deps.check_pending(args[0])
            return None

        pending = list(deps.state.pending_operations.values())
        if not pending:
            deps.emit("No pending operations.", Severity.INFO)
            return None

        deps.emit(f"Pending operations ({len(pending)}):", Severity.INFO)
        for operation in pending:
            deps.emit(f"  {operation.handle}  {operation.kind.value}  since {operation.submitted_at}")
        deps.emit("Run 'status <handle>' to check one again.", Severity.INFO)
        return None
