"""Typed command results exchanged between the command layer and the REPL."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Literal, TypeAlias

if TYPE_CHECKING:
    from ..operations.errors import ErrorKind
    from ..operations.models import OperationKind, Receipt
    from ..session.context import ConnectionContext


CommandSignalKind = Literal["exit", "clear"]


@dataclass(slots=True, frozen=True)
class CommandSignal:
    """Structured control-flow signal emitted by command handlers."""

    kind: CommandSignalKind


CommandResult: TypeAlias = CommandSignal | None


@dataclass(slots=True)
class WriteJob:
    """One user-initiated write and what to do once it settles."""

    kind: OperationKind
    label: str
    epoch: int
    context: ConnectionContext
    on_confirmed: Callable[[Receipt], Awaitable[None]]
    on_failed: Callable[[ErrorKind], Awaitable[None]]
