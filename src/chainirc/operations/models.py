"""Write-operation data model: requests, receipts, pending operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Literal, TypeAlias

from ..time_utils import utc_now_iso
from .errors import ErrorKind


class OperationKind(StrEnum):
    CREATE_CHANNEL = "create_channel"
    SEND_MESSAGE = "send_message"
    AUTHORIZE_SESSION = "authorize_session"
    REVOKE_SESSION = "revoke_session"


SESSION_OPERATION_KINDS = frozenset(
    {OperationKind.AUTHORIZE_SESSION, OperationKind.REVOKE_SESSION}
)


@dataclass(slots=True, frozen=True)
class OperationRequest:
    """One contract call handed to the bundler.

    ``data`` is the hex-encoded call payload; ``value`` is in wei.
    """

    target: str
    data: str
    value: int = 0


@dataclass(slots=True, frozen=True)
class Receipt:
    handle: str
    tx_hash: str
    success: bool
    block_number: int | None = None
    gas_used: int | None = None
    reason: str | None = None


@dataclass(slots=True, frozen=True)
class Confirmed:
    tx_hash: str
    state: Literal["confirmed"] = "confirmed"


@dataclass(slots=True, frozen=True)
class Failed:
    error_kind: ErrorKind
    state: Literal["failed"] = "failed"


OperationResolution: TypeAlias = Confirmed | Failed


@dataclass(slots=True)
class PendingOperation:
    """An operation accepted by the bundler and awaiting its receipt.

    Resolves exactly once; later resolution attempts raise ``ValueError``.
    """

    handle: str
    kind: OperationKind
    submitted_at: str = field(default_factory=utc_now_iso)
    resolution: OperationResolution | None = None

    @property
    def is_resolved(self) -> bool:
        return self.resolution is not None

    @property
    def status(self) -> str:
        if self.resolution is None:
            return "pending"
        return self.resolution.state

    def confirm(self, tx_hash: str) -> None:
        if self.resolution is not None:
            raise ValueError(f"Operation {self.handle} is already {self.resolution.state}")
        self.resolution = Confirmed(tx_hash=tx_hash)

    def fail(self, error_kind: ErrorKind) -> None:
        if self.resolution is not None:
            raise ValueError(f"Operation {self.handle} is already {self.resolution.state}")
        self.resolution = Failed(error_kind=error_kind)
