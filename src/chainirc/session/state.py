"""Connection/session state model and its transitions."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Optional

from .. import hex_id
from ..domain.directory import ChannelRef, MessageStatus, UserProfile
from ..logging import log_event
from ..operations.errors import ErrorKind
from ..operations.models import OperationKind, PendingOperation
from ..time_utils import unix_now
from .context import ConnectionContext

# Settled message records kept for display; pending ones are never dropped.
SETTLED_MESSAGE_HISTORY = 50


class ConnectionStatus(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class Phase(StrEnum):
    """Coarse state used for command gating and the prompt."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    SESSION_AUTHORIZED = "session_authorized"
    CHANNEL_JOINED = "channel_joined"


def new_session_address() -> str:
    """Return a fresh address for a delegated session key.

    The key material itself lives with the bundler collaborator, which signs
    for this address.
    """
    return "0x" + secrets.token_hex(20)


@dataclass(slots=True, frozen=True)
class DelegatedSession:
    """Session key allowed to sign for the Smart Account until ``expiry`` (unix seconds)."""

    session_address: str
    expiry: int
    tx_hash: str | None = None

    def is_active(self, now: Optional[int] = None) -> bool:
        return (unix_now() if now is None else now) < self.expiry

    def remaining_seconds(self, now: Optional[int] = None) -> int:
        return max(0, self.expiry - (unix_now() if now is None else now))


@dataclass(slots=True)
class MessageRecord:
    """Local record of one user-sent message write.

    Moves from ``pending`` to ``confirmed`` or ``failed`` exactly once.
    """

    local_id: str
    channel: ChannelRef
    content: str
    msg_hash: str
    directory_id: str | None = None
    handle: str | None = None
    status: MessageStatus = "pending"
    tx_hash: str | None = None
    error_kind: ErrorKind | None = None

    def confirm(self, tx_hash: str) -> None:
        if self.status != "pending":
            raise ValueError(f"Message {self.local_id} is already {self.status}")
        self.status = "confirmed"
        self.tx_hash = tx_hash

    def fail(self, error_kind: ErrorKind) -> None:
        if self.status != "pending":
            raise ValueError(f"Message {self.local_id} is already {self.status}")
        self.status = "failed"
        self.error_kind = error_kind


@dataclass
class SessionState:
    """State gating every command.

    ``epoch`` increases on every reset; background completions compare the
    epoch captured at dispatch to decide whether they may still touch this
    state.
    """

    connection_status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    context: Optional[ConnectionContext] = None
    user: Optional[UserProfile] = None
    delegated_session: Optional[DelegatedSession] = None
    current_channel: Optional[ChannelRef] = None
    pending_operations: dict[str, PendingOperation] = field(default_factory=dict)
    message_records: dict[str, MessageRecord] = field(default_factory=dict)
    session_operation: Optional[OperationKind] = None
    epoch: int = 0
    hex_id_set: set[str] = field(default_factory=set)

    @property
    def is_connected(self) -> bool:
        return self.connection_status is ConnectionStatus.CONNECTED

    def has_active_session(self, now: Optional[int] = None) -> bool:
        return self.delegated_session is not None and self.delegated_session.is_active(now)

    def phase(self, now: Optional[int] = None) -> Phase:
        if not self.is_connected:
            return Phase.DISCONNECTED
        if self.current_channel is not None:
            return Phase.CHANNEL_JOINED
        if self.has_active_session(now):
            return Phase.SESSION_AUTHORIZED
        return Phase.CONNECTED

    def is_current(self, epoch: int) -> bool:
        return self.is_connected and epoch == self.epoch

    def _log_transition(self, transition: str, before: Phase) -> None:
        log_event(
            "state_transition",
            level=logging.INFO,
            transition=transition,
            from_state=before.value,
            to_state=self.phase().value,
            epoch=self.epoch,
            channel=self.current_channel.name if self.current_channel else None,
        )

    def connect(self, context: ConnectionContext, user: UserProfile) -> None:
        if self.is_connected:
            raise ValueError("Already connected")
        before = self.phase()
        self.connection_status = ConnectionStatus.CONNECTED
        self.context = context
        self.user = user
        self._log_transition("connect", before)

    def reset(self, reason: str) -> int:
        """Return to disconnected, abandoning session, channel and pending work.

        Returns the new epoch.
        """
        before = self.phase()
        self.connection_status = ConnectionStatus.DISCONNECTED
        self.context = None
        self.user = None
        self.delegated_session = None
        self.current_channel = None
        self.pending_operations.clear()
        self.message_records.clear()
        self.hex_id_set.clear()
        self.session_operation = None
        self.epoch += 1
        self._log_transition(reason, before)
        return self.epoch

    def update_user(self, user: UserProfile) -> None:
        self._require_connected()
        self.user = user

    def authorize_session(self, session: DelegatedSession) -> None:
        self._require_connected()
        before = self.phase()
        self.delegated_session = session
        self._log_transition("authorize_session", before)

    def revoke_session(self) -> None:
        before = self.phase()
        self.delegated_session = None
        self._log_transition("revoke_session", before)

    def join(self, channel: ChannelRef) -> None:
        self._require_connected()
        before = self.phase()
        self.current_channel = channel
        self._log_transition("join", before)

    def leave(self) -> ChannelRef:
        if self.current_channel is None:
            raise ValueError("You are not in any channel.")
        before = self.phase()
        channel = self.current_channel
        self.current_channel = None
        self._log_transition("leave", before)
        return channel

    def begin_session_operation(self, kind: OperationKind) -> None:
        if self.session_operation is not None:
            raise ValueError(
                f"A session operation ({self.session_operation.value}) is already in progress."
            )
        self.session_operation = kind

    def end_session_operation(self) -> None:
        self.session_operation = None

    def track_pending(self, pending: PendingOperation) -> None:
        self.pending_operations[pending.handle] = pending

    def forget_pending(self, handle: str) -> None:
        self.pending_operations.pop(handle, None)

    def find_pending(self, handle_prefix: str) -> PendingOperation | None:
        """Look up a pending operation by full handle or unique prefix."""
        exact = self.pending_operations.get(handle_prefix)
        if exact is not None:
            return exact
        matches = [
            op for handle, op in self.pending_operations.items()
            if handle.startswith(handle_prefix)
        ]
        return matches[0] if len(matches) == 1 else None

    def record_message(self, channel: ChannelRef, content: str, msg_hash: str) -> MessageRecord:
        record = MessageRecord(
            local_id=hex_id.generate_hex_id(self.hex_id_set),
            channel=channel,
            content=content,
            msg_hash=msg_hash,
        )
        self.message_records[record.local_id] = record
        self._prune_settled_messages()
        return record

    def _prune_settled_messages(self) -> None:
        settled = [
            local_id for local_id, record in self.message_records.items()
            if record.status != "pending"
        ]
        for local_id in settled[: max(0, len(settled) - SETTLED_MESSAGE_HISTORY)]:
            del self.message_records[local_id]
            self.hex_id_set.discard(local_id)

    def _require_connected(self) -> None:
        if not self.is_connected:
            raise ValueError("Please connect your Smart Account first.")
