"""Connection and session state."""

from .context import ConnectionContext
from .state import (
    ConnectionStatus,
    DelegatedSession,
    MessageRecord,
    Phase,
    SessionState,
    new_session_address,
)

__all__ = [
    "ConnectionContext",
    "ConnectionStatus",
    "DelegatedSession",
    "MessageRecord",
    "Phase",
    "SessionState",
    "new_session_address",
]
