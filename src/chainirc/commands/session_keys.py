"""Delegated session key command handlers.

At most one authorize/revoke write is in flight at a time. The guard is
released when the write settles; an ambiguous write keeps it until a
``status`` check settles it or the connection is reset.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..domain.directory import StoredSession
from ..operations.calls import authorize_session_call, revoke_session_call
from ..operations.errors import ErrorKind
from ..operations.models import OperationKind, Receipt
from ..session.state import DelegatedSession, new_session_address
from ..terminal import Severity
from ..time_utils import unix_now
from .formatting import format_expiry, short_hash
from .types import CommandResult, WriteJob

if TYPE_CHECKING:
    from .contracts import CommandDependencies as _CommandDependencies
else:
    class _CommandDependencies:
        pass


class SessionKeyCommandHandlers:
    """Explicit handlers for authorize/revoke session."""

    def __init__(self, dependencies: _CommandDependencies) -> None:
        self._deps = dependencies

    def _refuse_if_busy(self) -> bool:
        in_flight = self._deps.state.session_operation
        if in_flight is None:
            return False
        self._deps.emit(
            f"A session operation ({in_flight.value}) is already in progress.",
            Severity.ERROR,
        )
        self._deps.emit("Run 'status' to check on it.", Severity.INFO)
        return True

    async def authorize_session(self, args: tuple[str, ...]) -> CommandResult:
        deps = self._deps
        state = deps.state
        if self._refuse_if_busy():
            return None
        if state.has_active_session():
            assert state.delegated_session is not None
            deps.emit(
                "A delegation session is already active "
                f"(expires {format_expiry(state.delegated_session.expiry)}).",
                Severity.WARNING,
            )
            deps.emit("Run 'revoke session' first to replace it.", Severity.INFO)
            return None

        context = state.context
        assert context is not None
        epoch = state.epoch
        session_address = new_session_address()
        expiry = unix_now() + deps.session_validity_minutes * 60

        state.begin_session_operation(OperationKind.AUTHORIZE_SESSION)
        deps.emit("Authorizing delegation session on-chain...", Severity.INFO)
        deps.emit("This transaction will be sent through your Smart Account.", Severity.INFO)

        async def on_confirmed(receipt: Receipt) -> None:
            if deps.is_stale(epoch, OperationKind.AUTHORIZE_SESSION.value, receipt.handle):
                return
            state.end_session_operation()
            state.authorize_session(DelegatedSession(session_address, expiry, receipt.tx_hash))
            deps.emit("Delegation session authorized successfully!", Severity.SYSTEM)
            deps.emit(f"Expires: {format_expiry(expiry)}", Severity.INFO)
            deps.emit(f"Tx hash: {short_hash(receipt.tx_hash)}", Severity.INFO)
            await deps.try_read(
                lambda: deps.directory.store_session(
                    context.wallet_address,
                    StoredSession(session_address, expiry, receipt.tx_hash),
                ),
                "directory.store_session",
                warning="Session is active but could not be saved; it will not be restored on reconnect.",
            )

        async def on_failed(kind: ErrorKind) -> None:
            if state.is_current(epoch):
                state.end_session_operation()

        deps.submit_write(
            WriteJob(
                kind=OperationKind.AUTHORIZE_SESSION,
                label="authorize delegation session",
                epoch=epoch,
                context=context,
                on_confirmed=on_confirmed,
                on_failed=on_failed,
            ),
            authorize_session_call(context.contract_address, session_address, expiry),
        )
        return None

    async def revoke_session(self, args: tuple[str, ...]) -> CommandResult:
        deps = self._deps
        state = deps.state
        if self._refuse_if_busy():
            return None
        if state.delegated_session is None:
            deps.emit("No active delegation session to revoke.", Severity.WARNING)
            return None

        context = state.context
        assert context is not None
        epoch = state.epoch

        state.begin_session_operation(OperationKind.REVOKE_SESSION)
        deps.emit("Revoking delegation session on-chain...", Severity.INFO)

        async def on_confirmed(receipt: Receipt) -> None:
            if deps.is_stale(epoch, OperationKind.REVOKE_SESSION.value, receipt.handle):
                return
            state.end_session_operation()
            state.revoke_session()
            deps.emit("Delegation session revoked on-chain!", Severity.SYSTEM)
            deps.emit(f"Tx hash: {short_hash(receipt.tx_hash)}", Severity.INFO)
            await deps.try_read(
                lambda: deps.directory.deactivate_session(context.wallet_address),
                "directory.deactivate_session",
            )

        async def on_failed(kind: ErrorKind) -> None:
            if state.is_current(epoch):
                state.end_session_operation()

        deps.submit_write(
            WriteJob(
                kind=OperationKind.REVOKE_SESSION,
                label="revoke delegation session",
                epoch=epoch,
                context=context,
                on_confirmed=on_confirmed,
                on_failed=on_failed,
            ),
            revoke_session_call(context.contract_address),
        )
        return None
