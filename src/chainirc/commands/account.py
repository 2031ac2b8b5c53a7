"""Wallet and account command handlers."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from ..constants import USERNAME_PATTERN
from ..domain.directory import short_address
from ..operations.calls import revoke_session_call
from ..operations.errors import ErrorKind
from ..operations.models import OperationKind
from ..operations.submitter import SubmitAmbiguous, SubmitConfirmed
from ..session.state import DelegatedSession
from ..terminal import Severity
from .formatting import format_expiry, format_native_amount, format_remaining, short_hash
from .types import CommandResult

if TYPE_CHECKING:
    from .contracts import CommandDependencies as _CommandDependencies
else:
    class _CommandDependencies:
        pass


_USERNAME_RE = re.compile(USERNAME_PATTERN)


class AccountCommandHandlers:
    """Explicit handlers for connect, balance, username, whoami and logout."""

    def __init__(self, dependencies: _CommandDependencies) -> None:
        self._deps = dependencies

    async def connect_wallet(self, args: tuple[str, ...]) -> CommandResult:
        """Connect the configured Smart Account and restore a stored session."""
        deps = self._deps
        state = deps.state
        if state.is_connected and state.user is not None:
            deps.emit(f"Already connected as {state.user.display_name}.", Severity.WARNING)
            deps.emit("Run 'logout' first to connect again.", Severity.INFO)
            return None

        epoch = state.epoch
        context = deps.connector()
        deps.emit("Connecting Smart Account...", Severity.INFO)
        try:
            user = await deps.read(
                lambda: deps.directory.create_or_get_user(
                    context.wallet_address, context.smart_account_address
                ),
                "directory.create_or_get_user",
            )
        except Exception as error:
            deps.report_failure("Failed to connect", error)
            return None

        # A reset or a second connect may have landed while the read was in flight.
        if state.is_connected or state.epoch != epoch:
            deps.is_stale(epoch, "connect_wallet")
            return None

        state.connect(context, user)
        deps.emit("Smart Account connected!", Severity.SYSTEM)
        deps.emit(f"Wallet: {context.wallet_address}", Severity.INFO)
        deps.emit(f"Smart Account: {context.smart_account_address}", Severity.INFO)
        if user.username:
            deps.emit(f"Username: {user.username}", Severity.INFO)

        await self._restore_session(epoch)
        return None

    async def _restore_session(self, epoch: int) -> None:
        deps = self._deps
        context = deps.state.context
        if context is None:
            return
        stored = await deps.try_read(
            lambda: deps.directory.get_active_session(context.wallet_address),
            "directory.get_active_session",
            warning="Could not check for a previous delegation session.",
        )
        if deps.is_stale(epoch, "restore_session"):
            return

        if stored is None:
            deps.emit(
                "Run 'authorize session' to send messages without wallet prompts.",
                Severity.INFO,
            )
            return

        session = DelegatedSession(stored.session_address, stored.expiry, stored.tx_hash)
        if not session.is_active():
            deps.emit("Previous delegation session expired or inactive.", Severity.WARNING)
            deps.emit("Run 'authorize session' to create a new one.", Severity.INFO)
            return

        deps.state.authorize_session(session)
        deps.emit("Previous delegation session restored!", Severity.SYSTEM)
        deps.emit(f"Session expires: {format_expiry(session.expiry)}", Severity.INFO)

    async def show_balance(self, args: tuple[str, ...]) -> CommandResult:
        deps = self._deps
        context = deps.state.context
        assert context is not None
        try:
            wei = await deps.read(
                lambda: context.bundler.get_balance(context.smart_account_address),
                "bundler.get_balance",
            )
        except Exception as error:
            deps.report_failure("Failed to fetch balance", error)
            return None

        deps.emit(f"Smart Account balance: {format_native_amount(wei)}")
        if wei == 0:
            deps.emit("Your Smart Account has no funds to pay for gas.", Severity.WARNING)
            deps.emit(f"Send funds to {context.smart_account_address} first.", Severity.INFO)
        return None

    async def set_username(self, args: tuple[str, ...]) -> CommandResult:
        deps = self._deps
        if len(args) != 1:
            deps.emit("Usage: username set <newName>", Severity.ERROR)
            deps.emit("Example: username set alice", Severity.INFO)
            return None

        username = args[0]
        if not _USERNAME_RE.match(username):
            deps.emit(
                "Invalid username. Use 3-20 characters: letters, numbers, _ or -.",
                Severity.ERROR,
            )
            return None

        context = deps.state.context
        assert context is not None
        epoch = deps.state.epoch
        try:
            user = await deps.read(
                lambda: deps.directory.update_username(context.wallet_address, username),
                "directory.update_username",
            )
        except Exception as error:
            deps.report_failure("Failed to set username", error)
            return None
        if deps.is_stale(epoch, "set_username"):
            return None

        deps.state.update_user(user)
        deps.emit(f"Username set to {user.username or username}", Severity.SYSTEM)
        return None

    async def clear_username(self, args: tuple[str, ...]) -> CommandResult:
        deps = self._deps
        context = deps.state.context
        assert context is not None
        epoch = deps.state.epoch
        try:
            user = await deps.read(
                lambda: deps.directory.reset_username(context.wallet_address),
                "directory.reset_username",
            )
        except Exception as error:
            deps.report_failure("Failed to clear username", error)
            return None
        if deps.is_stale(epoch, "clear_username"):
            return None

        deps.state.update_user(user)
        deps.emit(
            f"Username cleared. You appear as {user.display_name}.",
            Severity.SYSTEM,
        )
        return None

    async def show_identity(self, args: tuple[str, ...]) -> CommandResult:
        """Show local identity and session details without a network call."""
        deps = self._deps
        state = deps.state
        context = state.context
        user = state.user
        assert context is not None and user is not None

        deps.emit(f"Username: {user.username or '(not set)'}")
        deps.emit(f"Wallet: {context.wallet_address}")
        deps.emit(f"Smart Account: {context.smart_account_address}")
        deps.emit(f"Chain ID: {context.chain_id}")

        session = state.delegated_session
        if session is None:
            deps.emit("Session: none")
        elif session.is_active():
            deps.emit(
                f"Session: {short_address(session.session_address)} "
                f"(expires {format_expiry(session.expiry)}, "
                f"{format_remaining(session.remaining_seconds())} left)"
            )
        else:
            deps.emit(f"Session: {short_address(session.session_address)} (expired)")

        channel = state.current_channel
        deps.emit(f"Channel: {channel.name if channel else '(none)'}")
        if state.pending_operations:
            deps.emit(f"Pending operations: {len(state.pending_operations)}")
        return None

    async def logout(self, args: tuple[str, ...]) -> CommandResult:
        """Revoke an active session when possible, then always disconnect."""
        deps = self._deps
        state = deps.state
        context = state.context
        if (
            context is not None
            and state.has_active_session()
            and state.session_operation is None
        ):
            deps.emit("Revoking delegation session...", Severity.INFO)
            try:
                outcome = await deps.submitter.submit(
                    context,
                    revoke_session_call(context.contract_address),
                    OperationKind.REVOKE_SESSION,
                )
            except Exception as error:
                deps.report_failure("Failed to revoke delegation session", error)
            else:
                if isinstance(outcome, SubmitConfirmed):
                    deps.emit("Delegation session revoked on-chain!", Severity.SYSTEM)
                    deps.emit(f"Tx hash: {short_hash(outcome.receipt.tx_hash)}", Severity.INFO)
                    await deps.try_read(
                        lambda: deps.directory.deactivate_session(context.wallet_address),
                        "directory.deactivate_session",
                    )
                elif isinstance(outcome, SubmitAmbiguous):
                    deps.emit(
                        "Revocation not confirmed yet; the session key stays valid until it expires.",
                        Severity.WARNING,
                    )
                else:
                    deps.report_failure(
                        "Failed to revoke delegation session",
                        outcome.message,
                        ErrorKind.CHAIN_REVERTED,
                    )

        deps.reset("logout")
        deps.emit("Logged out successfully.", Severity.SYSTEM)
        return None
