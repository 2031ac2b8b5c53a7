"""Command interpreter: parsing, precondition gating, dispatch and write tracking.

Commands are handled strictly one at a time. Writes commit their optimistic
local state before returning and finish in tracked background tasks; a
task's completion only touches ``SessionState`` while the connection epoch
it captured is still current.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Coroutine, Optional, TypeVar

from ..constants import DEFAULT_SESSION_VALIDITY_MINUTES
from ..gateways.directory import DirectoryGateway
from ..logging import log_event, sanitize_error_message, summarize_command_args
from ..operations.backoff import RetryPolicy
from ..operations.classifier import RetryableFailure, classify, diagnose
from ..operations.errors import DirectoryError, ErrorKind
from ..operations.executor import SleepFn, execute, is_retryable
from ..operations.models import OperationRequest, PendingOperation
from ..operations.submitter import (
    OperationSubmitter,
    SubmitAmbiguous,
    SubmitConfirmed,
    SubmitOutcome,
)
from ..session.context import ConnectionContext
from ..session.state import SessionState
from ..terminal import Severity, TerminalSink
from ..timeouts import READ_BACKOFF_INITIAL_SEC, READ_RETRY_ATTEMPTS, STATUS_CHECK_TIMEOUT_SEC
from .account import AccountCommandHandlers
from .channels import ChannelCommandHandlers
from .dispatcher import CommandDispatcher
from .misc import MiscCommandHandlers
from .operations import OperationCommandHandlers
from .parser import Command, is_forced_command, parse
from .registry import CommandSpec, Requirement
from .session_keys import SessionKeyCommandHandlers
from .types import CommandResult, WriteJob

T = TypeVar("T")

Connector = Callable[[], ConnectionContext]


def default_read_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=READ_RETRY_ATTEMPTS, initial_delay=READ_BACKOFF_INITIAL_SEC)


def is_retryable_read(error: BaseException) -> bool:
    """Directory client errors (4xx other than 408/429) are answers, not outages."""
    if isinstance(error, DirectoryError) and error.status_code is not None:
        if 400 <= error.status_code < 500 and error.status_code not in (408, 429):
            return False
    return is_retryable(error)


class CommandInterpreter:
    """Turn terminal input into state transitions and on-chain writes."""

    def __init__(
        self,
        state: SessionState,
        sink: TerminalSink,
        directory: DirectoryGateway,
        connector: Connector,
        submitter: Optional[OperationSubmitter] = None,
        *,
        read_policy: Optional[RetryPolicy] = None,
        session_validity_minutes: int = DEFAULT_SESSION_VALIDITY_MINUTES,
        status_timeout: int | float = STATUS_CHECK_TIMEOUT_SEC,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.state = state
        self.sink = sink
        self.directory = directory
        self.connector = connector
        self.submitter = submitter or OperationSubmitter(sleep=sleep)
        self.read_policy = read_policy or default_read_policy()
        self.session_validity_minutes = session_validity_minutes
        self.status_timeout = status_timeout
        self._sleep = sleep
        self._tasks: set[asyncio.Task[None]] = set()
        self._jobs: dict[str, WriteJob] = {}
        self._handler_groups: dict[str, Any] = {
            "account": AccountCommandHandlers(self),
            "session_keys": SessionKeyCommandHandlers(self),
            "channels": ChannelCommandHandlers(self),
            "operations": OperationCommandHandlers(self),
            "misc": MiscCommandHandlers(self),
        }
        self._dispatcher = CommandDispatcher(self._handler_groups)

    # ------------------------------------------------------------------
    # Input handling
    # ------------------------------------------------------------------

    async def handle(self, raw: str) -> CommandResult:
        """Handle one line of user input.

        Unknown words are sent as a channel message when a channel is joined
        and the line does not start with ``/``.
        """
        command = parse(raw)
        if command is None:
            return None

        spec = self._dispatcher.resolve(command.name)
        if spec is None:
            if not is_forced_command(raw) and self.state.current_channel is not None:
                command = Command(name="say", args=(raw.strip(),))
                spec = self._dispatcher.resolve("say")
            else:
                log_event(
                    "command_error",
                    level=logging.WARNING,
                    command=command.name,
                    args_summary=summarize_command_args(command.name, command.args),
                    error_type="UnknownCommand",
                    error="unknown command",
                )
                self.emit(f"Unknown command: {command.name}", Severity.ERROR)
                self.emit("Type 'help' to see available commands.", Severity.INFO)
                return None

        assert spec is not None
        if not self._check_requirements(spec):
            return None

        started = time.perf_counter()
        args_summary = summarize_command_args(spec.name, command.args)
        try:
            result = await self._dispatcher.dispatch(spec, command.args)
        except ValueError as error:
            log_event(
                "command_error",
                level=logging.ERROR,
                command=spec.name,
                args_summary=args_summary,
                error_type=type(error).__name__,
                error=str(error),
            )
            self.emit(sanitize_error_message(str(error)), Severity.ERROR)
            return None
        except Exception as error:
            log_event(
                "command_error",
                level=logging.ERROR,
                command=spec.name,
                args_summary=args_summary,
                error_type=type(error).__name__,
                error=str(error),
            )
            logging.error(
                "Unexpected command error (command=%s): %s", spec.name, error, exc_info=True
            )
            self.report_failure(f"'{spec.name}' failed", error)
            return None

        log_event(
            "command_exec",
            level=logging.INFO,
            command=spec.name,
            args_summary=args_summary,
            connection=self.state.phase().value,
            channel=self.state.current_channel.name if self.state.current_channel else None,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return result

    def _check_requirements(self, spec: CommandSpec) -> bool:
        for requirement in spec.requires:
            if requirement is Requirement.CONNECTED and not self.state.is_connected:
                self.emit("Please connect your Smart Account first.", Severity.ERROR)
                self.emit("Run 'connect wallet' to connect.", Severity.INFO)
                return False
            if requirement is Requirement.CHANNEL and self.state.current_channel is None:
                self.emit("You are not in any channel.", Severity.ERROR)
                self.emit("Use 'join #channelName' to enter a channel.", Severity.INFO)
                return False
            if requirement is Requirement.SESSION and not self.state.has_active_session():
                if self.state.delegated_session is not None:
                    self.emit("Your delegation session has expired.", Severity.WARNING)
                self.emit("Please authorize delegation session first.", Severity.ERROR)
                self.emit("Run 'authorize session' to create one.", Severity.INFO)
                return False
        return True

    # ------------------------------------------------------------------
    # Output helpers
    # ------------------------------------------------------------------

    def emit(self, text: str, severity: Severity = Severity.OUTPUT) -> None:
        self.sink.emit(text, severity)

    def report_failure(
        self, action: str, error: Any, kind: Optional[ErrorKind] = None
    ) -> None:
        """Emit a failure with its diagnosis and suggestions, never a type name."""
        if isinstance(error, DirectoryError) and not is_retryable_read(error):
            self.emit(f"{action}: {sanitize_error_message(str(error))}", Severity.ERROR)
            return

        diagnosis = diagnose(error, kind)
        self.emit(f"{action}: {diagnosis.summary}", Severity.ERROR)
        if diagnosis.detail and diagnosis.detail.lower() not in diagnosis.summary.lower():
            self.emit(f"Details: {diagnosis.detail}", Severity.INFO)
        for suggestion in diagnosis.suggestions:
            self.emit(f"  - {suggestion}", Severity.INFO)

    # ------------------------------------------------------------------
    # Reads and background writes
    # ------------------------------------------------------------------

    async def read(self, operation: Callable[[], Awaitable[T]], name: str) -> T:
        """Run a collaborator read under the read retry policy."""
        return await execute(
            operation,
            self.read_policy,
            sleep=self._sleep,
            operation_name=name,
            retry_if=is_retryable_read,
        )

    def spawn(self, coro: Coroutine[Any, Any, None], name: str) -> asyncio.Task[None]:
        task = asyncio.create_task(self._guarded(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guarded(self, coro: Coroutine[Any, Any, None], name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as error:
            log_event(
                "command_error",
                level=logging.ERROR,
                command=name,
                error_type=type(error).__name__,
                error=str(error),
            )
            logging.error("Background task %s failed: %s", name, error, exc_info=True)
            self.emit(f"Background task failed: {sanitize_error_message(str(error))}", Severity.ERROR)

    async def drain(self) -> None:
        """Wait until every background task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel background tasks that are still running and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    @property
    def pending_task_count(self) -> int:
        return len(self._tasks)

    def log_directory_error(self, operation: str, error: BaseException) -> None:
        log_event(
            "directory_error",
            level=logging.WARNING,
            operation=operation,
            error_type=type(error).__name__,
            error=str(error),
        )

    async def try_read(
        self,
        operation: Callable[[], Awaitable[T]],
        name: str,
        warning: Optional[str] = None,
    ) -> Optional[T]:
        """Best-effort read: failures are logged, optionally warned about, and give None."""
        try:
            return await self.read(operation, name)
        except Exception as error:
            self.log_directory_error(name, error)
            if warning:
                self.emit(warning, Severity.WARNING)
            return None

    def submit_write(self, job: WriteJob, request: OperationRequest) -> None:
        self.spawn(self.run_write(job, request), name=job.kind.value)

    async def run_write(self, job: WriteJob, request: OperationRequest) -> None:
        """Submit ``request`` and settle ``job`` with the outcome."""

        submitted: list[PendingOperation] = []

        def on_submitted(pending: PendingOperation) -> None:
            submitted.append(pending)
            if self.state.is_current(job.epoch):
                self.state.track_pending(pending)
            self.emit(f"Submitted; waiting for confirmation ({pending.handle})", Severity.INFO)

        def on_attempt_failed(attempt: int, failure: RetryableFailure, delay: float) -> None:
            self.emit(
                f"Attempt {attempt + 1} to {job.label} failed "
                f"({failure.error_kind.value}); retrying in {delay:.1f}s...",
                Severity.WARNING,
            )

        try:
            outcome = await self.submitter.submit(
                job.context,
                request,
                job.kind,
                on_submitted=on_submitted,
                on_attempt_failed=on_attempt_failed,
            )
        except Exception as error:
            for pending in submitted:
                if self.state.is_current(job.epoch):
                    self.state.forget_pending(pending.handle)
            kind = classify(error).kind
            await job.on_failed(kind)
            self.report_failure(f"Failed to {job.label}", error, kind)
            return
        await self._settle(job, outcome)

    async def _settle(self, job: WriteJob, outcome: SubmitOutcome) -> None:
        handle = outcome.pending.handle
        if isinstance(outcome, SubmitAmbiguous):
            if self.state.is_current(job.epoch):
                self._jobs[handle] = job
            self.emit(
                f"No receipt yet for '{job.label}'; it may still complete.",
                Severity.WARNING,
            )
            self.emit(f"Operation handle: {handle}", Severity.INFO)
            self.emit(f"Run 'status {handle}' to check again.", Severity.INFO)
            return

        self._jobs.pop(handle, None)
        if self.state.is_current(job.epoch):
            self.state.forget_pending(handle)

        if isinstance(outcome, SubmitConfirmed):
            await job.on_confirmed(outcome.receipt)
            return

        await job.on_failed(ErrorKind.CHAIN_REVERTED)
        self.report_failure(f"Failed to {job.label}", outcome.message, ErrorKind.CHAIN_REVERTED)

    async def check_pending(self, handle: str) -> None:
        """Re-check one operation left pending by a receipt timeout."""
        pending = self.state.find_pending(handle)
        if pending is None:
            self.emit(f"No pending operation matches {handle}.", Severity.ERROR)
            self.emit("Run 'status' to list pending operations.", Severity.INFO)
            return
        job = self._jobs.get(pending.handle)
        if job is None:
            self.emit(f"Operation {pending.handle} is still being awaited.", Severity.INFO)
            return

        self.emit(f"Checking {pending.handle}...", Severity.INFO)
        try:
            outcome = await self.submitter.check_once(job.context, pending, self.status_timeout)
        except Exception as error:
            self._jobs.pop(pending.handle, None)
            self.state.forget_pending(pending.handle)
            kind = classify(error).kind
            await job.on_failed(kind)
            self.report_failure(f"Failed to {job.label}", error, kind)
            return

        if isinstance(outcome, SubmitAmbiguous):
            self.emit(f"Operation {pending.handle} is still pending.", Severity.INFO)
            return
        await self._settle(job, outcome)

    def is_stale(self, epoch: int, what: str, handle: Optional[str] = None) -> bool:
        """True, and logged, when a completion outlived the connection it belongs to."""
        if self.state.is_current(epoch):
            return False
        log_event(
            "stale_completion",
            level=logging.INFO,
            kind=what,
            handle=handle,
            epoch=epoch,
            current_epoch=self.state.epoch,
        )
        return True

    # ------------------------------------------------------------------
    # Resets
    # ------------------------------------------------------------------

    def reset(self, reason: str) -> None:
        """Disconnect and abandon session, channel and pending operations."""
        self.state.reset(reason)
        self._jobs.clear()

    def on_account_changed(self, wallet_address: Optional[str]) -> None:
        """Wallet reported a different (or no) account."""
        context = self.state.context
        if context is None:
            return
        if wallet_address and wallet_address.lower() == context.wallet_address.lower():
            return
        self.reset("account_changed")
        self.emit("Wallet account changed. You have been disconnected.", Severity.WARNING)
        self.emit("Run 'connect wallet' to reconnect.", Severity.INFO)

    def on_chain_changed(self, chain_id: int) -> None:
        """Wallet switched networks."""
        context = self.state.context
        if context is None or chain_id == context.chain_id:
            return
        self.reset("chain_changed")
        self.emit(f"Network changed to chain {chain_id}. You have been disconnected.", Severity.WARNING)
        self.emit("Run 'connect wallet' to reconnect.", Severity.INFO)
