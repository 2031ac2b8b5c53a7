"""Two-phase submission of write operations through the bundler.

Phase A hands the request to the bundler and yields a handle; nothing has
been broadcast when it fails, so it is retried freely. Phase B waits for
the receipt of that handle. Once Phase A succeeded the write may already be
on its way, so an exhausted Phase B is reported as an ambiguous timeout and
Phase A is never repeated.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Literal, Optional, TypeAlias

from ..logging import log_event
from ..timeouts import DEFAULT_RECEIPT_TIMEOUT_SEC, RECEIPT_RETRY_ATTEMPTS
from .backoff import RetryPolicy
from .classifier import classify
from .errors import BundlerTimeoutError, ErrorKind
from .executor import AttemptFailedCallback, SleepFn, execute
from .models import OperationKind, OperationRequest, PendingOperation, Receipt

if TYPE_CHECKING:
    from ..session.context import ConnectionContext


@dataclass(slots=True, frozen=True)
class SubmitConfirmed:
    pending: PendingOperation
    receipt: Receipt
    outcome: Literal["confirmed"] = "confirmed"


@dataclass(slots=True, frozen=True)
class SubmitReverted:
    pending: PendingOperation
    receipt: Receipt | None
    message: str
    outcome: Literal["reverted"] = "reverted"


@dataclass(slots=True, frozen=True)
class SubmitAmbiguous:
    """Receipt not observed in time; the operation may still confirm."""

    pending: PendingOperation
    error_kind: ErrorKind
    message: str
    outcome: Literal["ambiguous_timeout"] = "ambiguous_timeout"


SubmitOutcome: TypeAlias = SubmitConfirmed | SubmitReverted | SubmitAmbiguous

SubmittedCallback = Callable[[PendingOperation], Any]


def default_receipt_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=RECEIPT_RETRY_ATTEMPTS)


class OperationSubmitter:
    """Submit requests and await receipts, each phase under its own policy."""

    def __init__(
        self,
        submit_policy: Optional[RetryPolicy] = None,
        receipt_policy: Optional[RetryPolicy] = None,
        receipt_timeout: int | float = DEFAULT_RECEIPT_TIMEOUT_SEC,
        *,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.submit_policy = submit_policy or RetryPolicy()
        self.receipt_policy = receipt_policy or default_receipt_policy()
        self.receipt_timeout = receipt_timeout
        self._sleep = sleep

    async def submit(
        self,
        context: "ConnectionContext",
        request: OperationRequest,
        kind: OperationKind,
        *,
        on_submitted: Optional[SubmittedCallback] = None,
        on_attempt_failed: Optional[AttemptFailedCallback] = None,
    ) -> SubmitOutcome:
        """Run both phases and return the receipt outcome.

        Raises:
            Exception: The original Phase A error, or a fatal Phase B error
                other than a revert
        """
        pending = await self.submit_phase(
            context, request, kind, on_attempt_failed=on_attempt_failed
        )
        if on_submitted is not None:
            result = on_submitted(pending)
            if inspect.isawaitable(result):
                await result
        return await self.await_confirmation(
            context, pending, on_attempt_failed=on_attempt_failed
        )

    async def submit_phase(
        self,
        context: "ConnectionContext",
        request: OperationRequest,
        kind: OperationKind,
        *,
        on_attempt_failed: Optional[AttemptFailedCallback] = None,
    ) -> PendingOperation:
        """Phase A: hand the request to the bundler and return its handle."""
        log_event(
            "operation_submit",
            level=logging.INFO,
            kind=kind.value,
            phase="submit",
            target=request.target,
        )
        started = time.perf_counter()
        try:
            handle = await execute(
                lambda: context.bundler.submit_operation(request),
                self.submit_policy,
                on_attempt_failed,
                sleep=self._sleep,
                operation_name=f"{kind.value}.submit",
            )
        except Exception as error:
            log_event(
                "operation_result",
                level=logging.ERROR,
                kind=kind.value,
                outcome="rejected",
                error_kind=classify(error).kind.value,
                latency_ms=round((time.perf_counter() - started) * 1000, 1),
                error=str(error),
            )
            raise

        pending = PendingOperation(handle=str(handle), kind=kind)
        log_event(
            "operation_submit",
            level=logging.INFO,
            kind=kind.value,
            phase="submitted",
            handle=pending.handle,
            target=request.target,
        )
        return pending

    async def await_confirmation(
        self,
        context: "ConnectionContext",
        pending: PendingOperation,
        *,
        on_attempt_failed: Optional[AttemptFailedCallback] = None,
    ) -> SubmitOutcome:
        """Phase B: wait for the receipt of an already submitted operation."""
        started = time.perf_counter()
        try:
            receipt = await execute(
                lambda: self._wait_for_receipt(context, pending.handle, self.receipt_timeout),
                self.receipt_policy,
                on_attempt_failed,
                sleep=self._sleep,
                operation_name=f"{pending.kind.value}.receipt",
            )
        except Exception as error:
            classification = classify(error)
            latency_ms = round((time.perf_counter() - started) * 1000, 1)
            if classification.retryable:
                log_event(
                    "operation_result",
                    level=logging.WARNING,
                    kind=pending.kind.value,
                    outcome="ambiguous_timeout",
                    handle=pending.handle,
                    error_kind=classification.kind.value,
                    latency_ms=latency_ms,
                    error=str(error),
                )
                return SubmitAmbiguous(
                    pending=pending,
                    error_kind=classification.kind,
                    message=str(error),
                )

            pending.fail(classification.kind)
            log_event(
                "operation_result",
                level=logging.ERROR,
                kind=pending.kind.value,
                outcome="failed",
                handle=pending.handle,
                error_kind=classification.kind.value,
                latency_ms=latency_ms,
                error=str(error),
            )
            if classification.kind is ErrorKind.CHAIN_REVERTED:
                return SubmitReverted(pending=pending, receipt=None, message=str(error))
            raise

        return self._resolve(pending, receipt, started)

    async def check_once(
        self,
        context: "ConnectionContext",
        pending: PendingOperation,
        timeout: int | float,
    ) -> SubmitOutcome:
        """Single receipt check for an operation left pending by a timeout."""
        started = time.perf_counter()
        try:
            receipt = await self._wait_for_receipt(context, pending.handle, timeout)
        except Exception as error:
            classification = classify(error)
            if classification.retryable:
                return SubmitAmbiguous(
                    pending=pending,
                    error_kind=classification.kind,
                    message=str(error),
                )
            pending.fail(classification.kind)
            if classification.kind is ErrorKind.CHAIN_REVERTED:
                return SubmitReverted(pending=pending, receipt=None, message=str(error))
            raise
        return self._resolve(pending, receipt, started)

    async def _wait_for_receipt(
        self,
        context: "ConnectionContext",
        handle: str,
        timeout: int | float,
    ) -> Receipt:
        wait_timeout = None if timeout == 0 else float(timeout)
        receipt = await asyncio.wait_for(
            context.bundler.await_receipt(handle, timeout),
            timeout=wait_timeout,
        )
        if receipt is None:
            raise BundlerTimeoutError(handle, float(timeout))
        return receipt

    def _resolve(
        self,
        pending: PendingOperation,
        receipt: Receipt,
        started: float,
    ) -> SubmitOutcome:
        latency_ms = round((time.perf_counter() - started) * 1000, 1)
        if receipt.success:
            pending.confirm(receipt.tx_hash)
            log_event(
                "operation_result",
                level=logging.INFO,
                kind=pending.kind.value,
                outcome="confirmed",
                handle=pending.handle,
                tx_hash=receipt.tx_hash,
                latency_ms=latency_ms,
            )
            return SubmitConfirmed(pending=pending, receipt=receipt)

        pending.fail(ErrorKind.CHAIN_REVERTED)
        log_event(
            "operation_result",
            level=logging.ERROR,
            kind=pending.kind.value,
            outcome="reverted",
            handle=pending.handle,
            tx_hash=receipt.tx_hash,
            error_kind=ErrorKind.CHAIN_REVERTED.value,
            latency_ms=latency_ms,
        )
        return SubmitReverted(
            pending=pending,
            receipt=receipt,
            message=receipt.reason or "Transaction reverted on-chain",
        )
