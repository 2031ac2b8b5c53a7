"""Bounded, classification-aware retry loop for async operations."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt

from ..logging import before_sleep_log_event, log_event
from .backoff import RetryPolicy, wait_policy
from .classifier import RetryableFailure, attempt_result, classify

T = TypeVar("T")

AttemptFailedCallback = Callable[[int, RetryableFailure, float], None]
SleepFn = Callable[[float], Awaitable[Any]]
RetryPredicate = Callable[[BaseException], bool]


def is_retryable(error: BaseException) -> bool:
    """Default retry predicate: retry what the classifier marks retryable."""
    # Cancellation and interpreter exits are never retried.
    if not isinstance(error, Exception):
        return False
    return classify(error).retryable


def _describe_error(error: BaseException) -> dict[str, Any]:
    return {"error_kind": classify(error).kind.value}


def _notify_attempt_failed(
    callback: Optional[AttemptFailedCallback],
    operation_name: str,
) -> Callable[[Any], None]:
    def _before_sleep(retry_state: Any) -> None:
        if callback is None:
            return
        try:
            error = retry_state.outcome.exception()
            failure = attempt_result(error)
            if not isinstance(failure, RetryableFailure):
                return
            callback(
                retry_state.attempt_number - 1,
                failure,
                float(retry_state.next_action.sleep),
            )
        except Exception as error:
            # Observers must never fail the operation they observe.
            log_event(
                "operation_observer_error",
                level=logging.WARNING,
                operation=operation_name,
                error_type=type(error).__name__,
                error=str(error),
            )

    return _before_sleep


async def execute(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    on_attempt_failed: Optional[AttemptFailedCallback] = None,
    *,
    sleep: SleepFn = asyncio.sleep,
    operation_name: str = "operation",
    retry_if: Optional[RetryPredicate] = None,
) -> T:
    """Run ``operation`` with up to ``policy.max_attempts`` attempts.

    A non-retryable classification re-raises immediately. A retryable
    failure on the last attempt re-raises the original error. Between
    attempts ``on_attempt_failed(attempt_index, failure, delay)`` is called
    and the executor sleeps ``delay_for_attempt(attempt_index, policy)``.
    ``retry_if`` replaces the classification-based retry decision.
    """
    log_retry = before_sleep_log_event(
        operation=operation_name,
        max_attempts=policy.max_attempts,
        describe_error=_describe_error,
    )
    notify = _notify_attempt_failed(on_attempt_failed, operation_name)

    def _before_sleep(retry_state: Any) -> None:
        log_retry(retry_state)
        notify(retry_state)

    async def _attempt() -> T:
        # AsyncRetrying only awaits coroutine functions; thunks return awaitables.
        return await operation()

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_policy(policy),
        retry=retry_if_exception(retry_if or is_retryable),
        before_sleep=_before_sleep,
        sleep=sleep,
        reraise=True,
    )
    return await retrying(_attempt)
