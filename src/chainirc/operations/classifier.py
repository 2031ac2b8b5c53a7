"""Map raw collaborator errors to an ErrorKind and a retry decision.

Collaborators (bundler, wallet, RPC) report failures as free text. All
string matching on that text lives here so the retry loop and the command
handlers only ever see an ``ErrorKind``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx

from ..logging import sanitize_error_message
from .errors import BundlerTimeoutError, ErrorKind


@dataclass(slots=True, frozen=True)
class Classification:
    kind: ErrorKind
    retryable: bool


@dataclass(slots=True, frozen=True)
class RetryableFailure:
    error_kind: ErrorKind
    message: str


@dataclass(slots=True, frozen=True)
class FatalFailure:
    error_kind: ErrorKind
    message: str


@dataclass(slots=True, frozen=True)
class Diagnosis:
    """User-facing explanation of a failed operation."""

    kind: ErrorKind
    summary: str
    suggestions: tuple[str, ...]
    detail: str


# Ordered rules: the first rule with a matching marker wins.
_RULES: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (
        ErrorKind.USER_REJECTED,
        ("user denied", "user rejected", "rejected the request", "user cancelled"),
    ),
    (
        ErrorKind.INSUFFICIENT_FUNDS,
        (
            "insufficient funds",
            "aa21",
            "didn't pay prefund",
            "does not have sufficient funds",
            "insufficient balance",
        ),
    ),
    (ErrorKind.NETWORK_TIMEOUT, ("bundler_timeout", "timed out", "timeout")),
    (ErrorKind.BUNDLER_UNAVAILABLE, ("bundler", "not available", "service unavailable")),
    (
        ErrorKind.NETWORK_TIMEOUT,
        ("network", "econnrefused", "econnreset", "connection", "fetch failed"),
    ),
    (ErrorKind.GAS_ESTIMATION_FAILURE, ("gas", "estimation")),
    (ErrorKind.CHAIN_REVERTED, ("revert",)),
)

# Timeouts are classified by type first: their messages embed hex handles,
# which can contain markers such as "aa21".
_TIMEOUT_TYPES: tuple[type[BaseException], ...] = (
    BundlerTimeoutError,
    asyncio.TimeoutError,
    httpx.TimeoutException,
)

_NON_RETRYABLE = frozenset(
    {ErrorKind.USER_REJECTED, ErrorKind.INSUFFICIENT_FUNDS, ErrorKind.CHAIN_REVERTED}
)

_SUMMARIES: dict[ErrorKind, str] = {
    ErrorKind.USER_REJECTED: "Transaction was cancelled by the user.",
    ErrorKind.INSUFFICIENT_FUNDS: "Insufficient funds to pay for gas.",
    ErrorKind.BUNDLER_UNAVAILABLE: "The bundler is not reachable right now.",
    ErrorKind.NETWORK_TIMEOUT: "The network did not respond in time.",
    ErrorKind.GAS_ESTIMATION_FAILURE: "Gas estimation failed for this operation.",
    ErrorKind.CHAIN_REVERTED: "The transaction was reverted on-chain.",
    ErrorKind.UNKNOWN: "The operation failed.",
}

_SUGGESTIONS: dict[ErrorKind, tuple[str, ...]] = {
    ErrorKind.USER_REJECTED: (
        "Approve the request in your wallet to proceed.",
    ),
    ErrorKind.INSUFFICIENT_FUNDS: (
        "Fund your Smart Account with native tokens.",
        "Run 'balance' to check what the Smart Account holds.",
    ),
    ErrorKind.BUNDLER_UNAVAILABLE: (
        "Check that bundler_url in your profile is correct.",
        "Verify the bundler supports this network, then try again.",
    ),
    ErrorKind.NETWORK_TIMEOUT: (
        "Check your internet connection.",
        "Try again in a moment.",
    ),
    ErrorKind.GAS_ESTIMATION_FAILURE: (
        "Check that the Smart Account has enough balance.",
        "Try again; the request may be temporarily unexecutable.",
    ),
    ErrorKind.CHAIN_REVERTED: (
        "The request itself was rejected by the contract; change it before retrying.",
    ),
    ErrorKind.UNKNOWN: ("Try again.",),
}


def _probe_text(error: Any) -> str:
    if error is None:
        return ""
    if isinstance(error, str):
        return error.lower()
    message = str(error)
    if not message.strip():
        message = type(error).__name__
    return message.lower()


def classify(error: Any) -> Classification:
    """Classify an error by its type, then by its message text.

    Total over all inputs: unmatched or empty errors classify as
    ``UNKNOWN`` and retryable.
    """
    if isinstance(error, _TIMEOUT_TYPES):
        return Classification(kind=ErrorKind.NETWORK_TIMEOUT, retryable=True)
    text = _probe_text(error)
    for kind, markers in _RULES:
        if any(marker in text for marker in markers):
            return Classification(kind=kind, retryable=kind not in _NON_RETRYABLE)
    return Classification(kind=ErrorKind.UNKNOWN, retryable=True)


def attempt_result(error: Any) -> RetryableFailure | FatalFailure:
    """Wrap one failed attempt into its tagged result."""
    classification = classify(error)
    message = sanitize_error_message(str(error) if error is not None else "")
    if classification.retryable:
        return RetryableFailure(error_kind=classification.kind, message=message)
    return FatalFailure(error_kind=classification.kind, message=message)


def diagnose(error: Any, kind: ErrorKind | None = None) -> Diagnosis:
    """Build a user-facing diagnosis for an error.

    The detail text is sanitized and never falls back to the exception
    type name.
    """
    resolved = kind if kind is not None else classify(error).kind
    detail = "" if error is None else str(error).strip()
    return Diagnosis(
        kind=resolved,
        summary=_SUMMARIES[resolved],
        suggestions=_SUGGESTIONS[resolved],
        detail=sanitize_error_message(" ".join(detail.split())),
    )
