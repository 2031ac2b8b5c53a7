"""Centralized timeout and retry policy defaults."""

from __future__ import annotations

import math
from typing import Any

import httpx


# Receipt wait: per-attempt overall timeout for Phase B.
DEFAULT_RECEIPT_TIMEOUT_SEC = 60
RECEIPT_POLL_INTERVAL_SEC = 2.0
STATUS_CHECK_TIMEOUT_SEC = 5

# Shared HTTP timeout buckets for collaborator clients.
DEFAULT_HTTP_TIMEOUT_SEC = 30
HTTP_CONNECT_TIMEOUT_SEC = 10.0
HTTP_WRITE_TIMEOUT_SEC = 15.0
HTTP_POOL_TIMEOUT_SEC = 5.0

# Retry/backoff timing defaults.
SUBMIT_RETRY_ATTEMPTS = 3
RECEIPT_RETRY_ATTEMPTS = 3
READ_RETRY_ATTEMPTS = 2
RETRY_BACKOFF_INITIAL_SEC = 1.0
RETRY_BACKOFF_MAX_SEC = 10.0
RETRY_BACKOFF_MULTIPLIER = 2.0
READ_BACKOFF_INITIAL_SEC = 0.5


def normalize_timeout(value: Any, fallback: int | float) -> int | float:
    """Normalize timeout-like values to non-negative finite int/float."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        normalized = float(fallback)
    else:
        normalized = float(value)
    if not math.isfinite(normalized) or normalized < 0:
        normalized = float(fallback)
    if normalized.is_integer():
        return int(normalized)
    return normalized


def build_httpx_timeout(read_timeout_sec: int | float) -> httpx.Timeout | None:
    """Build httpx timeout config for collaborator clients.

    A read timeout of 0 disables timeouts entirely.
    """
    timeout_sec = normalize_timeout(read_timeout_sec, DEFAULT_HTTP_TIMEOUT_SEC)
    if timeout_sec == 0:
        return None
    return httpx.Timeout(
        connect=HTTP_CONNECT_TIMEOUT_SEC,
        read=float(timeout_sec),
        write=HTTP_WRITE_TIMEOUT_SEC,
        pool=HTTP_POOL_TIMEOUT_SEC,
    )
