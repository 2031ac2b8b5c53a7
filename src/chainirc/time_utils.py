"""Shared date/time utilities used across the application."""

from __future__ import annotations

import time
from datetime import datetime, timezone


def utc_now_iso() -> str:
    """Return a high-precision UTC timestamp with explicit ``Z`` marker.

    Format: ``2026-01-15T12:34:56.789012Z``
    """
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace(
        "+00:00", "Z"
    )


def unix_now() -> int:
    """Return current wall-clock time as integer unix seconds."""
    return int(time.time())


def format_unix_local(timestamp: int | float, fmt: str) -> str | None:
    """Format unix seconds as local time, or ``None`` when out of range."""
    try:
        return datetime.fromtimestamp(timestamp).astimezone().strftime(fmt)
    except (ValueError, OverflowError, OSError, TypeError):
        return None
