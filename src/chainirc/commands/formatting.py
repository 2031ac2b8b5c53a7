"""Display formatting shared by command handlers."""

from __future__ import annotations

from decimal import Decimal

from ..constants import (
    BORDERLINE_CHAR,
    BORDERLINE_WIDTH,
    DATETIME_FORMAT_DISPLAY,
    NATIVE_TOKEN_DECIMALS,
    NATIVE_TOKEN_SYMBOL,
)
from ..time_utils import format_unix_local

WEI_PER_TOKEN = Decimal(10) ** NATIVE_TOKEN_DECIMALS


def format_native_amount(wei: int) -> str:
    """Render a wei amount as ``0.0125 MON`` without trailing zeros."""
    amount = (Decimal(wei) / WEI_PER_TOKEN).normalize()
    text = format(amount, "f")
    return f"{text} {NATIVE_TOKEN_SYMBOL}"


def format_expiry(expiry: int) -> str:
    return format_unix_local(expiry, DATETIME_FORMAT_DISPLAY) or str(expiry)


def format_remaining(seconds: int) -> str:
    minutes, secs = divmod(max(0, seconds), 60)
    if minutes >= 60:
        hours, minutes = divmod(minutes, 60)
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def short_hash(value: str, head: int = 10, tail: int = 8) -> str:
    if len(value) <= head + tail + 3:
        return value
    return f"{value[:head]}...{value[-tail:]}"


def make_borderline(char: str = BORDERLINE_CHAR, width: int = BORDERLINE_WIDTH) -> str:
    return char * width
