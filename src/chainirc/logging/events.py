"""Structured event emission, run log naming and logging setup."""

from __future__ import annotations

import itertools
import json
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from ..constants import APP_NAME, DATETIME_FORMAT_FILENAME, LOG_FILE_EXTENSION
from ..path_utils import map_path
from ..time_utils import utc_now_iso
from .formatter import StructuredTextFormatter
from .sanitization import sanitize_error_message
from .schema import LOG_PATH_FIELDS

ErrorDescriber = Callable[[BaseException], dict[str, Any]]


def _to_log_safe(value: Any) -> Any:
    """Convert a field value to something JSON can carry.

    Strings are sanitized; enums (error kinds, operation kinds) log their
    value; raw bytes log as 0x-hex like every other chain payload.
    """
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Enum):
        return _to_log_safe(value.value)
    if isinstance(value, str):
        return sanitize_error_message(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _to_log_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_to_log_safe(v) for v in value]
    return sanitize_error_message(str(value))


def _resolve_log_path(path_value: str) -> str:
    """Map a prefixed path to its absolute form, leaving bad input as given."""
    value = path_value.strip()
    if not value:
        return path_value
    try:
        return map_path(value)
    except ValueError:
        return path_value


def summarize_text(text: Any) -> str:
    """Collapse whitespace for single-line log fields."""
    if text is None:
        return ""
    return " ".join(str(text).split())


def summarize_command_args(command: str, args: tuple[str, ...] | list[str]) -> str:
    """Summarize command args for logs.

    Free-text message bodies are reduced to their length.
    """
    if not args:
        return ""
    if command == "say":
        return f"<{len(' '.join(args))} chars>"
    return summarize_text(" ".join(args))


def log_event(event: str, level: int = logging.INFO, **fields: Any) -> None:
    """Emit one structured event as a JSON message on the root logger."""
    payload: dict[str, Any] = {"ts": utc_now_iso(), "event": event}
    for key, value in fields.items():
        if key in LOG_PATH_FIELDS and isinstance(value, str):
            value = _resolve_log_path(value)
        payload[key] = _to_log_safe(value)
    logging.log(level, json.dumps(payload, ensure_ascii=False, separators=(",", ":")))


def before_sleep_log_event(
    *,
    operation: str,
    max_attempts: int | None = None,
    level: int = logging.WARNING,
    describe_error: Optional[ErrorDescriber] = None,
) -> Callable[[Any], None]:
    """Build a tenacity ``before_sleep`` hook that logs ``operation_retry``.

    The executor only retries on raised errors, so states without a failed
    outcome are ignored.
    """

    def _callback(retry_state: Any) -> None:
        outcome = getattr(retry_state, "outcome", None)
        next_action = getattr(retry_state, "next_action", None)
        if outcome is None or next_action is None or not getattr(outcome, "failed", False):
            return
        try:
            error = outcome.exception()
            fields: dict[str, Any] = {
                "operation": operation,
                "attempt": retry_state.attempt_number,
                "max_attempts": max_attempts,
                "sleep_sec": next_action.sleep,
                "error_type": type(error).__name__,
                "error": str(error),
            }
            if describe_error is not None:
                fields.update(describe_error(error))
        except Exception as describe_failure:
            log_event(
                "operation_observer_error",
                level=logging.WARNING,
                operation=operation,
                error_type=type(describe_failure).__name__,
                error=str(describe_failure),
            )
            return
        log_event("operation_retry", level=level, **fields)

    return _callback


def build_run_log_path(logs_dir: str) -> str:
    """Return a fresh ``chainirc_<timestamp>[_n].log`` path in ``logs_dir``.

    The directory is created if needed; an existing file is never reused.
    """
    directory = Path(logs_dir)
    directory.mkdir(parents=True, exist_ok=True)
    stem = f"{APP_NAME}_{datetime.now().strftime(DATETIME_FORMAT_FILENAME)}"

    candidate = directory / f"{stem}{LOG_FILE_EXTENSION}"
    for suffix in itertools.count(1):
        if not candidate.exists():
            break
        candidate = directory / f"{stem}_{suffix}{LOG_FILE_EXTENSION}"
    return str(candidate)


def setup_logging(log_file: Optional[str] = None) -> None:
    """Route all logging to ``log_file`` as structured text blocks.

    Without a log file, logging is disabled entirely so nothing leaks
    into the interactive terminal.
    """
    if not log_file:
        logging.disable(logging.CRITICAL)
        return

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(str(log_path), encoding="utf-8")
    handler.setFormatter(StructuredTextFormatter())
    logging.disable(logging.NOTSET)
    logging.basicConfig(level=logging.INFO, handlers=[handler], force=True)
