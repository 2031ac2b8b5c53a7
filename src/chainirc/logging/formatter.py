"""Plaintext block formatter for structured log records."""

from __future__ import annotations

import json
import logging
from typing import Any

from ..time_utils import utc_now_iso
from .schema import DEFAULT_EVENT_KEY_ORDER, EVENT_KEY_ORDER

_HTTPX_REQUEST_MSG = 'HTTP Request: %s %s "%s %d %s"'


def _decode_payload(message: str) -> dict[str, Any] | None:
    if not (message.startswith("{") and message.endswith("}")):
        return None
    try:
        parsed = json.loads(message)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _httpx_request_fields(record: logging.LogRecord) -> dict[str, Any] | None:
    """Split httpx's per-request INFO line into fields.

    Bundler polling produces one of these per receipt poll, so they are
    kept greppable by method and status.
    """
    if record.name != "httpx" or str(record.msg) != _HTTPX_REQUEST_MSG:
        return None
    if not isinstance(record.args, tuple) or len(record.args) != 5:
        return None
    method, url, version, status, reason = record.args
    return {
        "event": "httpx_request",
        "http_method": str(method),
        "http_url": str(url),
        "http_version": str(version),
        "http_status": status if isinstance(status, int) else str(status),
        "http_reason": str(reason),
    }


class StructuredTextFormatter(logging.Formatter):
    """Render every record as an ``=== event ===`` block of ``key: value`` lines.

    Keys follow the per-event order from ``EVENT_KEY_ORDER``; keys the
    schema does not name come after, alphabetically. ``None`` values are
    dropped.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._entries = 0

    @staticmethod
    def _format_value(value: Any) -> str:
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        return str(value).replace("\n", "\\n")

    @staticmethod
    def _ordered_keys(event_name: str, data: dict[str, Any]) -> list[str]:
        preferred = EVENT_KEY_ORDER.get(event_name, DEFAULT_EVENT_KEY_ORDER)
        present = {key for key, value in data.items() if value is not None}
        head = [key for key in preferred if key in present]
        tail = sorted(present.difference(preferred))
        return head + tail

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        fields = _decode_payload(message) or _httpx_request_fields(record)
        if fields is None:
            fields = {"event": record.name, "message": message}

        data: dict[str, Any] = {
            "ts": utc_now_iso(),
            "level": record.levelname,
            "logger": record.name,
        }
        data.update(fields)
        event_name = str(data.pop("event", record.name))

        lines = [f"=== {event_name} ==="]
        lines.extend(
            f"{key}: {self._format_value(data[key])}"
            for key in self._ordered_keys(event_name, data)
        )
        if record.exc_info:
            lines.append("traceback:")
            lines.append(self.formatException(record.exc_info))

        self._entries += 1
        body = "\n".join(lines)
        # Blank line between entries, none before the first.
        return body if self._entries == 1 else "\n" + body
