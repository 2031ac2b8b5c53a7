"""Preferred key order for structured log events."""

from __future__ import annotations

DEFAULT_EVENT_KEY_ORDER: list[str] = ["ts", "level", "logger"]

EVENT_KEY_ORDER: dict[str, list[str]] = {
    # Application lifecycle events
    "app_start": [
        "ts",
        "level",
        "profile_file",
        "log_file",
        "logs_dir",
        "chain_id",
        "bundler_url",
        "directory_url",
        "demo",
    ],
    "app_stop": ["ts", "level", "reason", "uptime_ms", "error_type", "error"],
    "session_start": ["ts", "level", "profile_file", "log_file", "demo"],
    "session_stop": ["ts", "level", "reason", "pending_count"],
    # Command execution events
    "command_exec": [
        "ts",
        "level",
        "command",
        "args_summary",
        "connection",
        "channel",
        "elapsed_ms",
    ],
    "command_error": [
        "ts",
        "level",
        "command",
        "args_summary",
        "error_type",
        "error",
    ],
    # State machine events
    "state_transition": [
        "ts",
        "level",
        "transition",
        "from_state",
        "to_state",
        "epoch",
        "channel",
    ],
    "stale_completion": ["ts", "level", "kind", "handle", "epoch", "current_epoch"],
    # Operation lifecycle events
    "operation_submit": ["ts", "level", "kind", "phase", "handle", "target"],
    "operation_retry": [
        "ts",
        "level",
        "operation",
        "attempt",
        "max_attempts",
        "sleep_sec",
        "error_kind",
        "error_type",
        "error",
    ],
    "operation_result": [
        "ts",
        "level",
        "kind",
        "outcome",
        "handle",
        "tx_hash",
        "error_kind",
        "latency_ms",
        "error",
    ],
    "operation_observer_error": ["ts", "level", "operation", "error_type", "error"],
    # Collaborator events
    "directory_error": ["ts", "level", "operation", "error_type", "error"],
    "repl_error": ["ts", "level", "error_type", "error"],
}

LOG_PATH_FIELDS = {
    "profile_file",
    "log_file",
    "logs_dir",
}
