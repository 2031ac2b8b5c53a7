"""Retry policy model and exponential backoff schedule."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from tenacity.wait import wait_base

from ..timeouts import (
    RETRY_BACKOFF_INITIAL_SEC,
    RETRY_BACKOFF_MAX_SEC,
    RETRY_BACKOFF_MULTIPLIER,
    SUBMIT_RETRY_ATTEMPTS,
)


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Bounded retry configuration. Delays are in seconds."""

    max_attempts: int = SUBMIT_RETRY_ATTEMPTS
    initial_delay: float = RETRY_BACKOFF_INITIAL_SEC
    max_delay: float = RETRY_BACKOFF_MAX_SEC
    backoff_multiplier: float = RETRY_BACKOFF_MULTIPLIER

    def __post_init__(self) -> None:
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise ValueError("max_attempts must be an integer")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        for name in ("initial_delay", "max_delay", "backoff_multiplier"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number")
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be non-negative")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be at least initial_delay")
        if self.backoff_multiplier <= 1:
            raise ValueError("backoff_multiplier must be greater than 1")

    @classmethod
    def from_dict(
        cls, raw: Mapping[str, Any], defaults: "RetryPolicy | None" = None
    ) -> "RetryPolicy":
        """Build a policy from profile data, filling gaps from ``defaults``."""
        if not isinstance(raw, Mapping):
            raise ValueError("retry policy must be a dictionary")
        base = defaults or cls()
        unknown = set(raw) - {"max_attempts", "initial_delay", "max_delay", "backoff_multiplier"}
        if unknown:
            raise ValueError(f"Unknown retry policy fields: {', '.join(sorted(unknown))}")
        return cls(
            max_attempts=raw.get("max_attempts", base.max_attempts),
            initial_delay=raw.get("initial_delay", base.initial_delay),
            max_delay=raw.get("max_delay", base.max_delay),
            backoff_multiplier=raw.get("backoff_multiplier", base.backoff_multiplier),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_attempts": self.max_attempts,
            "initial_delay": self.initial_delay,
            "max_delay": self.max_delay,
            "backoff_multiplier": self.backoff_multiplier,
        }


def delay_for_attempt(attempt_index: int, policy: RetryPolicy) -> float:
    """Return the sleep after failed attempt ``attempt_index`` (0-based).

    ``min(initial_delay * backoff_multiplier ** attempt_index, max_delay)``
    """
    if attempt_index < 0:
        raise ValueError("attempt_index must be non-negative")
    try:
        delay = policy.initial_delay * policy.backoff_multiplier**attempt_index
    except OverflowError:
        return float(policy.max_delay)
    return float(min(delay, policy.max_delay))


class wait_policy(wait_base):
    """Tenacity wait strategy following ``delay_for_attempt``."""

    def __init__(self, policy: RetryPolicy) -> None:
        self.policy = policy

    def __call__(self, retry_state: Any) -> float:
        # tenacity counts attempts from 1
        return delay_for_attempt(retry_state.attempt_number - 1, self.policy)
