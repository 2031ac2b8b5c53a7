"""Tests for retry policy validation and the backoff schedule."""

from types import SimpleNamespace

import pytest

from chainirc.operations.backoff import RetryPolicy, delay_for_attempt, wait_policy


class TestRetryPolicy:
    """Policy validation and profile round-trip."""

    def test_defaults(self):
        """Defaults give three attempts starting at one second."""
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.initial_delay == 1.0
        assert policy.max_delay == 10.0
        assert policy.backoff_multiplier == 2.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"max_attempts": True},
            {"max_attempts": 1.5},
            {"initial_delay": -1},
            {"initial_delay": 5, "max_delay": 1},
            {"backoff_multiplier": 1},
            {"max_delay": float("inf")},
        ],
    )
    def test_invalid_values_raise(self, kwargs):
        """Invalid fields are rejected with ValueError."""
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)

    def test_from_dict_fills_from_defaults(self):
        """Missing keys come from the supplied defaults."""
        defaults = RetryPolicy(max_attempts=2, initial_delay=0.5)
        policy = RetryPolicy.from_dict({"max_attempts": 5}, defaults=defaults)
        assert policy.max_attempts == 5
        assert policy.initial_delay == 0.5

    def test_from_dict_rejects_unknown_fields(self):
        """Typos in retry config are reported."""
        with pytest.raises(ValueError, match="Unknown retry policy fields"):
            RetryPolicy.from_dict({"attempts": 3})

    def test_to_dict_round_trip(self):
        """to_dict output rebuilds the same policy."""
        policy = RetryPolicy(max_attempts=4, initial_delay=0.25, max_delay=3, backoff_multiplier=3)
        assert RetryPolicy.from_dict(policy.to_dict()) == policy


class TestDelayForAttempt:
    """Exponential backoff capped at max_delay."""

    def test_schedule(self):
        """Delays double from the initial delay."""
        policy = RetryPolicy(initial_delay=1.0, max_delay=10.0, backoff_multiplier=2.0)
        assert [delay_for_attempt(i, policy) for i in range(5)] == [1.0, 2.0, 4.0, 8.0, 10.0]

    def test_monotone_and_bounded(self):
        """The schedule never decreases and never exceeds max_delay."""
        policy = RetryPolicy(initial_delay=0.3, max_delay=7.0, backoff_multiplier=1.7)
        delays = [delay_for_attempt(i, policy) for i in range(50)]
        assert delays == sorted(delays)
        assert all(0 <= d <= 7.0 for d in delays)

    def test_huge_attempt_index_is_capped(self):
        """Overflowing exponents fall back to max_delay."""
        policy = RetryPolicy(initial_delay=1.0, max_delay=10.0)
        assert delay_for_attempt(10_000, policy) == 10.0

    def test_negative_index_raises(self):
        """Attempt indexes start at zero."""
        with pytest.raises(ValueError):
            delay_for_attempt(-1, RetryPolicy())


def test_wait_policy_uses_zero_based_index():
    """Tenacity attempt numbers start at 1; the schedule starts at index 0."""
    wait = wait_policy(RetryPolicy(initial_delay=1.0))
    assert wait(SimpleNamespace(attempt_number=1)) == 1.0
    assert wait(SimpleNamespace(attempt_number=3)) == 4.0
