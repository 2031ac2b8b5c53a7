"""Typed application profile model used at profile I/O boundaries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ..constants import DEFAULT_CHAIN_ID, DEFAULT_SESSION_VALIDITY_MINUTES
from ..keys.loader import validate_key_config
from ..operations.backoff import RetryPolicy
from ..timeouts import (
    DEFAULT_HTTP_TIMEOUT_SEC,
    DEFAULT_RECEIPT_TIMEOUT_SEC,
    READ_BACKOFF_INITIAL_SEC,
    READ_RETRY_ATTEMPTS,
    RECEIPT_RETRY_ATTEMPTS,
)

REQUIRED_PROFILE_KEYS = (
    "wallet_address",
    "smart_account_address",
    "contract_address",
    "bundler_url",
    "directory_url",
    "logs_dir",
)

_KNOWN_PROFILE_KEYS = {
    *REQUIRED_PROFILE_KEYS,
    "chain_id",
    "rpc_url",
    "bundler_api_key",
    "session_validity_minutes",
    "receipt_timeout",
    "http_timeout",
    "retry",
}

_RETRY_POLICY_NAMES = ("submit", "receipt", "read")


def default_retry_policies() -> dict[str, RetryPolicy]:
    return {
        "submit": RetryPolicy(),
        "receipt": RetryPolicy(max_attempts=RECEIPT_RETRY_ATTEMPTS),
        "read": RetryPolicy(
            max_attempts=READ_RETRY_ATTEMPTS,
            initial_delay=READ_BACKOFF_INITIAL_SEC,
        ),
    }


def _require_address(profile: Mapping[str, Any], key: str) -> str:
    value = profile.get(key)
    if not isinstance(value, str) or not value.startswith("0x") or len(value) < 4:
        raise ValueError(f"'{key}' must be a 0x-prefixed address")
    return value


def _require_url(profile: Mapping[str, Any], key: str) -> str:
    value = profile.get(key)
    if not isinstance(value, str) or not value.startswith(("http://", "https://")):
        raise ValueError(f"'{key}' must be an http(s) URL")
    return value


def _non_negative_number(profile: Mapping[str, Any], key: str, default: int | float) -> int | float:
    value = profile.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{key}' must be a number")
    if value < 0:
        raise ValueError(f"'{key}' cannot be negative")
    return value


@dataclass(slots=True)
class AppProfile:
    """Typed profile view consumed by CLI, REPL and interpreter wiring."""

    wallet_address: str
    smart_account_address: str
    contract_address: str
    bundler_url: str
    directory_url: str
    logs_dir: str
    chain_id: int = DEFAULT_CHAIN_ID
    rpc_url: str | None = None
    bundler_api_key: dict[str, Any] | None = None
    session_validity_minutes: int = DEFAULT_SESSION_VALIDITY_MINUTES
    receipt_timeout: int | float = DEFAULT_RECEIPT_TIMEOUT_SEC
    http_timeout: int | float = DEFAULT_HTTP_TIMEOUT_SEC
    retry: dict[str, RetryPolicy] = field(default_factory=default_retry_policies)
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def submit_policy(self) -> RetryPolicy:
        return self.retry["submit"]

    @property
    def receipt_policy(self) -> RetryPolicy:
        return self.retry["receipt"]

    @property
    def read_policy(self) -> RetryPolicy:
        return self.retry["read"]

    @classmethod
    def from_dict(cls, profile: Mapping[str, Any]) -> AppProfile:
        """Create typed profile from raw mapped profile data."""
        if not isinstance(profile, Mapping):
            raise ValueError("Profile must be a dictionary-like mapping")

        missing = [key for key in REQUIRED_PROFILE_KEYS if key not in profile]
        if missing:
            raise ValueError(f"Profile missing required fields: {', '.join(missing)}")

        chain_id = profile.get("chain_id", DEFAULT_CHAIN_ID)
        if isinstance(chain_id, bool) or not isinstance(chain_id, int) or chain_id <= 0:
            raise ValueError("'chain_id' must be a positive integer")

        rpc_url = profile.get("rpc_url")
        if rpc_url is not None:
            rpc_url = _require_url(profile, "rpc_url")

        api_key = profile.get("bundler_api_key")
        if api_key is not None:
            validate_key_config(api_key)

        validity = profile.get("session_validity_minutes", DEFAULT_SESSION_VALIDITY_MINUTES)
        if isinstance(validity, bool) or not isinstance(validity, int) or validity <= 0:
            raise ValueError("'session_validity_minutes' must be a positive integer")

        retry_raw = profile.get("retry", {})
        if not isinstance(retry_raw, Mapping):
            raise ValueError("'retry' must be a dictionary")
        unknown = set(retry_raw) - set(_RETRY_POLICY_NAMES)
        if unknown:
            raise ValueError(
                f"Unknown retry policy '{sorted(unknown)[0]}'. "
                f"Allowed: {', '.join(_RETRY_POLICY_NAMES)}"
            )
        retry = default_retry_policies()
        for name, raw_policy in retry_raw.items():
            try:
                retry[name] = RetryPolicy.from_dict(raw_policy, defaults=retry[name])
            except ValueError as error:
                raise ValueError(f"Invalid retry.{name}: {error}")

        extras = {
            str(key): value
            for key, value in profile.items()
            if key not in _KNOWN_PROFILE_KEYS
        }

        return cls(
            wallet_address=_require_address(profile, "wallet_address"),
            smart_account_address=_require_address(profile, "smart_account_address"),
            contract_address=_require_address(profile, "contract_address"),
            bundler_url=_require_url(profile, "bundler_url"),
            directory_url=_require_url(profile, "directory_url"),
            logs_dir=str(profile["logs_dir"]),
            chain_id=chain_id,
            rpc_url=rpc_url,
            bundler_api_key=dict(api_key) if api_key is not None else None,
            session_validity_minutes=validity,
            receipt_timeout=_non_negative_number(
                profile, "receipt_timeout", DEFAULT_RECEIPT_TIMEOUT_SEC
            ),
            http_timeout=_non_negative_number(profile, "http_timeout", DEFAULT_HTTP_TIMEOUT_SEC),
            retry=retry,
            extras=extras,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize profile to standard dict shape."""
        profile: dict[str, Any] = {
            "wallet_address": self.wallet_address,
            "smart_account_address": self.smart_account_address,
            "contract_address": self.contract_address,
            "chain_id": self.chain_id,
            "bundler_url": self.bundler_url,
            "directory_url": self.directory_url,
            "session_validity_minutes": self.session_validity_minutes,
            "receipt_timeout": self.receipt_timeout,
            "http_timeout": self.http_timeout,
            "logs_dir": self.logs_dir,
            "retry": {name: policy.to_dict() for name, policy in self.retry.items()},
        }
        if self.rpc_url is not None:
            profile["rpc_url"] = self.rpc_url
        if self.bundler_api_key is not None:
            profile["bundler_api_key"] = dict(self.bundler_api_key)

        profile.update(self.extras)
        return profile
