"""Error taxonomy and custom exception types for on-chain operations."""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    USER_REJECTED = "user_rejected"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    BUNDLER_UNAVAILABLE = "bundler_unavailable"
    NETWORK_TIMEOUT = "network_timeout"
    GAS_ESTIMATION_FAILURE = "gas_estimation_failure"
    CHAIN_REVERTED = "chain_reverted"
    UNKNOWN = "unknown"


class ChainIrcError(Exception):
    """Base class for all chainirc errors."""


class BundlerRPCError(ChainIrcError):
    """JSON-RPC error object returned by the bundler."""

    def __init__(self, message: str, code: int | None = None) -> None:
        self.code = code
        super().__init__(message)


class BundlerTimeoutError(ChainIrcError):
    """No receipt was observed for a submitted operation before the wait timed out."""

    def __init__(self, handle: str, timeout: float) -> None:
        self.handle = handle
        self.timeout = timeout
        super().__init__(
            f"BUNDLER_TIMEOUT: timed out after {timeout}s waiting for receipt of {handle}"
        )


class DirectoryError(ChainIrcError):
    """Directory request failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
