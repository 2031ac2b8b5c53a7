"""Typed records exchanged with the directory collaborator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping

MessageStatus = Literal["pending", "confirmed", "failed"]


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _require(data: Mapping[str, Any], key: str, record: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"{record} record must be a dictionary")
    if data.get(key) in (None, ""):
        raise ValueError(f"{record} record missing '{key}'")
    return data[key]


@dataclass(slots=True, frozen=True)
class ChannelRef:
    """Handle to a channel known to the directory."""

    id: str
    name: str
    creator_address: str
    created_at: int | None = None
    tx_hash: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ChannelRef:
        created_at = data.get("created_at")
        return cls(
            id=str(_require(data, "id", "Channel")),
            name=str(_require(data, "name", "Channel")),
            creator_address=str(data.get("creator") or data.get("creator_address") or ""),
            created_at=int(created_at) if isinstance(created_at, (int, float)) else None,
            tx_hash=_optional_str(data.get("tx_hash")),
        )


@dataclass(slots=True, frozen=True)
class UserProfile:
    """Connected user as the directory knows them."""

    wallet_address: str
    smart_account_address: str
    username: str | None = None
    directory_id: str | None = None

    @property
    def display_name(self) -> str:
        if self.username:
            return self.username
        return short_address(self.smart_account_address)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UserProfile:
        return cls(
            wallet_address=str(_require(data, "wallet_address", "User")),
            smart_account_address=str(data.get("smart_account_address") or ""),
            username=_optional_str(data.get("username")),
            directory_id=_optional_str(data.get("id")),
        )


@dataclass(slots=True, frozen=True)
class StoredSession:
    """Delegated session as persisted in the directory."""

    session_address: str
    expiry: int
    tx_hash: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StoredSession:
        expiry = _require(data, "expiry", "Session")
        try:
            expiry_value = int(expiry)
        except (TypeError, ValueError):
            raise ValueError(f"Session expiry must be an integer, got {expiry!r}")
        return cls(
            session_address=str(_require(data, "session_address", "Session")),
            expiry=expiry_value,
            tx_hash=_optional_str(data.get("tx_hash")),
        )


@dataclass(slots=True, frozen=True)
class DirectoryMessage:
    id: str
    channel_id: str
    sender_address: str
    content: str
    msg_hash: str
    status: MessageStatus = "pending"
    username: str | None = None
    tx_hash: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DirectoryMessage:
        status = data.get("status", "pending")
        if status not in ("pending", "confirmed", "failed"):
            raise ValueError(f"Unknown message status: {status!r}")
        return cls(
            id=str(_require(data, "id", "Message")),
            channel_id=str(_require(data, "channel_id", "Message")),
            sender_address=str(data.get("sender_address") or ""),
            content=str(data.get("content") or ""),
            msg_hash=str(data.get("msg_hash") or ""),
            status=status,
            username=_optional_str(data.get("username")),
            tx_hash=_optional_str(data.get("tx_hash")),
        )


def short_address(address: str, head: int = 6, tail: int = 4) -> str:
    """Shorten ``0x1234...abcd`` style values for display."""
    if len(address) <= head + tail + 3:
        return address
    return f"{address[:head]}...{address[-tail:]}"
