"""Directory collaborator: protocol and REST adapter over httpx.

The directory is the indexed, eventually consistent view of what happened
on-chain (users, channels, messages, delegated sessions). Writes confirmed
on-chain can take a while to show up here.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol
from urllib.parse import quote

import httpx

from ..domain.directory import (
    ChannelRef,
    DirectoryMessage,
    MessageStatus,
    StoredSession,
    UserProfile,
)
from ..operations.errors import DirectoryError
from ..timeouts import DEFAULT_HTTP_TIMEOUT_SEC, build_httpx_timeout


class DirectoryGateway(Protocol):
    async def create_or_get_user(
        self, wallet_address: str, smart_account_address: str
    ) -> UserProfile: ...

    async def get_user(self, wallet_address: str) -> UserProfile | None: ...

    async def update_username(self, wallet_address: str, username: str) -> UserProfile: ...

    async def reset_username(self, wallet_address: str) -> UserProfile: ...

    async def get_active_session(self, wallet_address: str) -> StoredSession | None: ...

    async def store_session(self, wallet_address: str, session: StoredSession) -> None: ...

    async def deactivate_session(self, wallet_address: str) -> None: ...

    async def list_channels(self) -> list[ChannelRef]: ...

    async def get_channel(self, name: str) -> ChannelRef | None: ...

    async def list_messages(self, channel_id: str, limit: int = 20) -> list[DirectoryMessage]: ...

    async def create_message(
        self,
        channel_id: str,
        sender_address: str,
        msg_hash: str,
        content: str,
    ) -> DirectoryMessage: ...

    async def update_message_status(
        self,
        message_id: str,
        status: MessageStatus,
        tx_hash: Optional[str] = None,
    ) -> None: ...


def _segment(value: str) -> str:
    return quote(value, safe="")


class HttpDirectoryClient:
    """REST client for the directory API (``/users``, ``/channels``, ``/messages``)."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: int | float = DEFAULT_HTTP_TIMEOUT_SEC,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=build_httpx_timeout(timeout))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
        allow_missing: bool = False,
    ) -> Any:
        response = await self._client.request(
            method,
            f"{self.base_url}{path}",
            json=json,
            params=params,
        )
        if allow_missing and response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise DirectoryError(_error_text(response), status_code=response.status_code)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Users

    async def create_or_get_user(
        self, wallet_address: str, smart_account_address: str
    ) -> UserProfile:
        data = await self._request(
            "POST",
            "/users",
            json={
                "wallet_address": wallet_address,
                "smart_account_address": smart_account_address,
            },
        )
        return UserProfile.from_dict(data)

    async def get_user(self, wallet_address: str) -> UserProfile | None:
        data = await self._request(
            "GET", f"/users/{_segment(wallet_address)}", allow_missing=True
        )
        return UserProfile.from_dict(data) if data else None

    async def update_username(self, wallet_address: str, username: str) -> UserProfile:
        data = await self._request(
            "PATCH",
            f"/users/{_segment(wallet_address)}/username",
            json={"username": username},
        )
        return UserProfile.from_dict(data)

    async def reset_username(self, wallet_address: str) -> UserProfile:
        data = await self._request("DELETE", f"/users/{_segment(wallet_address)}/username")
        return UserProfile.from_dict(data)

    async def get_active_session(self, wallet_address: str) -> StoredSession | None:
        data = await self._request(
            "GET", f"/users/{_segment(wallet_address)}/session", allow_missing=True
        )
        return StoredSession.from_dict(data) if data else None

    async def store_session(self, wallet_address: str, session: StoredSession) -> None:
        await self._request(
            "PUT",
            f"/users/{_segment(wallet_address)}/session",
            json={
                "session_address": session.session_address,
                "expiry": session.expiry,
                "tx_hash": session.tx_hash,
            },
        )

    async def deactivate_session(self, wallet_address: str) -> None:
        await self._request(
            "DELETE",
            f"/users/{_segment(wallet_address)}/session",
            allow_missing=True,
        )

    # Channels

    async def list_channels(self) -> list[ChannelRef]:
        data = await self._request("GET", "/channels")
        if not isinstance(data, list):
            raise DirectoryError("Channel list response must be a list")
        return [ChannelRef.from_dict(item) for item in data]

    async def get_channel(self, name: str) -> ChannelRef | None:
        data = await self._request("GET", f"/channels/{_segment(name)}", allow_missing=True)
        return ChannelRef.from_dict(data) if data else None

    # Messages

    async def list_messages(self, channel_id: str, limit: int = 20) -> list[DirectoryMessage]:
        data = await self._request(
            "GET",
            f"/messages/channel/{_segment(channel_id)}",
            params={"limit": limit},
        )
        if not isinstance(data, list):
            raise DirectoryError("Message list response must be a list")
        return [DirectoryMessage.from_dict(item) for item in data]

    async def create_message(
        self,
        channel_id: str,
        sender_address: str,
        msg_hash: str,
        content: str,
    ) -> DirectoryMessage:
        data = await self._request(
            "POST",
            "/messages",
            json={
                "channel_id": channel_id,
                "sender_address": sender_address,
                "msg_hash": msg_hash,
                "content": content,
            },
        )
        return DirectoryMessage.from_dict(data)

    async def update_message_status(
        self,
        message_id: str,
        status: MessageStatus,
        tx_hash: Optional[str] = None,
    ) -> None:
        payload: dict[str, Any] = {"status": status}
        if tx_hash:
            payload["tx_hash"] = tx_hash
        await self._request("PATCH", f"/messages/{_segment(message_id)}/status", json=payload)


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Directory request failed with HTTP {response.status_code}"
