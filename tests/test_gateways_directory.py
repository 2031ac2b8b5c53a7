"""Tests for the REST directory client."""

import json

import httpx
import pytest

from chainirc.domain.directory import DirectoryMessage, StoredSession
from chainirc.gateways.directory import HttpDirectoryClient
from chainirc.operations.errors import DirectoryError
from test_helpers import SMART_ACCOUNT, WALLET

BASE_URL = "https://directory.test/api"


class DirectoryServer:
    """MockTransport handler keyed by (method, path)."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"error": "not found"})
        status, body = self.routes[key]
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)


def _client(server: DirectoryServer) -> HttpDirectoryClient:
    return HttpDirectoryClient(
        BASE_URL + "/",
        client=httpx.AsyncClient(transport=httpx.MockTransport(server)),
    )


def _user(**overrides):
    user = {"id": "u1", "wallet_address": WALLET, "smart_account_address": SMART_ACCOUNT}
    user.update(overrides)
    return user


class TestUsers:
    """User and username endpoints."""

    @pytest.mark.asyncio
    async def test_create_or_get_user(self):
        """POST /users returns the profile."""
        server = DirectoryServer({("POST", "/api/users"): (200, _user(username=""))})
        user = await _client(server).create_or_get_user(WALLET, SMART_ACCOUNT)

        assert user.wallet_address == WALLET
        assert user.username is None
        assert user.directory_id == "u1"
        assert json.loads(server.requests[0].content) == {
            "wallet_address": WALLET,
            "smart_account_address": SMART_ACCOUNT,
        }

    @pytest.mark.asyncio
    async def test_missing_user_is_none(self):
        """404 on lookup means no such user."""
        server = DirectoryServer({})
        assert await _client(server).get_user(WALLET) is None

    @pytest.mark.asyncio
    async def test_username_conflict_keeps_status(self):
        """Errors carry the server message and status code."""
        server = DirectoryServer(
            {("PATCH", f"/api/users/{WALLET}/username"): (409, {"error": "Username taken"})}
        )
        with pytest.raises(DirectoryError, match="Username taken") as exc_info:
            await _client(server).update_username(WALLET, "bob")
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_server_error_without_body(self):
        """A bare 500 gets a generic message."""
        server = DirectoryServer({("DELETE", f"/api/users/{WALLET}/username"): (500, None)})
        with pytest.raises(DirectoryError, match="HTTP 500"):
            await _client(server).reset_username(WALLET)


class TestSessions:
    """Delegated session persistence."""

    @pytest.mark.asyncio
    async def test_get_active_session(self):
        """Stored sessions are parsed."""
        server = DirectoryServer(
            {
                ("GET", f"/api/users/{WALLET}/session"): (
                    200,
                    {"session_address": "0xkey", "expiry": "1700000000", "tx_hash": "0xt"},
                )
            }
        )
        session = await _client(server).get_active_session(WALLET)
        assert session == StoredSession("0xkey", 1700000000, "0xt")

    @pytest.mark.asyncio
    async def test_no_session(self):
        """404 means no stored session."""
        assert await _client(DirectoryServer({})).get_active_session(WALLET) is None

    @pytest.mark.asyncio
    async def test_store_and_deactivate(self):
        """PUT stores, DELETE tolerates a missing session."""
        server = DirectoryServer({("PUT", f"/api/users/{WALLET}/session"): (204, None)})
        client = _client(server)

        await client.store_session(WALLET, StoredSession("0xkey", 42))
        await client.deactivate_session(WALLET)

        assert json.loads(server.requests[0].content) == {
            "session_address": "0xkey",
            "expiry": 42,
            "tx_hash": None,
        }
        assert server.requests[1].method == "DELETE"


class TestChannelsAndMessages:
    """Channel and message endpoints."""

    @pytest.mark.asyncio
    async def test_get_channel_quotes_name(self):
        """The channel name is sent as one path segment."""
        server = DirectoryServer({})
        assert await _client(server).get_channel("#general") is None
        assert server.requests[0].url.raw_path == b"/api/channels/%23general"

    @pytest.mark.asyncio
    async def test_list_channels(self):
        """Channel lists are parsed."""
        server = DirectoryServer(
            {
                ("GET", "/api/channels"): (
                    200,
                    [{"id": "c1", "name": "#general", "creator": SMART_ACCOUNT, "created_at": 5}],
                )
            }
        )
        [channel] = await _client(server).list_channels()
        assert channel.name == "#general"
        assert channel.creator_address == SMART_ACCOUNT
        assert channel.created_at == 5

    @pytest.mark.asyncio
    async def test_list_channels_rejects_non_list(self):
        """A malformed list body is a DirectoryError."""
        server = DirectoryServer({("GET", "/api/channels"): (200, {"channels": []})})
        with pytest.raises(DirectoryError, match="must be a list"):
            await _client(server).list_channels()

    @pytest.mark.asyncio
    async def test_list_messages_passes_limit(self):
        """The limit goes in the query string."""
        server = DirectoryServer(
            {
                ("GET", "/api/messages/channel/c1"): (
                    200,
                    [
                        {
                            "id": "m1",
                            "channel_id": "c1",
                            "sender_address": SMART_ACCOUNT,
                            "content": "hi",
                            "msg_hash": "0xh",
                            "status": "confirmed",
                        }
                    ],
                )
            }
        )
        [message] = await _client(server).list_messages("c1", limit=10)
        assert message.status == "confirmed"
        assert server.requests[0].url.params["limit"] == "10"

    @pytest.mark.asyncio
    async def test_create_message_and_update_status(self):
        """Messages are created pending and patched later."""
        server = DirectoryServer(
            {
                ("POST", "/api/messages"): (
                    201,
                    {"id": "m9", "channel_id": "c1", "content": "yo", "msg_hash": "0xh"},
                ),
                ("PATCH", "/api/messages/m9/status"): (204, None),
            }
        )
        client = _client(server)

        message = await client.create_message("c1", SMART_ACCOUNT, "0xh", "yo")
        await client.update_message_status(message.id, "confirmed", "0xtx")

        assert message.status == "pending"
        assert json.loads(server.requests[1].content) == {"status": "confirmed", "tx_hash": "0xtx"}


def test_unknown_message_status_rejected():
    """Only the three known statuses parse."""
    with pytest.raises(ValueError, match="Unknown message status"):
        DirectoryMessage.from_dict({"id": "m", "channel_id": "c", "status": "lost"})
