"""Tests for the JSON-RPC bundler client."""

import json

import httpx
import pytest

from chainirc.gateways.bundler import JsonRpcBundlerClient, parse_receipt
from chainirc.operations.errors import BundlerRPCError, BundlerTimeoutError
from chainirc.operations.models import OperationRequest
from test_helpers import CONTRACT, SMART_ACCOUNT

URL = "https://bundler.test/rpc"


class RpcServer:
    """MockTransport handler answering JSON-RPC calls from a script."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        response = self.responses.pop(0)
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **response})


def _client(server: RpcServer, **kwargs) -> JsonRpcBundlerClient:
    return JsonRpcBundlerClient(
        URL,
        SMART_ACCOUNT,
        client=httpx.AsyncClient(transport=httpx.MockTransport(server)),
        **kwargs,
    )


class TestSubmitOperation:
    """eth_sendUserOperation."""

    @pytest.mark.asyncio
    async def test_returns_handle(self):
        """The operation hash is returned as the handle."""
        server = RpcServer({"result": "0xophash"})
        client = _client(server)

        handle = await client.submit_operation(OperationRequest(CONTRACT, "0xdata", value=5))

        assert handle == "0xophash"
        [request] = server.requests
        assert request["method"] == "eth_sendUserOperation"
        user_operation, entry_point = request["params"]
        assert user_operation == {
            "sender": SMART_ACCOUNT,
            "target": CONTRACT,
            "callData": "0xdata",
            "value": "0x5",
        }
        assert entry_point == client.entry_point
        await client.aclose()

    @pytest.mark.asyncio
    async def test_rpc_error_raised_with_code(self):
        """JSON-RPC errors become BundlerRPCError."""
        server = RpcServer({"error": {"code": -32500, "message": "AA21 didn't pay prefund"}})
        client = _client(server)

        with pytest.raises(BundlerRPCError, match="AA21") as exc_info:
            await client.submit_operation(OperationRequest(CONTRACT, "0x"))
        assert exc_info.value.code == -32500

    @pytest.mark.asyncio
    async def test_empty_handle_rejected(self):
        """A blank result is not a handle."""
        client = _client(RpcServer({"result": ""}))
        with pytest.raises(BundlerRPCError, match="did not return an operation hash"):
            await client.submit_operation(OperationRequest(CONTRACT, "0x"))

    @pytest.mark.asyncio
    async def test_http_error_propagates(self):
        """Transport-level failures surface as httpx errors."""
        client = _client(RpcServer(httpx.Response(503, text="unavailable")))
        with pytest.raises(httpx.HTTPStatusError):
            await client.submit_operation(OperationRequest(CONTRACT, "0x"))


class TestAwaitReceipt:
    """eth_getUserOperationReceipt polling."""

    @pytest.mark.asyncio
    async def test_polls_until_receipt(self):
        """A null result is polled again."""
        receipt_payload = {
            "success": True,
            "actualGasUsed": "0x5208",
            "receipt": {"transactionHash": "0xtx", "blockNumber": "0x10"},
        }
        server = RpcServer({"result": None}, {"result": receipt_payload})
        client = _client(server, poll_interval=0)

        receipt = await client.await_receipt("0xh", timeout=0)

        assert receipt.tx_hash == "0xtx"
        assert receipt.success
        assert receipt.block_number == 16
        assert receipt.gas_used == 21000
        assert len(server.requests) == 2

    @pytest.mark.asyncio
    async def test_deadline_raises_timeout(self):
        """No receipt before the deadline is a BundlerTimeoutError."""
        server = RpcServer({"result": None})
        client = _client(server, poll_interval=5)

        with pytest.raises(BundlerTimeoutError) as exc_info:
            await client.await_receipt("0xh", timeout=1)
        assert exc_info.value.handle == "0xh"
        assert len(server.requests) == 1


class TestGetBalance:
    """eth_getBalance."""

    @pytest.mark.asyncio
    async def test_hex_balance(self):
        """Hex quantities are decoded."""
        server = RpcServer({"result": "0xde0b6b3a7640000"})
        client = _client(server)
        assert await client.get_balance(SMART_ACCOUNT) == 10**18
        assert server.requests[0]["params"] == [SMART_ACCOUNT, "latest"]

    @pytest.mark.asyncio
    async def test_garbage_balance(self):
        """Unparseable balances are errors."""
        client = _client(RpcServer({"result": "lots"}))
        with pytest.raises(BundlerRPCError, match="Unexpected balance"):
            await client.get_balance(SMART_ACCOUNT)


def test_parse_receipt_failure_reason():
    """Reverted receipts keep their reason."""
    receipt = parse_receipt(
        "0xh",
        {"success": "false", "reason": "execution reverted", "transactionHash": "0xtx"},
    )
    assert not receipt.success
    assert receipt.reason == "execution reverted"
    assert receipt.tx_hash == "0xtx"
    assert receipt.block_number is None


def test_api_key_sent_as_bearer_header():
    """The API key is attached to every request of the owned client."""
    client = JsonRpcBundlerClient(URL, SMART_ACCOUNT, api_key="k-123")
    assert client._client.headers["Authorization"] == "Bearer k-123"
