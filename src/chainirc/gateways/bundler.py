"""Bundler collaborator: protocol and JSON-RPC adapter over httpx."""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import Any, Optional, Protocol

import httpx

from ..constants import ENTRY_POINT_ADDRESS
from ..logging import log_event
from ..operations.errors import BundlerRPCError, BundlerTimeoutError
from ..operations.models import OperationRequest, Receipt
from ..timeouts import (
    DEFAULT_HTTP_TIMEOUT_SEC,
    RECEIPT_POLL_INTERVAL_SEC,
    build_httpx_timeout,
)


class BundlerGateway(Protocol):
    """Account-abstraction bundler as seen by the submitter.

    Signing, nonce management and paymaster selection happen behind this
    interface.
    """

    async def submit_operation(self, request: OperationRequest) -> str:
        """Hand one call to the bundler and return its operation handle."""
        ...

    async def await_receipt(self, handle: str, timeout: float) -> Receipt | None:
        """Wait for the receipt of ``handle``; ``None`` when none was seen."""
        ...

    async def get_balance(self, address: str) -> int:
        """Return the native balance of ``address`` in wei."""
        ...


def _parse_int(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.startswith("0x") else int(value)
        except ValueError:
            return None
    return None


def parse_receipt(handle: str, payload: dict[str, Any]) -> Receipt:
    """Build a receipt from an ``eth_getUserOperationReceipt`` result."""
    inner = payload.get("receipt") or {}
    tx_hash = inner.get("transactionHash") or payload.get("transactionHash") or ""
    success = payload.get("success")
    if isinstance(success, str):
        success = success.lower() == "true"
    reason = payload.get("reason")
    return Receipt(
        handle=handle,
        tx_hash=str(tx_hash),
        success=bool(success),
        block_number=_parse_int(inner.get("blockNumber")),
        gas_used=_parse_int(payload.get("actualGasUsed") or inner.get("gasUsed")),
        reason=str(reason) if reason else None,
    )


class JsonRpcBundlerClient:
    """JSON-RPC 2.0 client for an ERC-4337 style bundler endpoint."""

    def __init__(
        self,
        url: str,
        sender: str,
        *,
        api_key: Optional[str] = None,
        entry_point: str = ENTRY_POINT_ADDRESS,
        timeout: int | float = DEFAULT_HTTP_TIMEOUT_SEC,
        poll_interval: float = RECEIPT_POLL_INTERVAL_SEC,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.sender = sender
        self.entry_point = entry_point
        self.poll_interval = poll_interval
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.AsyncClient(
            timeout=build_httpx_timeout(timeout),
            headers=headers,
        )
        self._ids = itertools.count(1)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        request_id = next(self._ids)
        response = await self._client.post(
            self.url,
            json={"jsonrpc": "2.0", "id": request_id, "method": method, "params": params},
        )
        response.raise_for_status()
        body = response.json()
        error = body.get("error") if isinstance(body, dict) else None
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise BundlerRPCError(str(message or "Bundler returned an error"), code=code)
        if not isinstance(body, dict) or "result" not in body:
            raise BundlerRPCError("Bundler response is missing a result")
        return body["result"]

    async def submit_operation(self, request: OperationRequest) -> str:
        user_operation = {
            "sender": self.sender,
            "target": request.target,
            "callData": request.data,
            "value": hex(request.value),
        }
        handle = await self._call("eth_sendUserOperation", [user_operation, self.entry_point])
        if not isinstance(handle, str) or not handle:
            raise BundlerRPCError("Bundler did not return an operation hash")
        return handle

    async def await_receipt(self, handle: str, timeout: float) -> Receipt | None:
        """Poll for the receipt until ``timeout`` seconds elapse (0 waits forever).

        Raises:
            BundlerTimeoutError: When no receipt appears before the deadline
        """
        deadline = None if timeout == 0 else time.monotonic() + float(timeout)
        polls = 0
        while True:
            result = await self._call("eth_getUserOperationReceipt", [handle])
            polls += 1
            if result:
                return parse_receipt(handle, result)
            if deadline is not None and time.monotonic() + self.poll_interval > deadline:
                log_event(
                    "operation_result",
                    level=logging.DEBUG,
                    kind="receipt_poll",
                    outcome="deadline",
                    handle=handle,
                    polls=polls,
                )
                raise BundlerTimeoutError(handle, float(timeout))
            await asyncio.sleep(self.poll_interval)

    async def get_balance(self, address: str) -> int:
        result = await self._call("eth_getBalance", [address, "latest"])
        balance = _parse_int(result)
        if balance is None:
            raise BundlerRPCError(f"Unexpected balance value: {result!r}")
        return balance
