"""Builders for the contract calls chainirc submits.

Payloads use the relay call format: ``0x`` followed by the hex of a compact
UTF-8 JSON object ``{"method": ..., "args": [...]}``. ABI encoding and
signing happen behind the bundler collaborator.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from .models import OperationRequest


def encode_call(method: str, *args: Any) -> str:
    """Encode one contract call into the relay payload format."""
    body = json.dumps(
        {"method": method, "args": list(args)},
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return "0x" + body.encode("utf-8").hex()


def decode_call(data: str) -> tuple[str, list[Any]]:
    """Decode a relay payload back into ``(method, args)``.

    Raises:
        ValueError: If the payload is not in relay call format
    """
    if not isinstance(data, str) or not data.startswith("0x"):
        raise ValueError("Call data must be a 0x-prefixed hex string")
    try:
        body = json.loads(bytes.fromhex(data[2:]).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as error:
        raise ValueError(f"Call data is not a relay payload: {error}") from error
    if not isinstance(body, dict) or not isinstance(body.get("method"), str):
        raise ValueError("Call data is missing a method name")
    args = body.get("args", [])
    if not isinstance(args, list):
        raise ValueError("Call data args must be a list")
    return body["method"], args


def message_hash(content: str) -> str:
    """Return the content hash used to key a message on-chain and in the directory."""
    return "0x" + hashlib.sha256(content.encode("utf-8")).hexdigest()


def create_channel_call(contract_address: str, channel_name: str) -> OperationRequest:
    return OperationRequest(
        target=contract_address,
        data=encode_call("createChannel", channel_name),
    )


def send_message_call(
    contract_address: str,
    channel_name: str,
    msg_hash: str,
) -> OperationRequest:
    return OperationRequest(
        target=contract_address,
        data=encode_call("sendMessage", msg_hash, channel_name),
    )


def authorize_session_call(
    contract_address: str,
    session_address: str,
    expiry: int,
) -> OperationRequest:
    return OperationRequest(
        target=contract_address,
        data=encode_call("authorizeSession", session_address, expiry),
    )


def revoke_session_call(contract_address: str) -> OperationRequest:
    return OperationRequest(
        target=contract_address,
        data=encode_call("revokeSession"),
    )
