"""In-process collaborators for demo mode and tests.

``SimulatedBundler`` applies the effect of each call to an
``InMemoryDirectory`` after an indexing delay, reproducing the lag between
on-chain confirmation and directory visibility.
"""

from __future__ import annotations

import asyncio
import hashlib
import itertools
import logging
from collections import deque
from dataclasses import replace
from typing import Any, Optional

from ..domain.directory import (
    ChannelRef,
    DirectoryMessage,
    MessageStatus,
    StoredSession,
    UserProfile,
)
from ..logging import log_event
from ..operations.calls import decode_call
from ..operations.errors import BundlerRPCError, DirectoryError
from ..operations.models import OperationRequest, Receipt
from ..time_utils import unix_now

DEMO_STARTING_BALANCE_WEI = 5 * 10**17
DEMO_GAS_COST_WEI = 2 * 10**15


class InMemoryDirectory:
    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.users: dict[str, UserProfile] = {}
        self.sessions: dict[str, StoredSession] = {}
        self.channels: dict[str, ChannelRef] = {}
        self.messages: dict[str, DirectoryMessage] = {}

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids)}"

    def add_channel(
        self,
        name: str,
        creator_address: str,
        tx_hash: Optional[str] = None,
    ) -> ChannelRef:
        """Index a channel; an existing name keeps its first record."""
        existing = self.channels.get(name)
        if existing is not None:
            return existing
        channel = ChannelRef(
            id=self._next_id("ch"),
            name=name,
            creator_address=creator_address,
            created_at=unix_now(),
            tx_hash=tx_hash,
        )
        self.channels[name] = channel
        return channel

    def confirm_message_by_hash(self, msg_hash: str, tx_hash: str) -> None:
        for message_id, message in self.messages.items():
            if message.msg_hash == msg_hash and message.status == "pending":
                self.messages[message_id] = replace(
                    message, status="confirmed", tx_hash=tx_hash
                )

    async def create_or_get_user(
        self, wallet_address: str, smart_account_address: str
    ) -> UserProfile:
        user = self.users.get(wallet_address)
        if user is None:
            user = UserProfile(
                wallet_address=wallet_address,
                smart_account_address=smart_account_address,
                directory_id=self._next_id("u"),
            )
            self.users[wallet_address] = user
        return user

    async def get_user(self, wallet_address: str) -> UserProfile | None:
        return self.users.get(wallet_address)

    def _require_user(self, wallet_address: str) -> UserProfile:
        user = self.users.get(wallet_address)
        if user is None:
            raise DirectoryError("User not found", status_code=404)
        return user

    async def update_username(self, wallet_address: str, username: str) -> UserProfile:
        user = self._require_user(wallet_address)
        for other in self.users.values():
            if other.wallet_address != wallet_address and other.username == username:
                raise DirectoryError(
                    f"Username '{username}' is already taken", status_code=409
                )
        user = replace(user, username=username)
        self.users[wallet_address] = user
        return user

    async def reset_username(self, wallet_address: str) -> UserProfile:
        user = replace(self._require_user(wallet_address), username=None)
        self.users[wallet_address] = user
        return user

    async def get_active_session(self, wallet_address: str) -> StoredSession | None:
        return self.sessions.get(wallet_address)

    async def store_session(self, wallet_address: str, session: StoredSession) -> None:
        self.sessions[wallet_address] = session

    async def deactivate_session(self, wallet_address: str) -> None:
        self.sessions.pop(wallet_address, None)

    async def list_channels(self) -> list[ChannelRef]:
        return list(self.channels.values())

    async def get_channel(self, name: str) -> ChannelRef | None:
        return self.channels.get(name)

    async def list_messages(self, channel_id: str, limit: int = 20) -> list[DirectoryMessage]:
        matching = [m for m in self.messages.values() if m.channel_id == channel_id]
        return matching[-limit:] if limit > 0 else []

    async def create_message(
        self,
        channel_id: str,
        sender_address: str,
        msg_hash: str,
        content: str,
    ) -> DirectoryMessage:
        sender = next(
            (u for u in self.users.values() if u.smart_account_address == sender_address),
            None,
        )
        message = DirectoryMessage(
            id=self._next_id("m"),
            channel_id=channel_id,
            sender_address=sender_address,
            content=content,
            msg_hash=msg_hash,
            username=sender.username if sender else None,
        )
        self.messages[message.id] = message
        return message

    async def update_message_status(
        self,
        message_id: str,
        status: MessageStatus,
        tx_hash: Optional[str] = None,
    ) -> None:
        message = self.messages.get(message_id)
        if message is None:
            raise DirectoryError("Message not found", status_code=404)
        self.messages[message_id] = replace(
            message, status=status, tx_hash=tx_hash or message.tx_hash
        )


class SimulatedBundler:
    """Bundler that confirms every call after ``confirm_delay`` seconds.

    Each operation is charged ``gas_cost`` wei against ``balance``; a
    balance that cannot cover it fails Phase A with a prefund error.
    Creating a channel whose name is already indexed reverts.
    """

    def __init__(
        self,
        directory: InMemoryDirectory,
        sender: str,
        *,
        balance: int = DEMO_STARTING_BALANCE_WEI,
        gas_cost: int = DEMO_GAS_COST_WEI,
        confirm_delay: float = 0.5,
        indexing_delay: float = 1.5,
    ) -> None:
        self.directory = directory
        self.sender = sender
        self.balance = balance
        self.gas_cost = gas_cost
        self.confirm_delay = confirm_delay
        self.indexing_delay = indexing_delay
        self._ids = itertools.count(1)
        self._operations: dict[str, tuple[str, list[Any]]] = {}
        self._receipts: dict[str, Receipt] = {}
        self._submit_errors: deque[Exception] = deque()
        self._timers: set[asyncio.TimerHandle] = set()

    def queue_submit_error(self, error: Exception) -> None:
        """Fail the next ``submit_operation`` call with ``error``."""
        self._submit_errors.append(error)

    async def submit_operation(self, request: OperationRequest) -> str:
        if self._submit_errors:
            raise self._submit_errors.popleft()
        if self.balance < self.gas_cost + request.value:
            raise BundlerRPCError(
                "AA21 didn't pay prefund: sender does not have sufficient funds",
                code=-32500,
            )
        method, args = decode_call(request.data)
        self.balance -= self.gas_cost + request.value
        handle = _fake_hash("op", next(self._ids))
        self._operations[handle] = (method, args)
        return handle

    async def await_receipt(self, handle: str, timeout: float) -> Receipt | None:
        cached = self._receipts.get(handle)
        if cached is not None:
            return cached
        if handle not in self._operations:
            raise BundlerRPCError(f"Unknown user operation {handle}")
        await asyncio.sleep(self.confirm_delay)
        # A concurrent waiter may have resolved the handle meanwhile.
        cached = self._receipts.get(handle)
        if cached is not None:
            return cached
        receipt = self._execute(handle)
        self._receipts[handle] = receipt
        return receipt

    async def get_balance(self, address: str) -> int:
        return self.balance

    async def aclose(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()

    def _execute(self, handle: str) -> Receipt:
        method, args = self._operations[handle]
        tx_hash = _fake_hash("tx", handle)
        if method == "createChannel":
            name = str(args[0])
            if name in self.directory.channels:
                return Receipt(
                    handle=handle,
                    tx_hash=tx_hash,
                    success=False,
                    reason="execution reverted: channel already exists",
                )
            self._index_later(self.directory.add_channel, name, self.sender, tx_hash)
        elif method == "sendMessage":
            self._index_later(self.directory.confirm_message_by_hash, str(args[0]), tx_hash)
        log_event(
            "operation_result",
            level=logging.DEBUG,
            kind=method,
            outcome="simulated",
            handle=handle,
            tx_hash=tx_hash,
        )
        return Receipt(handle=handle, tx_hash=tx_hash, success=True, block_number=len(self._receipts) + 1)

    def _index_later(self, callback: Any, *args: Any) -> None:
        loop = asyncio.get_running_loop()

        def _fire() -> None:
            self._timers.discard(timer)
            callback(*args)

        timer = loop.call_later(self.indexing_delay, _fire)
        self._timers.add(timer)


def _fake_hash(*parts: Any) -> str:
    seed = ":".join(str(part) for part in parts)
    return "0x" + hashlib.sha256(seed.encode("utf-8")).hexdigest()
