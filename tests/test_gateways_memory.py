"""Tests for the in-process directory and simulated bundler."""

import asyncio

import pytest

from chainirc.gateways.memory import InMemoryDirectory, SimulatedBundler
from chainirc.operations.calls import (
    create_channel_call,
    decode_call,
    message_hash,
    send_message_call,
)
from chainirc.operations.classifier import classify
from chainirc.operations.errors import BundlerRPCError, DirectoryError, ErrorKind
from test_helpers import CONTRACT, SMART_ACCOUNT, WALLET


async def _let_indexer_run():
    for _ in range(3):
        await asyncio.sleep(0)


class TestInMemoryDirectory:
    """Directory semantics the interpreter relies on."""

    @pytest.mark.asyncio
    async def test_create_or_get_user_is_idempotent(self):
        """The same wallet maps to one user."""
        directory = InMemoryDirectory()
        first = await directory.create_or_get_user(WALLET, SMART_ACCOUNT)
        second = await directory.create_or_get_user(WALLET, SMART_ACCOUNT)
        assert first == second
        assert first.directory_id is not None

    @pytest.mark.asyncio
    async def test_username_uniqueness(self):
        """Another user's name is refused with a 409."""
        directory = InMemoryDirectory()
        await directory.create_or_get_user(WALLET, SMART_ACCOUNT)
        await directory.create_or_get_user("0xother", "0xotheraccount")
        await directory.update_username("0xother", "bob")

        with pytest.raises(DirectoryError) as exc_info:
            await directory.update_username(WALLET, "bob")
        assert exc_info.value.status_code == 409

        user = await directory.reset_username("0xother")
        assert user.username is None

    @pytest.mark.asyncio
    async def test_unknown_user_is_404(self):
        """Username updates need a registered user."""
        with pytest.raises(DirectoryError, match="User not found"):
            await InMemoryDirectory().update_username(WALLET, "alice")

    @pytest.mark.asyncio
    async def test_list_messages_limit(self):
        """Only the newest messages are returned."""
        directory = InMemoryDirectory()
        channel = directory.add_channel("#general", SMART_ACCOUNT)
        for i in range(5):
            await directory.create_message(channel.id, SMART_ACCOUNT, f"0x{i}", f"m{i}")

        latest = await directory.list_messages(channel.id, limit=2)

        assert [m.content for m in latest] == ["m3", "m4"]
        assert await directory.list_messages(channel.id, limit=0) == []

    def test_add_channel_keeps_first_record(self):
        """Re-indexing a name does not replace it."""
        directory = InMemoryDirectory()
        first = directory.add_channel("#a", SMART_ACCOUNT)
        assert directory.add_channel("#a", "0xsomeoneelse") is first


class TestSimulatedBundler:
    """Demo bundler behaviour."""

    @pytest.mark.asyncio
    async def test_create_channel_indexed_after_confirmation(self):
        """A confirmed create shows up in the directory after indexing."""
        directory = InMemoryDirectory()
        bundler = SimulatedBundler(directory, SMART_ACCOUNT, confirm_delay=0, indexing_delay=0)

        handle = await bundler.submit_operation(create_channel_call(CONTRACT, "#new"))
        receipt = await bundler.await_receipt(handle, timeout=5)

        assert receipt.success
        assert "#new" not in directory.channels
        await _let_indexer_run()
        assert directory.channels["#new"].tx_hash == receipt.tx_hash
        assert bundler._timers == set()
        await bundler.aclose()

    @pytest.mark.asyncio
    async def test_existing_channel_reverts(self):
        """Creating an indexed name reverts on-chain."""
        directory = InMemoryDirectory()
        directory.add_channel("#dup", SMART_ACCOUNT)
        bundler = SimulatedBundler(directory, SMART_ACCOUNT, confirm_delay=0)

        handle = await bundler.submit_operation(create_channel_call(CONTRACT, "#dup"))
        receipt = await bundler.await_receipt(handle, timeout=5)

        assert not receipt.success
        assert classify(receipt.reason).kind is ErrorKind.CHAIN_REVERTED

    @pytest.mark.asyncio
    async def test_message_confirmed_in_directory(self):
        """A confirmed send marks the pending directory message confirmed."""
        directory = InMemoryDirectory()
        channel = directory.add_channel("#general", SMART_ACCOUNT)
        msg_hash = message_hash("hello")
        await directory.create_message(channel.id, SMART_ACCOUNT, msg_hash, "hello")
        bundler = SimulatedBundler(directory, SMART_ACCOUNT, confirm_delay=0, indexing_delay=0)

        handle = await bundler.submit_operation(send_message_call(CONTRACT, "#general", msg_hash))
        await bundler.await_receipt(handle, timeout=5)
        await _let_indexer_run()

        [message] = directory.messages.values()
        assert message.status == "confirmed"

    @pytest.mark.asyncio
    async def test_balance_runs_out(self):
        """Gas is charged until the prefund check fails."""
        bundler = SimulatedBundler(InMemoryDirectory(), SMART_ACCOUNT, balance=15, gas_cost=10)

        await bundler.submit_operation(create_channel_call(CONTRACT, "#a"))
        assert await bundler.get_balance(SMART_ACCOUNT) == 5

        with pytest.raises(BundlerRPCError) as exc_info:
            await bundler.submit_operation(create_channel_call(CONTRACT, "#b"))
        assert classify(exc_info.value).kind is ErrorKind.INSUFFICIENT_FUNDS

    @pytest.mark.asyncio
    async def test_queued_submit_error(self):
        """Queued errors fail the next submission once."""
        bundler = SimulatedBundler(InMemoryDirectory(), SMART_ACCOUNT)
        bundler.queue_submit_error(BundlerRPCError("bundler overloaded"))

        with pytest.raises(BundlerRPCError, match="overloaded"):
            await bundler.submit_operation(create_channel_call(CONTRACT, "#a"))
        assert await bundler.submit_operation(create_channel_call(CONTRACT, "#a"))

    @pytest.mark.asyncio
    async def test_unknown_handle(self):
        """Receipts for unknown handles are errors."""
        bundler = SimulatedBundler(InMemoryDirectory(), SMART_ACCOUNT)
        with pytest.raises(BundlerRPCError, match="Unknown user operation"):
            await bundler.await_receipt("0xnope", timeout=1)


def test_call_payload_round_trip():
    """Encoded calls decode to their method and arguments."""
    request = send_message_call(CONTRACT, "#general", "0xabc")
    assert request.target == CONTRACT
    assert decode_call(request.data) == ("sendMessage", ["0xabc", "#general"])
    with pytest.raises(ValueError, match="0x-prefixed"):
        decode_call("nothex")
