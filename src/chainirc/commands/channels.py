"""Channel command handlers: create, join, leave, list and send."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..constants import CHANNEL_PREFIX, RECENT_MESSAGE_LIMIT
from ..domain.directory import ChannelRef, DirectoryMessage, MessageStatus, short_address
from ..operations.calls import create_channel_call, message_hash, send_message_call
from ..operations.errors import ErrorKind
from ..operations.models import OperationKind, Receipt
from ..session.context import ConnectionContext
from ..session.state import MessageRecord
from ..terminal import Severity
from .formatting import make_borderline, short_hash
from .parser import normalize_channel_name
from .types import CommandResult, WriteJob

if TYPE_CHECKING:
    from .contracts import CommandDependencies as _CommandDependencies
else:
    class _CommandDependencies:
        pass


def _channel_arg(args: tuple[str, ...]) -> Optional[str]:
    if len(args) != 1:
        return None
    name = normalize_channel_name(args[0])
    if name == CHANNEL_PREFIX:
        return None
    return name


def _format_message(message: DirectoryMessage) -> str:
    author = message.username or short_address(message.sender_address)
    line = f"[{author}] {message.content}"
    if message.status != "confirmed":
        line += f" ({message.status})"
    return line


class ChannelCommandHandlers:
    """Explicit handlers for channel membership and messaging."""

    def __init__(self, dependencies: _CommandDependencies) -> None:
        self._deps = dependencies

    async def create_channel(self, args: tuple[str, ...]) -> CommandResult:
        deps = self._deps
        name = _channel_arg(args)
        if name is None:
            deps.emit("Usage: create #channelName", Severity.ERROR)
            return None

        context = deps.state.context
        assert context is not None
        epoch = deps.state.epoch
        try:
            existing = await deps.read(
                lambda: deps.directory.get_channel(name),
                "directory.get_channel",
            )
        except Exception as error:
            deps.report_failure(f"Failed to check channel {name}", error)
            return None
        if deps.is_stale(epoch, "create_channel"):
            return None
        if existing is not None:
            deps.emit(f"Channel {name} already exists.", Severity.ERROR)
            deps.emit(f"Type 'join {name}' to enter the channel.", Severity.INFO)
            return None

        deps.emit(f"Creating channel {name}...", Severity.INFO)

        async def on_confirmed(receipt: Receipt) -> None:
            deps.emit(f"Channel {name} created on-chain!", Severity.SYSTEM)
            deps.emit(f"Tx hash: {short_hash(receipt.tx_hash)}", Severity.INFO)
            indexed = await deps.try_read(
                lambda: deps.directory.get_channel(name),
                "directory.get_channel",
            )
            if indexed is None:
                deps.emit("Channel will appear shortly once indexed (processing)...", Severity.INFO)
            deps.emit(f"Type 'join {name}' to enter the channel.", Severity.INFO)

        async def on_failed(kind: ErrorKind) -> None:
            return None

        deps.submit_write(
            WriteJob(
                kind=OperationKind.CREATE_CHANNEL,
                label=f"create channel {name}",
                epoch=epoch,
                context=context,
                on_confirmed=on_confirmed,
                on_failed=on_failed,
            ),
            create_channel_call(context.contract_address, name),
        )
        return None

    async def join_channel(self, args: tuple[str, ...]) -> CommandResult:
        deps = self._deps
        name = _channel_arg(args)
        if name is None:
            deps.emit("Usage: join #channelName", Severity.ERROR)
            return None

        epoch = deps.state.epoch
        try:
            channel = await deps.read(
                lambda: deps.directory.get_channel(name),
                "directory.get_channel",
            )
        except Exception as error:
            deps.report_failure(f"Failed to join {name}", error)
            return None
        if deps.is_stale(epoch, "join_channel"):
            return None
        if channel is None:
            deps.emit(f"Channel {name} not found.", Severity.ERROR)
            deps.emit("Use 'list channels' to see available channels.", Severity.INFO)
            return None

        deps.state.join(channel)
        deps.emit(f"Joined channel {channel.name}", Severity.SYSTEM)
        await self._show_recent_messages(channel)
        return None

    async def _show_recent_messages(self, channel: ChannelRef) -> None:
        deps = self._deps
        messages = await deps.try_read(
            lambda: deps.directory.list_messages(channel.id, RECENT_MESSAGE_LIMIT),
            "directory.list_messages",
            warning="Could not load recent messages.",
        )
        if not messages:
            return
        deps.emit(f"Last {len(messages)} message(s):", Severity.INFO)
        for message in messages:
            deps.emit(_format_message(message))

    async def leave_channel(self, args: tuple[str, ...]) -> CommandResult:
        channel = self._deps.state.leave()
        self._deps.emit(f"Left channel {channel.name}", Severity.SYSTEM)
        return None

    async def list_channels(self, args: tuple[str, ...]) -> CommandResult:
        deps = self._deps
        deps.emit("Fetching channels from directory...", Severity.INFO)
        try:
            channels = await deps.read(deps.directory.list_channels, "directory.list_channels")
        except Exception as error:
            deps.report_failure("Failed to list channels", error)
            return None

        if not channels:
            deps.emit("No channels available.", Severity.INFO)
            deps.emit("Create one with 'create #channelName'", Severity.INFO)
            return None

        current = deps.state.current_channel
        deps.emit(make_borderline())
        deps.emit("  AVAILABLE CHANNELS")
        deps.emit(make_borderline())
        for channel in channels:
            marker = "*" if current is not None and current.id == channel.id else " "
            creator = short_address(channel.creator_address)
            deps.emit(f" {marker} {channel.name}  (by {creator})")
        deps.emit(make_borderline())
        deps.emit(f"  Total: {len(channels)} channel(s)")
        return None

    async def send_message(self, args: tuple[str, ...]) -> CommandResult:
        """Echo the message locally and deliver it in the background."""
        deps = self._deps
        content = " ".join(args).strip()
        if not content:
            deps.emit("Usage: say <message>", Severity.ERROR)
            return None

        state = deps.state
        channel = state.current_channel
        context = state.context
        user = state.user
        assert channel is not None and context is not None and user is not None

        record = state.record_message(channel, content, message_hash(content))
        deps.emit(f"[{user.display_name}] {content}")
        deps.spawn(
            self._deliver(record, context, state.epoch),
            name=f"send_message:{record.local_id}",
        )
        return None

    async def _deliver(
        self,
        record: MessageRecord,
        context: ConnectionContext,
        epoch: int,
    ) -> None:
        deps = self._deps
        stored = await deps.try_read(
            lambda: deps.directory.create_message(
                record.channel.id,
                context.smart_account_address,
                record.msg_hash,
                record.content,
            ),
            "directory.create_message",
            warning=f"Message {record.local_id} was not saved to the directory; sending on-chain anyway.",
        )
        if stored is not None:
            record.directory_id = stored.id

        async def on_confirmed(receipt: Receipt) -> None:
            record.handle = receipt.handle
            record.confirm(receipt.tx_hash)
            saved = await self._update_status(record, "confirmed", receipt.tx_hash)
            if deps.is_stale(epoch, OperationKind.SEND_MESSAGE.value, receipt.handle):
                return
            deps.emit(
                f"Message {record.local_id} confirmed in {record.channel.name}.",
                Severity.SYSTEM,
            )
            if not saved:
                deps.emit("It will be visible to others once indexed (processing).", Severity.INFO)

        async def on_failed(kind: ErrorKind) -> None:
            record.fail(kind)
            await self._update_status(record, "failed")

        await deps.run_write(
            WriteJob(
                kind=OperationKind.SEND_MESSAGE,
                label=f"send message {record.local_id}",
                epoch=epoch,
                context=context,
                on_confirmed=on_confirmed,
                on_failed=on_failed,
            ),
            send_message_call(context.contract_address, record.channel.name, record.msg_hash),
        )

    async def _update_status(
        self,
        record: MessageRecord,
        status: MessageStatus,
        tx_hash: Optional[str] = None,
    ) -> bool:
        if record.directory_id is None:
            return False
        directory_id = record.directory_id
        try:
            await self._deps.read(
                lambda: self._deps.directory.update_message_status(directory_id, status, tx_hash),
                "directory.update_message_status",
            )
        except Exception as error:
            self._deps.log_directory_error("directory.update_message_status", error)
            return False
        return True
