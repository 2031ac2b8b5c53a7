"""Command registration metadata, preconditions and map builder."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Awaitable, Callable

from .types import CommandResult


CommandCallable = Callable[[tuple[str, ...]], Awaitable[CommandResult]]


class Requirement(StrEnum):
    CONNECTED = "connected"
    CHANNEL = "channel"
    SESSION = "session"


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """One command registration entry.

    ``requires`` is checked in order before the handler runs.
    """

    name: str
    method_name: str
    group: str
    requires: tuple[Requirement, ...] = ()
    aliases: tuple[str, ...] = ()


CONNECTED = (Requirement.CONNECTED,)

COMMAND_SPECS: tuple[CommandSpec, ...] = (
    # Account
    CommandSpec("connect wallet", "connect_wallet", "account", aliases=("connect",)),
    CommandSpec("balance", "show_balance", "account", CONNECTED),
    CommandSpec("username set", "set_username", "account", CONNECTED),
    CommandSpec("username clear", "clear_username", "account", CONNECTED),
    CommandSpec("whoami", "show_identity", "account", CONNECTED),
    CommandSpec("logout", "logout", "account", aliases=("disconnect",)),
    # Delegated session
    CommandSpec("authorize session", "authorize_session", "session_keys", CONNECTED),
    CommandSpec("revoke session", "revoke_session", "session_keys", CONNECTED),
    # Channels and messages
    CommandSpec(
        "create",
        "create_channel",
        "channels",
        (Requirement.CONNECTED, Requirement.SESSION),
    ),
    CommandSpec("join", "join_channel", "channels", CONNECTED),
    CommandSpec("leave", "leave_channel", "channels", (Requirement.CHANNEL,)),
    CommandSpec("list channels", "list_channels", "channels", CONNECTED),
    CommandSpec(
        "say",
        "send_message",
        "channels",
        (Requirement.CONNECTED, Requirement.CHANNEL, Requirement.SESSION),
    ),
    # Operations
    CommandSpec("status", "show_status", "operations", CONNECTED),
    # Misc
    CommandSpec("help", "show_help", "misc", aliases=("man",)),
    CommandSpec("clear", "clear_screen", "misc"),
    CommandSpec("exit", "exit_app", "misc", aliases=("quit",)),
)


def build_spec_map() -> dict[str, CommandSpec]:
    """Map every command name and alias to its spec."""
    spec_map: dict[str, CommandSpec] = {}
    for spec in COMMAND_SPECS:
        spec_map[spec.name] = spec
        for alias in spec.aliases:
            spec_map[alias] = spec
    return spec_map


COMMAND_NAMES: frozenset[str] = frozenset(build_spec_map())


def build_command_map(
    handler_groups: dict[str, Any],
) -> dict[str, CommandCallable]:
    """Build command string → bound async handler map from handler group instances."""
    command_map: dict[str, CommandCallable] = {}

    for spec in COMMAND_SPECS:
        handler = handler_groups[spec.group]
        method = getattr(handler, spec.method_name)
        command_map[spec.name] = method
        for alias in spec.aliases:
            command_map[alias] = method

    return command_map
