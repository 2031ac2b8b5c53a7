"""Help text for the command vocabulary."""

from __future__ import annotations

from dataclasses import dataclass

from ..constants import NATIVE_TOKEN_SYMBOL


@dataclass(frozen=True, slots=True)
class CommandDoc:
    usage: str
    description: str
    examples: tuple[str, ...] = ()


HELP_TEXTS: dict[str, CommandDoc] = {
    "help": CommandDoc(
        "help [command]",
        "Show a list of all available commands or detailed help for a specific command",
        ("help", "help join", "help create"),
    ),
    "man": CommandDoc(
        "man [command]",
        "Alias for 'help'",
        ("man", "man join"),
    ),
    "connect wallet": CommandDoc(
        "connect wallet",
        "Connect the Smart Account configured in your profile and restore a still-valid session",
    ),
    "authorize session": CommandDoc(
        "authorize session",
        "Authorize a delegated session key on-chain so messages are signed without wallet prompts",
    ),
    "revoke session": CommandDoc(
        "revoke session",
        "Revoke the active delegated session key on-chain",
    ),
    "balance": CommandDoc(
        "balance",
        f"Check your Smart Account balance in {NATIVE_TOKEN_SYMBOL} (this is what pays for gas)",
    ),
    "create": CommandDoc(
        "create #channelName",
        "Create a new channel on-chain; it appears in the directory once indexed",
        ("create #general", "create #monad-chat"),
    ),
    "join": CommandDoc(
        "join #channelName",
        "Join an existing channel. Plain text you type afterwards is sent there",
        ("join #general", "join #dev"),
    ),
    "leave": CommandDoc("leave", "Leave the current channel"),
    "list channels": CommandDoc("list channels", "List all channels known to the directory"),
    "say": CommandDoc(
        "say <message>",
        "Send a message to the current channel (plain text does the same)",
        ("say hello everyone",),
    ),
    "status": CommandDoc(
        "status [handle]",
        "List operations still awaiting a receipt, or check one of them again",
        ("status", "status 0x3fa1"),
    ),
    "clear": CommandDoc("clear", "Clear the terminal screen"),
    "logout": CommandDoc(
        "logout",
        "Revoke the active session if any and disconnect your Smart Account",
    ),
    "username set": CommandDoc(
        "username set <newName>",
        "Set a custom username (3-20 characters: letters, numbers, _, -)",
        ("username set alice", "username set bob_123"),
    ),
    "username clear": CommandDoc(
        "username clear",
        "Reset your username to your Smart Account address",
    ),
    "whoami": CommandDoc(
        "whoami",
        "Display your user information (username, addresses, session, channel)",
    ),
    "exit": CommandDoc("exit", "Quit chainirc (alias: quit)"),
}


def format_help_text(command_name: str) -> list[str]:
    doc = HELP_TEXTS.get(command_name)
    if doc is None:
        return [f"Unknown command: {command_name}"]

    lines = [
        f"Command: {command_name}",
        f"Usage: {doc.usage}",
        f"Description: {doc.description}",
    ]
    if doc.examples:
        lines.append("Examples:")
        lines.extend(f"  {example}" for example in doc.examples)
    return lines


def all_commands_help() -> list[str]:
    return [
        "Available Commands:",
        "",
        "Wallet & Account:",
        "  connect wallet          - Connect your Smart Account",
        "  balance                 - Check Smart Account balance (for gas)",
        "  username set <name>     - Set a custom username",
        "  username clear          - Reset username to account address",
        "  whoami                  - Display your user information",
        "  logout                  - Disconnect wallet",
        "",
        "Delegated Session:",
        "  authorize session       - Authorize a session key for sending",
        "  revoke session          - Revoke the active session key",
        "",
        "Channels:",
        "  create #channelName     - Create a new channel",
        "  join #channelName       - Join an existing channel",
        "  leave                   - Leave current channel",
        "  list channels           - List all available channels",
        "  say <message>           - Send a message (or just type it)",
        "",
        "Operations:",
        "  status [handle]         - Show or re-check pending operations",
        "",
        "Utility:",
        "  help [command]          - Show this help or help for specific command",
        "  man [command]           - Alias for 'help'",
        "  clear                   - Clear terminal screen",
        "  exit                    - Quit",
        "",
        "Type 'help <command>' or 'man <command>' for more details on a specific command.",
    ]
