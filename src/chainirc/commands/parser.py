"""Parse raw terminal input into commands and render them back."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ..constants import CHANNEL_PREFIX
from .registry import COMMAND_NAMES


@dataclass(slots=True, frozen=True)
class Command:
    name: str
    args: tuple[str, ...] = ()


def _multi_word_names(names: Iterable[str]) -> list[tuple[str, ...]]:
    split = [tuple(name.split()) for name in names if " " in name]
    # Longest first so "username set" wins over a shorter prefix.
    return sorted(split, key=len, reverse=True)


_MULTI_WORD_NAMES = _multi_word_names(COMMAND_NAMES)


def is_forced_command(raw: str) -> bool:
    """Return True when input starts with ``/``, which never counts as chat text."""
    return raw.lstrip().startswith("/")


def parse(raw: str) -> Optional[Command]:
    """Parse one input line.

    A leading ``/`` is stripped, multi-word command names are matched
    before single words, and names are case-insensitive. Arguments keep
    their case. Blank input yields ``None``.
    """
    text = raw.strip()
    if text.startswith("/"):
        text = text[1:].lstrip()
    parts = text.split()
    if not parts:
        return None

    lowered = [part.lower() for part in parts]
    for name_parts in _MULTI_WORD_NAMES:
        width = len(name_parts)
        if tuple(lowered[:width]) == name_parts:
            return Command(name=" ".join(name_parts), args=tuple(parts[width:]))

    return Command(name=lowered[0], args=tuple(parts[1:]))


def format_command(command: Command) -> str:
    """Render a command as input text; ``parse`` reads it back unchanged."""
    return " ".join((command.name, *command.args))


def normalize_channel_name(name: str) -> str:
    """Return ``name`` with exactly one leading channel prefix."""
    stripped = name.strip()
    if stripped.startswith(CHANNEL_PREFIX):
        return stripped
    return f"{CHANNEL_PREFIX}{stripped}"
