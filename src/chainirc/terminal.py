"""Line-oriented terminal output with a severity per line."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Protocol

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.styles import Style

from .logging import log_event


class Severity(StrEnum):
    OUTPUT = "output"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SYSTEM = "system"


class TerminalSink(Protocol):
    """Destination for terminal lines. ``emit`` must not raise or block."""

    def emit(self, text: str, severity: Severity = Severity.OUTPUT) -> None: ...


TERMINAL_STYLE = Style.from_dict(
    {
        "output": "",
        "info": "ansicyan",
        "warning": "ansiyellow",
        "error": "ansired bold",
        "system": "ansigreen",
    }
)


class ConsoleSink:
    """Print lines through prompt_toolkit so they render above an active prompt."""

    def __init__(self, style: Style = TERMINAL_STYLE) -> None:
        self.style = style

    def emit(self, text: str, severity: Severity = Severity.OUTPUT) -> None:
        try:
            print_formatted_text(
                FormattedText([(f"class:{severity.value}", text)]),
                style=self.style,
            )
        except Exception as error:
            log_event(
                "repl_error",
                level=logging.WARNING,
                error_type=type(error).__name__,
                error=str(error),
            )
