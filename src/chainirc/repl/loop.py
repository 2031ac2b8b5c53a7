"""Main chainirc REPL event loop."""

from __future__ import annotations

import logging
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import DummyHistory
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import clear

from .. import __version__
from ..commands import CommandInterpreter, CommandSignal
from ..commands.formatting import make_borderline
from ..constants import DISPLAY_NAME
from ..logging import log_event
from ..session.state import SessionState
from ..terminal import Severity, TerminalSink


def create_prompt_session() -> PromptSession:
    """Create prompt-toolkit session for REPL input."""
    # DummyHistory: messages are not written to disk.
    return PromptSession(history=DummyHistory())


def build_prompt(state: SessionState) -> str:
    if state.current_channel is not None:
        return f"{state.current_channel.name}> "
    if state.is_connected and state.user is not None:
        return f"{state.user.display_name}> "
    return f"{DISPLAY_NAME.lower()}> "


def print_startup_banner(
    sink: TerminalSink,
    *,
    chain_id: int,
    directory_url: str,
    demo: bool = False,
) -> None:
    """Print REPL startup context and key usage hints."""
    borderline = make_borderline()
    sink.emit(borderline, Severity.SYSTEM)
    sink.emit(f"{DISPLAY_NAME} {__version__} - On-chain IRC Terminal", Severity.SYSTEM)
    sink.emit(borderline, Severity.SYSTEM)
    sink.emit(f"Chain ID:   {chain_id}")
    sink.emit(f"Directory:  {directory_url}")
    if demo:
        sink.emit("Mode:       demo (simulated chain and directory)", Severity.WARNING)
    sink.emit("")
    sink.emit("Type 'connect wallet' to start, 'help' for commands.")
    sink.emit("Ctrl+C clears the line, 'exit' or Ctrl+D quits.")
    sink.emit(borderline, Severity.SYSTEM)


async def repl_loop(
    interpreter: CommandInterpreter,
    *,
    chain_id: int,
    directory_url: str,
    profile_path: Optional[str] = None,
    log_file: Optional[str] = None,
    demo: bool = False,
    prompt_session: Optional[PromptSession] = None,
) -> None:
    """Read lines and hand each one to the interpreter, one at a time."""
    log_event(
        "session_start",
        level=logging.INFO,
        profile_file=profile_path,
        log_file=log_file,
        demo=demo,
    )
    session = prompt_session or create_prompt_session()
    print_startup_banner(
        interpreter.sink,
        chain_id=chain_id,
        directory_url=directory_url,
        demo=demo,
    )

    reason = "exit"
    with patch_stdout():
        while True:
            try:
                user_input = await session.prompt_async(build_prompt(interpreter.state))
                if not user_input.strip():
                    continue

                result = await interpreter.handle(user_input)
                if isinstance(result, CommandSignal):
                    if result.kind == "exit":
                        break
                    if result.kind == "clear":
                        clear()

            except EOFError:
                reason = "eof"
                break

            except KeyboardInterrupt:
                # Ctrl+C at the prompt clears the current line; it never quits.
                continue

            except Exception as error:
                log_event(
                    "repl_error",
                    level=logging.ERROR,
                    error_type=type(error).__name__,
                    error=str(error),
                )
                logging.error("Unexpected REPL error: %s", error, exc_info=True)
                interpreter.emit(f"Error: {error}", Severity.ERROR)

    pending_count = interpreter.pending_task_count
    log_event(
        "session_stop",
        level=logging.INFO,
        reason=reason,
        pending_count=pending_count,
    )
    if pending_count:
        interpreter.emit(
            f"Abandoning {pending_count} operation(s) still awaiting a receipt.",
            Severity.WARNING,
        )
    await interpreter.shutdown()
    interpreter.emit("Goodbye!", Severity.SYSTEM)
