"""Interactive terminal loop."""

from .loop import build_prompt, create_prompt_session, print_startup_banner, repl_loop

__all__ = [
    "build_prompt",
    "create_prompt_session",
    "print_startup_banner",
    "repl_loop",
]
