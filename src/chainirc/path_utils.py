"""Profile and log path mapping.

Paths in a profile or on the command line must be one of:
- ``~`` or ``~/...``: under the user's home directory
- ``@`` or ``@/...``: under the installed ``chainirc`` package
- an absolute path

Bare relative paths are refused, since the REPL's working directory is
rarely where the user expects files to land.
"""

from __future__ import annotations

import unicodedata
from pathlib import Path
from typing import Callable


def get_app_root() -> Path:
    """Return the installed `chainirc` package directory."""
    return Path(__file__).resolve().parent


# prefix -> (root factory, label used in errors)
_PREFIX_ROOTS: dict[str, tuple[Callable[[], Path], str]] = {
    "~": (lambda: Path.home().resolve(), "home"),
    "@": (get_app_root, "app"),
}


def _split_prefix(path: str) -> tuple[str, str] | None:
    """Return ``(prefix, remainder)`` for ``~``/``@`` paths, else None."""
    head, rest = path[:1], path[1:]
    if head not in _PREFIX_ROOTS:
        return None
    if rest == "":
        return head, ""
    if rest[0] in "/\\":
        return head, rest[1:]
    return None


def map_path(path: str) -> str:
    """Map a ``~``/``@``/absolute path to an absolute path string.

    Raises:
        ValueError: On NUL characters, bare relative paths, or a prefixed
            path that resolves outside its root (``~/../x``)

    Examples:
        >>> map_path("~/.chainirc/logs")
        '/Users/username/.chainirc/logs'
    """
    if "\x00" in path:
        raise ValueError("Path contains NUL character")
    path = unicodedata.normalize("NFC", path)

    split = _split_prefix(path)
    if split is not None:
        prefix, remainder = split
        root_factory, label = _PREFIX_ROOTS[prefix]
        root = root_factory()
        resolved = (root / remainder).resolve()
        if resolved != root and root not in resolved.parents:
            raise ValueError(f"Path escapes {label} directory: {path}")
        return str(resolved)

    if Path(path).is_absolute():
        return str(Path(path).resolve())

    raise ValueError(
        f"Relative paths without prefix are not supported: {path}\n"
        "Use '~/' for your home directory, '@/' for the app directory, "
        "or an absolute path"
    )
