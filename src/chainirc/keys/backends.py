"""Bundler API key sources: environment, JSON secrets file, system keyring.

Every loader returns a key that is safe to place in an ``Authorization``
header, or raises with a message naming where it looked.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any

import keyring


def _credential_store_name() -> str:
    return {
        "darwin": "macOS Keychain",
        "win32": "Windows Credential Manager",
    }.get(sys.platform, "system credential store")


def _header_safe(value: str, source: str) -> str:
    key = value.strip()
    if not key:
        raise ValueError(f"API key from {source} is empty")
    if any(ch.isspace() for ch in key):
        raise ValueError(f"API key from {source} contains whitespace")
    return key


def load_from_env(var_name: str) -> str:
    """Load the API key from environment variable ``var_name``."""
    value = os.environ.get(var_name)
    if not value:
        raise ValueError(
            f"Environment variable '{var_name}' not set.\n"
            f"Set it with:  export {var_name}=your-bundler-api-key"
        )
    return _header_safe(value, f"${var_name}")


def load_from_json(file_path: str, key_name: str) -> str:
    """Load the API key from a JSON secrets file.

    ``key_name`` may be dotted (``bundlers.monad``) to reach nested objects.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"API key file not found: {file_path}")

    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {file_path}: {e}")

    for part in key_name.split("."):
        if not isinstance(data, dict) or part not in data:
            raise ValueError(f"Key '{key_name}' not found in {file_path}")
        data = data[part]

    if not isinstance(data, str):
        raise ValueError(f"Key '{key_name}' in {file_path} is not a string")
    return _header_safe(data, f"{file_path}:{key_name}")


def load_from_keyring(service: str, account: str) -> str:
    """Load the API key from the OS credential store via keyring."""
    store_name = _credential_store_name()
    try:
        key = keyring.get_password(service, account)
    except Exception as e:
        raise ValueError(
            f"Failed to access {store_name}: {e}\n"
            f"Service: {service}, Account: {account}"
        )

    if not isinstance(key, str) or not key:
        raise ValueError(
            f"API key not found in {store_name}.\n"
            f"Service: {service}, Account: {account}\n"
            f"Store it with:  keyring set {service} {account}"
        )
    return _header_safe(key, store_name)
