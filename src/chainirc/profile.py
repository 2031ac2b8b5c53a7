"""Profile management for chainirc.

This module handles loading, validating, and creating user profiles.
"""

import json
from pathlib import Path
from typing import Any

from .constants import (
    DEFAULT_CHAIN_ID,
    DEFAULT_LOGS_DIR,
    DEFAULT_SESSION_VALIDITY_MINUTES,
)
from .domain.profile import AppProfile
from .path_utils import map_path
from .timeouts import DEFAULT_HTTP_TIMEOUT_SEC, DEFAULT_RECEIPT_TIMEOUT_SEC


def load_profile(path: str) -> AppProfile:
    """Load profile from JSON file.

    Args:
        path: Absolute path to profile file

    Returns:
        Validated profile with absolute paths

    Raises:
        FileNotFoundError: If profile doesn't exist
        ValueError: If profile structure is invalid or JSON is malformed
    """
    profile_path = Path(path).expanduser().resolve()

    if not profile_path.exists():
        raise FileNotFoundError(
            f"Profile not found: {profile_path}\n"
            f"Create a new profile with: chainirc init -p {path}"
        )

    with open(profile_path, "r", encoding="utf-8") as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in profile {profile_path}: {e}")

    if not isinstance(raw, dict):
        raise ValueError("Profile must be a JSON object")

    profile = AppProfile.from_dict(raw)
    profile.logs_dir = map_path(profile.logs_dir)

    key_config = profile.bundler_api_key
    if key_config is not None and key_config.get("type") == "json":
        key_config["path"] = map_path(key_config["path"])

    return profile


def create_profile(path: str) -> tuple[dict[str, Any], list[str]]:
    """Create new profile template.

    Args:
        path: Where to save the profile

    Returns:
        Tuple of (created profile dictionary, list of status messages for display)
    """
    profile_path = Path(path).expanduser().resolve()

    if profile_path.exists():
        raise ValueError(f"Profile already exists: {profile_path}")

    profile_path.parent.mkdir(parents=True, exist_ok=True)

    messages = [
        f"Creating template profile: {profile_path}",
    ]

    # Key order: accounts, chain, collaborators, timing, directories, retry
    profile: dict[str, Any] = {
        "wallet_address": "0xYOUR-EOA-ADDRESS",
        "smart_account_address": "0xYOUR-SMART-ACCOUNT-ADDRESS",
        "contract_address": "0xCHAT-CONTRACT-ADDRESS",
        "chain_id": DEFAULT_CHAIN_ID,
        "bundler_url": "https://bundler.example.com/rpc",
        "bundler_api_key": {
            "type": "env",
            "key": "CHAINIRC_BUNDLER_API_KEY",
        },
        "directory_url": "https://directory.example.com/api",
        "session_validity_minutes": DEFAULT_SESSION_VALIDITY_MINUTES,
        "receipt_timeout": DEFAULT_RECEIPT_TIMEOUT_SEC,
        "http_timeout": DEFAULT_HTTP_TIMEOUT_SEC,
        "logs_dir": DEFAULT_LOGS_DIR,
        "retry": {
            "submit": {"max_attempts": 3, "initial_delay": 1.0},
            "receipt": {"max_attempts": 3},
            "read": {"max_attempts": 2, "initial_delay": 0.5},
        },
    }

    with open(profile_path, "w", encoding="utf-8") as f:
        json.dump(profile, f, indent=2, ensure_ascii=False)

    messages.extend([
        "",
        "Template profile created successfully!",
        "",
        "Next steps:",
        f"  1. Edit {profile_path}",
        "     Fill in your addresses, bundler and directory URLs",
        "",
        "  2. Start chainirc:",
        f"     chainirc -p {profile_path}",
    ])

    return profile, messages
