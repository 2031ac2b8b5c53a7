"""Unified API key loading interface."""

from typing import Required, TypedDict, cast


class KeyConfig(TypedDict, total=False):
    """Typed configuration for API key loading.

    Discriminated by ``type`` field:
      env       → key
      keychain  → service, account
      json      → path, key
      direct    → value (testing only)
    """

    type: Required[str]
    key: str
    value: str
    service: str
    account: str
    path: str


KEY_TYPE_FIELDS: dict[str, tuple[str, ...]] = {
    "env": ("key",),
    "keychain": ("service", "account"),
    "json": ("path", "key"),
    "direct": ("value",),
}


def validate_key_config(config: object, owner: str = "bundler_api_key") -> None:
    """Check a key config has a known type and that type's fields.

    Raises:
        ValueError: If the config is malformed
    """
    if not isinstance(config, dict):
        raise ValueError(f"'{owner}' must be a dictionary")
    key_type = config.get("type")
    if key_type is None:
        raise ValueError(f"'{owner}' missing 'type' field")
    if key_type not in KEY_TYPE_FIELDS:
        raise ValueError(f"'{owner}' has unknown type '{key_type}'")
    for field_name in KEY_TYPE_FIELDS[key_type]:
        if field_name not in config:
            raise ValueError(f"'{owner}' (type={key_type}) missing '{field_name}' field")


def load_api_key(config: KeyConfig) -> str:
    """Load the bundler API key based on configuration.

    Raises:
        ValueError: If key cannot be loaded

    Example configs:
        {"type": "env", "key": "BUNDLER_API_KEY"}
        {"type": "keychain", "service": "chainirc", "account": "bundler-api-key"}
        {"type": "json", "path": "~/.secrets/api-keys.json", "key": "bundler"}
        {"type": "direct", "value": "..."} (testing only)
    """
    key_type = config.get("type")

    if key_type == "direct":
        return cast(str, config["value"])

    elif key_type == "env":
        from .backends import load_from_env

        return load_from_env(cast(str, config["key"]))

    elif key_type == "keychain":
        from .backends import load_from_keyring

        return load_from_keyring(
            cast(str, config["service"]),
            cast(str, config["account"]),
        )

    elif key_type == "json":
        from .backends import load_from_json

        return load_from_json(cast(str, config["path"]), cast(str, config["key"]))

    else:
        raise ValueError(f"Unknown key type '{key_type}'")
