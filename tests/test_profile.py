"""Tests for profile module and path mapping."""

import json
from pathlib import Path

import pytest

from chainirc.path_utils import get_app_root, map_path
from chainirc.profile import create_profile, load_profile
from test_helpers import make_profile_dict


def test_map_path_tilde_with_subpath():
    """Test mapping tilde with subpath."""
    result = map_path("~/test/path")
    assert result == str(Path.home().resolve() / "test/path")


def test_map_path_at_alone():
    """Test mapping @ alone."""
    assert map_path("@") == str(get_app_root())


def test_map_path_absolute():
    """Test mapping absolute path."""
    assert map_path("/absolute/path/to/file") == str(Path("/absolute/path/to/file").resolve())


def test_map_path_relative_error():
    """Test that relative paths raise ValueError."""
    with pytest.raises(ValueError, match="Relative paths without prefix are not supported"):
        map_path("relative/path")


def test_map_path_escape_rejected():
    """Test that a prefix cannot be escaped with '..'."""
    with pytest.raises(ValueError, match="escapes home directory"):
        map_path("~/../outside")


def test_map_path_rejects_nul():
    """Test that NUL characters are refused."""
    with pytest.raises(ValueError, match="NUL"):
        map_path("/tmp/a\x00b")


def test_load_profile(tmp_path):
    """Test loading a valid profile maps logs_dir."""
    path = tmp_path / "profile.json"
    path.write_text(json.dumps(make_profile_dict()), encoding="utf-8")

    profile = load_profile(str(path))

    assert profile.logs_dir == str(Path.home().resolve() / ".chainirc/logs")
    assert profile.bundler_url == "https://bundler.test/rpc"


def test_load_profile_maps_json_key_path(tmp_path):
    """Test that a json key config path is mapped."""
    path = tmp_path / "profile.json"
    path.write_text(
        json.dumps(
            make_profile_dict(
                bundler_api_key={"type": "json", "path": "~/keys.json", "key": "bundler"}
            )
        ),
        encoding="utf-8",
    )

    profile = load_profile(str(path))

    assert profile.bundler_api_key["path"] == str(Path.home().resolve() / "keys.json")


def test_load_profile_missing(tmp_path):
    """Test loading a profile that does not exist."""
    with pytest.raises(FileNotFoundError, match="chainirc init -p"):
        load_profile(str(tmp_path / "missing.json"))


def test_load_profile_invalid_json(tmp_path):
    """Test malformed JSON is a ValueError."""
    path = tmp_path / "profile.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid JSON"):
        load_profile(str(path))


def test_load_profile_not_object(tmp_path):
    """Test a JSON array is refused."""
    path = tmp_path / "profile.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError, match="must be a JSON object"):
        load_profile(str(path))


def test_create_profile(tmp_path):
    """Test template creation writes a loadable-shaped file."""
    path = tmp_path / "nested" / "profile.json"

    profile, messages = create_profile(str(path))

    assert path.exists()
    written = json.loads(path.read_text(encoding="utf-8"))
    assert written == profile
    assert written["bundler_api_key"]["type"] == "env"
    assert written["retry"]["read"] == {"max_attempts": 2, "initial_delay": 0.5}
    assert "Template profile created successfully!" in messages


def test_create_profile_refuses_overwrite(tmp_path):
    """Test an existing profile is never overwritten."""
    path = tmp_path / "profile.json"
    path.write_text("{}", encoding="utf-8")
    with pytest.raises(ValueError, match="already exists"):
        create_profile(str(path))
    assert path.read_text(encoding="utf-8") == "{}"
