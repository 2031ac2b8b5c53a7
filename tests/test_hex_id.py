"""Tests for hex_id module."""

from chainirc.hex_id import generate_hex_id


def test_generate_hex_id_basic():
    """Test basic hex ID generation."""
    existing = set()
    hex1 = generate_hex_id(existing)

    # Should be 3 digits
    assert len(hex1) == 3
    assert int(hex1, 16) >= 0
    assert hex1 in existing


def test_generate_hex_id_uniqueness():
    """Test that generated hex IDs are unique."""
    existing = set()
    ids = [generate_hex_id(existing) for _ in range(100)]

    assert len(ids) == len(set(ids))
    assert len(existing) == 100


def test_generate_hex_id_grows_when_space_is_full():
    """Test that a full 3-digit space moves on to 4 digits."""
    existing = {format(i, "03x") for i in range(16**3)}
    hex_id = generate_hex_id(existing)
    assert len(hex_id) == 4

