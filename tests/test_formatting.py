"""Tests for display formatting and help text."""

from chainirc.commands.formatting import (
    format_native_amount,
    format_remaining,
    make_borderline,
    short_hash,
)
from chainirc.commands.help_text import HELP_TEXTS, all_commands_help, format_help_text
from chainirc.commands.registry import COMMAND_SPECS
from chainirc.domain.directory import short_address


def test_format_native_amount():
    """Wei is rendered in whole tokens without trailing zeros."""
    assert format_native_amount(10**18) == "1 MON"
    assert format_native_amount(0) == "0 MON"
    assert format_native_amount(125 * 10**14) == "0.0125 MON"
    assert format_native_amount(3 * 10**19) == "30 MON"


def test_format_remaining():
    """Durations pick the two largest units."""
    assert format_remaining(42) == "42s"
    assert format_remaining(125) == "2m 5s"
    assert format_remaining(3 * 3600 + 60) == "3h 1m"
    assert format_remaining(-10) == "0s"


def test_short_hash_and_address():
    """Long values are shortened, short ones kept."""
    value = "0x" + "ab" * 32
    assert short_hash(value) == value[:10] + "..." + value[-8:]
    assert short_hash("0x1234") == "0x1234"
    assert short_address("0x" + "cd" * 20) == "0xcdcd...cdcd"


def test_make_borderline():
    """Borderline uses the requested char and width."""
    assert make_borderline("-", 5) == "-----"
    assert len(make_borderline()) == 55


class TestHelpText:
    """Help coverage for the command vocabulary."""

    def test_every_command_documented(self):
        """Each registered command has a help entry."""
        for spec in COMMAND_SPECS:
            assert spec.name in HELP_TEXTS

    def test_detail_lines(self):
        """Detailed help lists usage and examples."""
        lines = format_help_text("join")
        assert lines[0] == "Command: join"
        assert "Usage: join #channelName" in lines
        assert "Examples:" in lines

    def test_unknown(self):
        """Unknown names get a single line."""
        assert format_help_text("nope") == ["Unknown command: nope"]

    def test_overview_mentions_each_command(self):
        """The overview lists every command name."""
        overview = "\n".join(all_commands_help())
        for spec in COMMAND_SPECS:
            assert spec.name in overview
