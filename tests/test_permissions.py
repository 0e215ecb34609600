"""
Unit tests for sftp_remotefs.permissions module.

Tests cover:
- Integer round trip for every 12-bit mode
- Setting one flag leaves every other flag unchanged
- ls-style rendering including setuid/setgid/sticky substitutions
- Parsing rendered strings back into bits
"""

import pytest

from sftp_remotefs.permissions import PERMISSION_MASKS, ModeBits, Permission, Principal

ALL_FLAGS = [
    "owner_read",
    "owner_write",
    "owner_execute",
    "group_read",
    "group_write",
    "group_execute",
    "other_read",
    "other_write",
    "other_execute",
    "setuid",
    "setgid",
    "sticky",
]


def _snapshot(bits: ModeBits) -> dict[str, bool]:
    return {name: getattr(bits, name) for name in ALL_FLAGS}


class TestModeBitsInteger:
    """Tests for integer construction and conversion."""

    def test_round_trip_all_modes(self):
        """Every 12-bit value survives from_integer -> to_integer."""
        for mode in range(0o10000):
            assert ModeBits.from_integer(mode).to_integer() == mode

    def test_default_is_zero(self):
        """A fresh ModeBits has no bits set."""
        bits = ModeBits()
        assert bits.to_integer() == 0
        assert bits.render() == "---------"

    def test_none_is_treated_as_zero(self):
        """A missing mode from a stat result becomes 0."""
        assert ModeBits(None).to_integer() == 0

    def test_file_type_bits_are_masked(self):
        """Type bits from st_mode are dropped, leaving the 12 permission bits."""
        assert ModeBits(0o100644).to_integer() == 0o644
        assert ModeBits(0o40755).to_integer() == 0o755

    def test_int_conversion(self):
        """int() returns the raw mode."""
        assert int(ModeBits(0o750)) == 0o750

    def test_mask_table_values(self):
        """Masks are base times principal multiplier."""
        assert PERMISSION_MASKS[(Principal.OWNER, Permission.READ)] == 256
        assert PERMISSION_MASKS[(Principal.OWNER, Permission.WRITE)] == 128
        assert PERMISSION_MASKS[(Principal.OWNER, Permission.EXECUTE)] == 64
        assert PERMISSION_MASKS[(Principal.GROUP, Permission.READ)] == 32
        assert PERMISSION_MASKS[(Principal.GROUP, Permission.WRITE)] == 16
        assert PERMISSION_MASKS[(Principal.GROUP, Permission.EXECUTE)] == 8
        assert PERMISSION_MASKS[(Principal.OTHER, Permission.READ)] == 4
        assert PERMISSION_MASKS[(Principal.OTHER, Permission.WRITE)] == 2
        assert PERMISSION_MASKS[(Principal.OTHER, Permission.EXECUTE)] == 1


class TestModeBitsFlags:
    """Tests for flag accessors."""

    @pytest.mark.parametrize("flag", ALL_FLAGS)
    @pytest.mark.parametrize("start", [0, 0o7777, 0o4751, 0o1022])
    def test_set_flag_changes_only_that_flag(self, flag, start):
        """Setting a flag reads back the new value and leaves the others alone."""
        for value in (True, False):
            bits = ModeBits(start)
            before = _snapshot(bits)

            setattr(bits, flag, value)

            after = _snapshot(bits)
            assert after[flag] is value
            for other in ALL_FLAGS:
                if other != flag:
                    assert after[other] == before[other]

    def test_parametrized_accessor_matches_properties(self):
        """get/set by enum and the named properties address the same bits."""
        bits = ModeBits()
        bits.set(Principal.GROUP, Permission.WRITE, True)
        assert bits.group_write is True
        assert bits.to_integer() == 0o020

        bits.other_execute = True
        assert bits.get(Principal.OTHER, Permission.EXECUTE) is True
        assert bits.to_integer() == 0o021

    def test_clear_flag(self):
        """Clearing a flag removes exactly its bit."""
        bits = ModeBits(0o777)
        bits.owner_write = False
        assert bits.to_integer() == 0o577

    def test_special_bits(self):
        """setuid/setgid/sticky use 2048/1024/512."""
        bits = ModeBits()
        bits.setuid = True
        assert bits.to_integer() == 2048
        bits.setgid = True
        assert bits.to_integer() == 2048 + 1024
        bits.sticky = True
        assert bits.to_integer() == 2048 + 1024 + 512
        bits.setuid = False
        assert bits.to_integer() == 1024 + 512


class TestModeBitsRender:
    """Tests for ModeBits.render."""

    @pytest.mark.parametrize(
        "mode,expected",
        [
            (0o755, "rwxr-xr-x"),
            (0o644, "rw-r--r--"),
            (0o4755, "rwsr-xr-x"),
            (0o4655, "rwSr-xr-x"),
            (0o2755, "rwxr-sr-x"),
            (0o2745, "rwxr-Sr-x"),
            (0o1755, "rwxr-xr-t"),
            (0o1754, "rwxr-xr-T"),
            (0o7777, "rwsrwsrwt"),
            (0o7000, "--S--S--T"),
            (0o000, "---------"),
        ],
    )
    def test_render(self, mode, expected):
        """Rendering matches ls -l."""
        assert ModeBits(mode).render() == expected

    def test_str_is_render(self):
        """str() gives the rendered form."""
        assert str(ModeBits(0o640)) == "rw-r-----"

    def test_sticky_other_triplet(self):
        """Other triplet is r-t for read + execute + sticky."""
        bits = ModeBits()
        bits.other_read = True
        bits.other_write = False
        bits.other_execute = True
        bits.sticky = True
        assert bits.render()[6:] == "r-t"

    def test_repr_shows_octal(self):
        assert repr(ModeBits(0o755)) == "ModeBits(0o755)"

    def test_equality(self):
        assert ModeBits(0o644) == ModeBits(0o100644)
        assert ModeBits(0o644) != ModeBits(0o600)


class TestModeBitsFromString:
    """Tests for ModeBits.from_string."""

    @pytest.mark.parametrize("mode", [0o755, 0o644, 0o4755, 0o2745, 0o1754, 0o7777, 0o7000, 0])
    def test_parses_rendering(self, mode):
        """A rendering parses back into the same mode."""
        assert ModeBits.from_string(ModeBits(mode).render()).to_integer() == mode

    @pytest.mark.parametrize("text", ["rwx", "rwxr-xr-xx", "rwxr-xr-q", "xwxr-xr-x", "rwtr-xr-x"])
    def test_rejects_malformed(self, text):
        """Malformed strings raise ValueError."""
        with pytest.raises(ValueError):
            ModeBits.from_string(text)
