"""Tests for username normalization and validation."""

import pytest

from chui.core.errors import InvalidUsername
from chui.profiles.usernames import normalize_username, is_valid_username, parse_username


class TestUsernames:
    def test_normalize_trims_and_lowercases(self):
        assert normalize_username("  Alice ") == "alice"

    @pytest.mark.parametrize("raw", ["bob", "Alice99", " abc ", "a" * 20])
    def test_valid(self, raw):
        assert parse_username(raw) == raw.strip().lower()

    @pytest.mark.parametrize("raw", ["ab", "a" * 21, "bad name", "al-ice", "", "   ", "émile"])
    def test_invalid(self, raw):
        with pytest.raises(InvalidUsername):
            parse_username(raw)

    def test_underscore_depends_on_mode(self):
        assert not is_valid_username("al_ice")
        assert is_valid_username("al_ice", allow_underscore=True)

        with pytest.raises(InvalidUsername):
            parse_username("al_ice")
        assert parse_username("Al_Ice", allow_underscore=True) == "al_ice"

    def test_non_string_rejected(self):
        with pytest.raises(InvalidUsername):
            parse_username(None)
