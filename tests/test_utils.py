"""Tests for shared utility functions."""

from datetime import time

import pytest

from booking_gate.utils import is_valid_phone, minutes_of, normalize_phone, parse_clock


class TestNormalizePhone:
    def test_strips_spaces(self):
        assert normalize_phone("555 123 4567") == "5551234567"

    def test_strips_dashes(self):
        assert normalize_phone("555-123-4567") == "5551234567"

    def test_strips_parentheses(self):
        assert normalize_phone("(646) 789-1820") == "6467891820"

    def test_preserves_leading_plus(self):
        assert normalize_phone("+1 646 789 1820") == "+16467891820"

    def test_strips_whitespace(self):
        assert normalize_phone("  5551234567  ") == "5551234567"


class TestIsValidPhone:
    def test_ten_digits(self):
        assert is_valid_phone("(555) 123-4567")

    def test_too_short(self):
        assert not is_valid_phone("12345")

    def test_too_long(self):
        assert not is_valid_phone("+1234567890123456")

    def test_letters_only(self):
        assert not is_valid_phone("call me")


class TestClock:
    def test_parse_clock(self):
        assert parse_clock("09:30") == time(9, 30)

    def test_parse_clock_strips(self):
        assert parse_clock(" 20:00 ") == time(20, 0)

    def test_parse_clock_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_clock("25:00")

    def test_minutes_of(self):
        assert minutes_of(time(13, 45)) == 13 * 60 + 45
