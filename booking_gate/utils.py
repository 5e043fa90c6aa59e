"""Shared utilities used across the booking engine."""

import re
from datetime import datetime, time

MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("(646) 789-1820")
        '6467891820'
        >>> normalize_phone("+1 646 789 1820")
        '+16467891820'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def is_valid_phone(value: str) -> bool:
    digits = re.sub(r"[^\d]", "", value)
    return MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` wall-clock string into a ``time``."""
    return datetime.strptime(value.strip(), "%H:%M").time()


def minutes_of(value: time) -> int:
    """Minutes since midnight for a wall-clock time."""
    return value.hour * 60 + value.minute
