"""Shared regular expressions for answer validation."""

from __future__ import annotations

import re

PHONE_PATTERN = re.compile(r"^\+?[\d\s().\-/]+$")
"""International phone numbers with optional ``+`` and common separators."""

PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15


def count_digits(value: str) -> int:
    return sum(1 for char in value if char.isdigit())
