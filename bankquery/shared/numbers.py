"""
Numeric coercion for cell values that arrive as display strings.

    to_number("$5,000.25")  -> 5000.25
    to_number("4.5%")       -> 4.5
    to_number("n/a")        -> None
"""

from __future__ import annotations

import math
import re
from typing import Any

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def to_number(value: Any) -> float | None:
    """Coerce *value* to float, stripping everything but digits, dot and minus.

    Returns None for None, empty strings, strings without any digit, and
    anything that still fails float() after stripping.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        f = float(value)
        return None if math.isnan(f) else f
    text = _NON_NUMERIC.sub("", str(value))
    if not any(ch.isdigit() for ch in text):
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_amount(text: str) -> float | None:
    """Parse a number captured from a prompt ("$5,000", "1.5")."""
    return to_number(text.replace(",", ""))


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")
