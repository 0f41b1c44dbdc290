"""Parsing and formatting of locale-formatted financial amounts."""

import math
import re
from decimal import ROUND_HALF_UP, Decimal

# Optional sign, digits with optional fraction (or a bare fraction), optional exponent.
_NUMERIC = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_PARENTHESIZED = re.compile(r"^\((.+)\)$")
_SEPARATORS = re.compile(r"[,\s]")


def parse_number(value: str | float | None) -> float | None:
    """Parse an amount like ``"1,234.50"`` or ``"(1,234.50)"`` into a float.

    Returns None for missing or unparseable input. None means the amount
    cannot take part in a check; it is never a stand-in for zero.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = _SEPARATORS.sub("", value)

    # Accounting notation: (123) -> -123
    match = _PARENTHESIZED.match(cleaned)
    if match:
        cleaned = "-" + match.group(1)

    if not _NUMERIC.match(cleaned):
        return None
    return float(cleaned)


def format_number(value: float) -> str:
    """Round half away from zero and group thousands: 1234567.5 -> "1,234,568"."""
    if not math.isfinite(value) or abs(value) >= 2 ** 52:
        # Already whole (or not a number at all)
        return f"{value:,.0f}"
    rounded = Decimal(repr(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    if rounded == 0:
        rounded = Decimal(0)
    return f"{rounded:,}"
