"""Checksum validation for 8-digit business registration numbers (統一編號)."""

import re

WEIGHTS = (1, 2, 1, 2, 1, 2, 4, 1)

_NON_DIGITS = re.compile(r"[^0-9]")


def clean_tax_id(raw: str) -> str:
    """Drop everything except ASCII digits."""
    return _NON_DIGITS.sub("", raw)


def validate_tax_id(tax_id: str) -> bool:
    """Return True when the weighted digit sum of *tax_id* passes the checksum.

    Each digit is multiplied by its weight and the two decimal digits of the
    product are added to the sum. When the seventh digit is 7 its product
    (28) may be read as either 10 or 1, so a sum one short of a multiple of
    ten is also accepted.
    """
    if len(tax_id) != 8 or not tax_id.isascii() or not tax_id.isdigit():
        return False

    total = 0
    for digit, weight in zip(tax_id, WEIGHTS):
        product = int(digit) * weight
        total += product // 10 + product % 10

    if tax_id[6] == "7":
        return total % 10 == 0 or (total + 1) % 10 == 0
    return total % 10 == 0
