"""Barcode validation helpers."""

from __future__ import annotations

import re

_DIGITS = re.compile(r"^\d+$")

# EAN-13 prefixes commonly assigned to grocery goods
_FOOD_PREFIXES = ("3", "4", "5", "6", "7", "8", "9")


def is_valid_barcode(barcode: str) -> bool:
    """Accept 8 to 14 digit codes (EAN-8, UPC-A, EAN-13, GTIN-14)."""
    if not barcode:
        return False
    return 8 <= len(barcode) <= 14 and bool(_DIGITS.match(barcode))


def is_likely_food_product(barcode: str) -> bool:
    if len(barcode) != 13:
        return False
    return barcode.startswith(_FOOD_PREFIXES)


def is_valid_ean13(barcode: str) -> bool:
    """Check the EAN-13 check digit."""
    if len(barcode) != 13 or not _DIGITS.match(barcode):
        return False

    total = 0
    for i, ch in enumerate(barcode[:12]):
        digit = int(ch)
        total += digit if i % 2 == 0 else digit * 3

    check_digit = (10 - total % 10) % 10
    return check_digit == int(barcode[12])
