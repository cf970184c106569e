"""Chronological ordering of orders by the digit run in their identifier."""

import re
from enum import Enum
from typing import Optional

from .models import CustomerRow


_DIGITS = re.compile(r"[0-9]+")


class Ordering(Enum):
    BEFORE = "before"
    EQUAL = "equal"
    AFTER = "after"
    INCOMPARABLE = "incomparable"


def extract_key(identifier) -> Optional[int]:
    """
    Return the first run of ASCII digits in `identifier` as an int.

    "#TCO10842" -> 10842, "RMP" -> None. The value only orders orders of
    the same identifier scheme; it is not a date.
    """
    if not isinstance(identifier, str):
        return None
    match = _DIGITS.search(identifier)
    if not match:
        return None
    return int(match.group(0))


def compare(key_a: Optional[int], key_b: Optional[int]) -> Ordering:
    # INCOMPARABLE means the caller falls back to comparing raw identifiers
    if key_a is None or key_b is None:
        return Ordering.INCOMPARABLE
    if key_a < key_b:
        return Ordering.BEFORE
    if key_a > key_b:
        return Ordering.AFTER
    return Ordering.EQUAL


def sort_customer_rows(rows: list[CustomerRow]) -> list[CustomerRow]:
    """
    Sort rows ascending by chronological key, ties and missing keys
    broken by the order-number string.

    Rows with a key sort before rows without one.
    """
    def sort_key(row: CustomerRow):
        if row.key is None:
            return (1, 0, row.order_number)
        return (0, row.key, row.order_number)

    return sorted(rows, key=sort_key)
