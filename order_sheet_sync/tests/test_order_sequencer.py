"""Tests for chronological keys extracted from order identifiers."""

import pytest

from order_sheet_sync.models import CustomerRow
from order_sheet_sync.order_sequencer import Ordering, compare, extract_key, sort_customer_rows


class TestExtractKey:

    @pytest.mark.parametrize("identifier,expected", [
        ("#TCO10842", 10842),
        ("#TCO10867", 10867),
        ("ORDER123", 123),
        ("A12B34", 12),
        ("RMP", None),
        ("", None),
        (None, None),
    ])
    def test_first_digit_run(self, identifier, expected):
        assert extract_key(identifier) == expected

    def test_later_orders_have_larger_keys(self):
        assert extract_key("#TCO11834") > extract_key("#TCO10867")


class TestCompare:

    def test_orderings(self):
        assert compare(1, 2) == Ordering.BEFORE
        assert compare(2, 1) == Ordering.AFTER
        assert compare(5, 5) == Ordering.EQUAL

    def test_null_is_incomparable(self):
        assert compare(None, 5) == Ordering.INCOMPARABLE
        assert compare(5, None) == Ordering.INCOMPARABLE


class TestSortCustomerRows:

    def test_sorted_by_key_then_identifier(self):
        rows = [
            CustomerRow(9, "#TCO11834", 11834),
            CustomerRow(5, "#TCO10842", 10842),
            CustomerRow(7, "RMP", None),
            CustomerRow(3, "#TCP10842", 10842),
        ]
        ordered = [r.row_number for r in sort_customer_rows(rows)]
        assert ordered == [5, 3, 9, 7]
