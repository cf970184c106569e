"""Tests for gift-item notation and order validation."""

from order_sheet_sync.item_formatter import (
    analyze_line_items,
    classify_item,
    format_items_gift,
    format_order,
    validate_order_data,
)
from order_sheet_sync.models import LineItem

from conftest import make_order


class TestClassifyItem:

    def test_debardeur_with_and_without_accent(self):
        assert classify_item("Débardeur Blanc") == ("DB", "BLANC")
        assert classify_item("DEBARDEUR noir") == ("DB", "NOIR")

    def test_thermal(self):
        assert classify_item("Thermals Noir XL") == ("TH", "NOIR")

    def test_unknown_product(self):
        assert classify_item("Carte cadeau") == ("", "")


class TestFormatItemsGift:

    def test_quantities_are_summed_per_code(self):
        items = [
            LineItem("Débardeur Blanc S", 1),
            LineItem("Thermal Noir", 1),
            LineItem("Débardeur Blanc M", 2),
        ]
        assert format_items_gift(items) == "3 DB BLANC + 1 TH NOIR"

    def test_unmapped_items_are_skipped(self):
        items = [LineItem("Débardeur Blanc", 1), LineItem("Carte cadeau", 1)]
        assert format_items_gift(items) == "1 DB BLANC"

    def test_code_without_color(self):
        assert format_items_gift([LineItem("Débardeur rouge", 2)]) == "2 DB"

    def test_nothing_mapped(self):
        assert format_items_gift([LineItem("Sticker", 3)]) == ""

    def test_analysis_lists_unmapped(self):
        analysis = analyze_line_items([LineItem("Débardeur Blanc", 1), LineItem("Sticker", 3)])
        assert analysis["totalItems"] == 4
        assert analysis["mappedItems"] == {"DB BLANC": 1}
        assert analysis["unmappedItems"][0]["title"] == "Sticker"
        assert analysis["formattedNotation"] == "1 DB BLANC"


class TestFormatOrder:

    def test_cells_from_order(self, jane_order):
        formatted = format_order(jane_order)
        assert formatted.name == "Jane Doe"
        assert formatted.order_number == "#TCO500"
        assert formatted.tracking_number == "1Z999"
        assert formatted.items_gift == "1 DB BLANC"

    def test_name_falls_back_to_customer_then_na(self):
        assert format_order(make_order("#1", customer="Bob")).name == "Bob"
        assert format_order(make_order("#1")).name == "N/A"


class TestValidateOrderData:

    def test_missing_identifier_is_an_error(self):
        result = validate_order_data(make_order(""))
        assert not result["isValid"]

    def test_warnings_do_not_invalidate(self):
        result = validate_order_data(make_order("#TCO1"))
        assert result["isValid"]
        assert len(result["warnings"]) == 2
