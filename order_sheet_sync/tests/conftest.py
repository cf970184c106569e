"""Shared fixtures: in-memory sheet and order stores."""

import pytest

from order_sheet_sync.errors import NetworkError
from order_sheet_sync.models import LineItem, Order, SheetRow
from order_sheet_sync.sheets_service import EXPECTED_HEADERS


HEADER = EXPECTED_HEADERS + ["", "", "", ""]


def data_row(name="", order_number="", tracking="", items=""):
    return ["", "", "", name, "", "", order_number, tracking, "", "", "", items]


def make_order(identifier, customer=None, shipping=None, billing=None,
               tracking="", items=None):
    return Order(
        identifier=identifier,
        customer_name=customer,
        shipping_name=shipping,
        billing_name=billing,
        line_items=[LineItem(title, qty) for title, qty in (items or [])],
        tracking_number=tracking,
    )


class FakeSheetsStore:
    """Sheet held as a list of cell lists; row 1 is the header."""

    def __init__(self, rows):
        self.rows = [list(r) for r in rows]
        self.writes = []
        self.reads = 0
        self.fail_writes = False
        self.on_read = None

    def read_all_rows(self):
        self.reads += 1
        if self.on_read:
            self.on_read(self)
        return [SheetRow.from_cells(i, cells) for i, cells in enumerate(self.rows, start=1)]

    def _check(self):
        if self.fail_writes:
            raise NetworkError("write rejected")

    def update_row(self, row_number, cells):
        self._check()
        self.writes.append(("update", row_number, list(cells)))
        self.rows[row_number - 1] = list(cells)

    def insert_row_at(self, row_number, cells):
        self._check()
        self.writes.append(("insert", row_number, list(cells)))
        self.rows.insert(row_number - 1, list(cells))

    def append_row(self, cells):
        self._check()
        self.writes.append(("append", len(self.rows) + 1, list(cells)))
        self.rows.append(list(cells))

    def test_connection(self):
        return {"success": True, "spreadsheet": {"title": "Orders", "sheets": []}}


class FakeOrderStore:
    def __init__(self, orders=None, by_name=None):
        self.orders = list(orders or [])
        self.by_name = by_name
        self.searches = []
        self.lookups = []
        self.search_error = None
        self.lookup_error = None

    def get_by_identifier(self, identifier):
        self.lookups.append(identifier)
        if self.lookup_error:
            raise self.lookup_error
        for order in self.orders:
            if order.identifier == identifier:
                return order
        return None

    def get_by_identifiers(self, identifiers):
        return [o for o in self.orders if o.identifier in identifiers]

    def search_by_customer_name(self, name):
        self.searches.append(name)
        if self.search_error:
            raise self.search_error
        if self.by_name is not None:
            return list(self.by_name.get(name, []))
        return list(self.orders)

    def get_orders(self, limit=10, status="any"):
        return [
            {
                "id": index,
                "name": o.identifier,
                "shipping_address": {"first_name": o.shipping_name or "", "last_name": ""},
                "line_items": [{"title": i.title, "quantity": i.quantity} for i in o.line_items],
                "fulfillments": [{"tracking_number": o.tracking_number}] if o.tracking_number else [],
            }
            for index, o in enumerate(self.orders[:limit], start=1)
        ]

    def test_connection(self):
        return {"success": True, "shop": {"name": "Test shop"}}


@pytest.fixture
def jane_order():
    return make_order(
        "#TCO500", shipping="Jane Doe", tracking="1Z999",
        items=[("Débardeur Blanc", 1), ("Carte cadeau", 1)],
    )


@pytest.fixture
def jane_sheet():
    return FakeSheetsStore([HEADER, data_row("Jane Doe")])
