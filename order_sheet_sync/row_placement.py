"""
Decide where an order's data goes in the sheet.

Rows for one customer read top to bottom in chronological order, so an
order that arrives late but was placed earlier is spliced in before the
first later row instead of being appended.
"""

from typing import Optional, Sequence

from .models import CustomerRow, PlacementAction, PlacementDecision


def plan(
    order_number: str,
    new_key: Optional[int],
    customer_rows: Sequence[CustomerRow],
    total_rows: int,
    open_row: Optional[int] = None,
) -> PlacementDecision:
    """
    Compute the placement for one order.

    Args:
        order_number: identifier of the order being placed
        new_key: its chronological key (may be None)
        customer_rows: the customer's existing rows, sorted ascending by key
        total_rows: live row count of the sheet, header included
        open_row: row already reserved for this order (reconciliation);
            when given, the order fills that row unless it is recorded
            verbatim elsewhere

    `total_rows` must come from the read that precedes the write. A stale
    count places an insert at the wrong row.
    """
    for row in customer_rows:
        if row.order_number and row.order_number == order_number:
            return PlacementDecision(PlacementAction.UPDATE, row.row_number)

    if open_row is not None:
        return PlacementDecision(PlacementAction.UPDATE, open_row)

    if not customer_rows:
        return PlacementDecision(PlacementAction.APPEND_AFTER, total_rows + 1)

    if new_key is not None:
        for row in customer_rows:
            if row.key is not None and row.key >= new_key:
                return PlacementDecision(PlacementAction.INSERT_BEFORE, row.row_number)

    last = customer_rows[-1]
    return PlacementDecision(PlacementAction.APPEND_AFTER, last.row_number + 1)
