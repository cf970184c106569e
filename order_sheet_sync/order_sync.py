"""
Push orders from the shop into the sheet (webhooks, manual sync).

Each order is placed chronologically among the rows already recorded for
the same customer. The sheet is re-read before every order, so row
numbers shifted by an earlier insert in the same batch are never reused.
"""

import asyncio
import logging

from .errors import LookupFailure, NetworkError
from .item_formatter import format_order, validate_order_data
from .models import FormattedOrder, Order, PlacementAction, SheetRow, SyncReport, SyncResult
from .order_sequencer import extract_key
from .row_placement import plan
from .sheets_service import find_customer_rows, validate_sheet_structure

logger = logging.getLogger(__name__)


ACTION_MESSAGES = {
    PlacementAction.UPDATE: "Order updated in place at row {row}",
    PlacementAction.INSERT_BEFORE: "Order inserted chronologically at row {row}",
    PlacementAction.APPEND_AFTER: "Order added after the customer's latest order (row {row})",
}


class OrderSyncService:

    def __init__(self, sheets, orders):
        self.sheets = sheets
        self.orders = orders

    async def _read_rows(self) -> list[SheetRow]:
        rows = await asyncio.to_thread(self.sheets.read_all_rows)
        validate_sheet_structure(rows)
        return rows

    async def sync_orders(self, orders: list[Order]) -> SyncReport:
        """Place every order; a StructureValidationError aborts the batch."""
        logger.info("Syncing %d order(s)", len(orders))
        report = SyncReport()
        for order in orders:
            report.details.append(await self.sync_order(order))
        logger.info("Sync finished: %d/%d orders synced", report.success_count, report.total)
        return report

    async def sync_order(self, order: Order) -> SyncResult:
        validation = validate_order_data(order)
        if not validation["isValid"]:
            return SyncResult(order.identifier, False, message="; ".join(validation["errors"]))
        for warning in validation["warnings"]:
            logger.warning("Order %s: %s", order.identifier, warning)

        formatted = format_order(order)
        try:
            rows = await self._read_rows()
            customer_rows = find_customer_rows(rows, formatted.name)
            if not order.has_name:
                # unnamed orders share the placeholder name; only a verbatim match places them
                customer_rows = [c for c in customer_rows if c.order_number == formatted.order_number]
            decision = plan(
                formatted.order_number,
                extract_key(formatted.order_number),
                customer_rows,
                len(rows),
            )
            await self._apply(decision.action, decision.target_row, rows, formatted, bool(customer_rows))
        except NetworkError as err:
            logger.error("Order %s: %s", formatted.order_number, err)
            return SyncResult(formatted.order_number, False, customer_name=formatted.name, message=str(err))

        logger.info("Order %s synced (%s at row %s)", formatted.order_number,
                    decision.action.value, decision.target_row)
        return SyncResult(
            formatted.order_number, True,
            customer_name=formatted.name,
            action=decision.action,
            row_number=decision.target_row,
            message=ACTION_MESSAGES[decision.action].format(row=decision.target_row),
        )

    async def _apply(self, action, target_row, rows, formatted: FormattedOrder, has_customer_rows):
        if action == PlacementAction.UPDATE:
            current = next(r for r in rows if r.row_number == target_row)
            current.order_number = formatted.order_number
            if formatted.tracking_number:
                current.tracking_number = formatted.tracking_number
            if formatted.items_gift:
                current.items_gift = formatted.items_gift
            await asyncio.to_thread(self.sheets.update_row, target_row, current.cells())
            return

        new_row = SheetRow(
            target_row,
            name=formatted.name,
            order_number=formatted.order_number,
            tracking_number=formatted.tracking_number,
            items_gift=formatted.items_gift,
        )
        if action == PlacementAction.INSERT_BEFORE or (has_customer_rows and target_row <= len(rows)):
            await asyncio.to_thread(self.sheets.insert_row_at, target_row, new_row.cells())
        else:
            await asyncio.to_thread(self.sheets.append_row, new_row.cells())

    async def sync_specific_orders(self, identifiers: list[str]) -> SyncReport:
        orders = await asyncio.to_thread(self.orders.get_by_identifiers, identifiers)
        if not orders:
            raise LookupFailure(f"no order found for {', '.join(map(str, identifiers))}")
        return await self.sync_orders(orders)

    async def sync_recent_orders(self, limit: int = 10, status: str = "any") -> SyncReport:
        payloads = await asyncio.to_thread(self.orders.get_orders, limit, status)
        if not payloads:
            raise LookupFailure("no recent orders")
        return await self.sync_orders([Order.from_shopify(p) for p in payloads])
