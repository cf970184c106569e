# order_processor.py

import asyncio
import logging
from typing import Optional

from .errors import LookupFailure, MatchFailure, NetworkError, StructureValidationError, WriteFailure
from .item_formatter import format_order
from .models import Order, PlacementAction, RowOutcome, RowStatus, ScanReport, SheetRow
from .name_matcher import is_exact_match, normalize_name, select_best_match
from .order_sequencer import extract_key
from .row_placement import plan
from .sheets_service import HEADER_ROW, find_customer_rows, validate_sheet_structure

logger = logging.getLogger(__name__)


class ScanState:
    """
    Row identities seen by previous passes and their last status.

    Passed into each pass instead of living in a module global, so a
    single pass can be run in isolation.
    """

    def __init__(self):
        self.seen: set[str] = set()
        self.statuses: dict[str, RowStatus] = {}

    def observe(self, token: str) -> bool:
        """Remember `token`; True the first time it is seen."""
        if token in self.seen:
            return False
        self.seen.add(token)
        return True

    def record(self, token: str, status: RowStatus) -> None:
        self.statuses[token] = status

    def status(self, token: str) -> RowStatus:
        return self.statuses.get(token, RowStatus.UNSEEN)

    def __len__(self):
        return len(self.seen)


class ReconciliationScanner:
    """Fills order number, tracking and gift items for rows that only have a name."""

    def __init__(self, sheets, orders, order_prefix: str = "#TCO"):
        self.sheets = sheets
        self.orders = orders
        self.order_prefix = order_prefix

    # ---------- PASS ----------
    async def run_pass(self, state: Optional[ScanState] = None) -> ScanReport:
        """
        Scan every data row top to bottom.

        A structure error (wrong header) stops the pass before any write.
        Row-level failures are reported and never stop the pass.
        """
        state = state if state is not None else ScanState()
        rows = await asyncio.to_thread(self.sheets.read_all_rows)
        validate_sheet_structure(rows)

        report = ScanReport()
        for row in rows[HEADER_ROW:]:
            if not row.has_name:
                continue

            if state.observe(row.token):
                logger.info("New name at row %s: %s", row.row_number, row.name)

            if row.is_complete:
                state.record(row.token, RowStatus.COMPLETE)
                report.outcomes.append(RowOutcome(
                    row.row_number, row.name, RowStatus.COMPLETE,
                    reason="already complete", order_number=row.order_number,
                ))
                continue

            state.record(row.token, RowStatus.PENDING)
            outcome = await self.reconcile_row(row)
            state.record(row.token, outcome.status)
            report.outcomes.append(outcome)

        logger.info(
            "Pass finished: %d complete, %d failed",
            len(report.by_status(RowStatus.COMPLETE)),
            len(report.by_status(RowStatus.FAILED)),
        )
        return report

    async def reconcile_row(self, row: SheetRow) -> RowOutcome:
        """
        Resolve and write one row. Anything but a structure error becomes a
        failed outcome, so the rest of the pass still runs.
        """
        try:
            order = await self.resolve_order(row)
        except (LookupFailure, MatchFailure) as err:
            logger.warning("Row %s (%s): %s", row.row_number, row.name, err)
            return _failed(row, err)
        except StructureValidationError:
            raise
        except Exception as err:
            logger.exception("Row %s (%s): order lookup raised", row.row_number, row.name)
            return _failed(row, LookupFailure(f"{type(err).__name__}: {err}"))

        try:
            written = await self.write_order(row, order)
        except WriteFailure as err:
            logger.error("Row %s (%s): %s", row.row_number, row.name, err)
            return _failed(row, err)
        except StructureValidationError:
            raise
        except Exception as err:
            logger.exception("Row %s (%s): sheet write raised", row.row_number, row.name)
            return _failed(row, WriteFailure(f"{type(err).__name__}: {err}"))

        if not written.is_complete:
            logger.info("Row %s: %s written, waiting for tracking", row.row_number, order.identifier)
            return RowOutcome(row.row_number, row.name, RowStatus.PENDING,
                              reason="order written, tracking not available yet",
                              order_number=order.identifier)

        logger.info("Row %s updated for %s with %s", row.row_number, row.name, order.identifier)
        return RowOutcome(row.row_number, row.name, RowStatus.COMPLETE, order_number=order.identifier)

    # ---------- RESOLUTION ----------
    async def resolve_order(self, row: SheetRow) -> Order:
        order = await self._lookup_existing(row)
        if order is not None:
            return order

        try:
            candidates = await asyncio.to_thread(self.orders.search_by_customer_name, row.name)
        except NetworkError as err:
            raise LookupFailure(f"order search failed: {err}")
        if not candidates:
            raise LookupFailure(f"no order found for {row.name!r}")

        # rows filled earlier in this pass must count as recorded
        try:
            rows = await asyncio.to_thread(self.sheets.read_all_rows)
        except NetworkError as err:
            raise LookupFailure(f"could not re-read the sheet: {err}")
        validate_sheet_structure(rows)

        recorded = {
            other.order_number.strip()
            for other in rows[HEADER_ROW:]
            if other.row_number != row.row_number and other.order_number.strip()
        }
        available = [c for c in candidates if c.identifier not in recorded]

        selection = select_best_match(row.name, available)
        if selection is None:
            if not available:
                raise MatchFailure(f"every order matching {row.name!r} is already recorded")
            raise MatchFailure(f"{len(available)} candidate(s) but no exact match for {row.name!r}")

        order, result = selection
        logger.debug("Row %s matched %s by %s name", row.row_number, order.identifier, result.match_type.value)
        return order

    async def _lookup_existing(self, row: SheetRow) -> Optional[Order]:
        identifier = row.order_number.strip()
        if not identifier or not identifier.startswith(self.order_prefix):
            return None

        try:
            order = await asyncio.to_thread(self.orders.get_by_identifier, identifier)
        except NetworkError as err:
            logger.warning("Lookup of %s failed, searching by name: %s", identifier, err)
            return None
        if order is None:
            logger.info("Order %s not found, searching by name", identifier)
            return None
        if not is_exact_match(row.name, order).is_match:
            logger.info("Order %s does not belong to %s, searching by name", identifier, row.name)
            return None
        return order

    # ---------- WRITE ----------
    async def write_order(self, row: SheetRow, order: Order) -> SheetRow:
        """
        Fill the empty order cells of `row` from a fresh read of the sheet.

        Cells that already hold a value are kept. Returns the row as written.
        """
        try:
            rows = await asyncio.to_thread(self.sheets.read_all_rows)
        except NetworkError as err:
            raise WriteFailure(f"could not re-read the sheet: {err}")
        validate_sheet_structure(rows)

        current = next((r for r in rows if r.row_number == row.row_number), None)
        if current is None or normalize_name(current.name) != normalize_name(row.name):
            raise WriteFailure(f"row {row.row_number} changed since it was read")

        formatted = format_order(order)
        decision = plan(
            formatted.order_number,
            extract_key(formatted.order_number),
            find_customer_rows(rows, current.name),
            len(rows),
            open_row=current.row_number,
        )
        if decision.action != PlacementAction.UPDATE or decision.target_row != current.row_number:
            raise WriteFailure(f"{formatted.order_number} is already recorded at row {decision.target_row}")

        changed = False
        for attr in ("order_number", "tracking_number", "items_gift"):
            value = getattr(formatted, attr)
            if not getattr(current, attr).strip() and value:
                setattr(current, attr, value)
                changed = True
        if not changed:
            return current

        try:
            await asyncio.to_thread(self.sheets.update_row, current.row_number, current.cells())
        except NetworkError as err:
            raise WriteFailure(str(err))
        return current


def _failed(row: SheetRow, err: Exception) -> RowOutcome:
    return RowOutcome(
        row.row_number, row.name, RowStatus.FAILED,
        reason=f"{type(err).__name__}: {err}",
        order_number=row.order_number,
    )
