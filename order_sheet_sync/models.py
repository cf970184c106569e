"""
Data models for the order/sheet sync.

Orders are parsed once from Shopify payloads and never mutated.
Sheet rows are built once at the spreadsheet boundary so nothing
downstream indexes cells by position.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Optional


ROW_WIDTH = 12


class MatchType(Enum):
    """Which order name matched, in priority order."""
    CUSTOMER = "customer"
    SHIPPING = "shipping"
    BILLING = "billing"
    NONE = "none"


class PlacementAction(Enum):
    UPDATE = "update"
    INSERT_BEFORE = "insertBefore"
    APPEND_AFTER = "appendAfter"


class RowStatus(Enum):
    UNSEEN = "unseen"
    PENDING = "pending"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class LineItem:
    title: str
    quantity: int = 1


@dataclass
class Order:
    """
    A single order as fetched from the order platform.

    `identifier` is the human-readable order name (e.g. "#TCO10842").
    """
    identifier: str
    customer_name: Optional[str] = None
    shipping_name: Optional[str] = None
    billing_name: Optional[str] = None
    line_items: list[LineItem] = field(default_factory=list)
    tracking_number: str = ""
    tracking_url: Optional[str] = None
    discount_codes: list[str] = field(default_factory=list)
    created_at: Optional[str] = None
    platform_id: Optional[str] = None

    @property
    def names(self) -> dict[str, Optional[str]]:
        return {
            "customer": self.customer_name,
            "shipping": self.shipping_name,
            "billing": self.billing_name,
        }

    @property
    def has_name(self) -> bool:
        return bool(self.shipping_name or self.customer_name)

    @property
    def display_name(self) -> str:
        """Name written into column D for pushed orders."""
        return self.shipping_name or self.customer_name or "N/A"

    @classmethod
    def from_shopify(cls, payload: dict) -> "Order":
        """Build an Order from a Shopify REST order (or webhook body)."""
        identifier = payload.get("name") or str(payload.get("id") or "")

        fulfillments = payload.get("fulfillments") or []
        tracking_number = ""
        tracking_url = None
        if fulfillments:
            first = fulfillments[0] or {}
            tracking_number = first.get("tracking_number") or ""
            tracking_url = first.get("tracking_url")

        line_items = [
            LineItem(title=item.get("title") or "", quantity=int(item.get("quantity") or 0))
            for item in payload.get("line_items") or []
        ]
        codes = [
            d.get("code") for d in payload.get("discount_codes") or [] if d.get("code")
        ]

        return cls(
            identifier=identifier,
            customer_name=_person_name(payload.get("customer")),
            shipping_name=_person_name(payload.get("shipping_address")),
            billing_name=_person_name(payload.get("billing_address")),
            line_items=line_items,
            tracking_number=tracking_number,
            tracking_url=tracking_url,
            discount_codes=codes,
            created_at=payload.get("created_at"),
            platform_id=str(payload["id"]) if payload.get("id") is not None else None,
        )


def _person_name(record: Optional[dict]) -> Optional[str]:
    if not record:
        return None
    name = f"{record.get('first_name') or ''} {record.get('last_name') or ''}".strip()
    return name or record.get("name") or None


@dataclass
class SheetRow:
    """
    One spreadsheet row, columns A-L.

    Only D (name), G (order number), H (tracking) and L (gift items)
    carry meaning for the sync; the rest are passed through untouched.
    """
    row_number: int
    column_a: str = ""
    column_b: str = ""
    column_c: str = ""
    name: str = ""
    column_e: str = ""
    column_f: str = ""
    order_number: str = ""
    tracking_number: str = ""
    column_i: str = ""
    column_j: str = ""
    column_k: str = ""
    items_gift: str = ""

    @classmethod
    def from_cells(cls, row_number: int, cells: list) -> "SheetRow":
        values = [("" if c is None else str(c)) for c in list(cells)[:ROW_WIDTH]]
        values += [""] * (ROW_WIDTH - len(values))
        return cls(row_number, *values)

    def cells(self) -> list[str]:
        return [getattr(self, f.name) for f in fields(self)[1:]]

    @property
    def has_name(self) -> bool:
        return bool(self.name.strip())

    @property
    def is_complete(self) -> bool:
        return all(
            value.strip()
            for value in (self.order_number, self.tracking_number, self.items_gift)
        )

    @property
    def is_eligible(self) -> bool:
        return self.has_name and not self.is_complete

    @property
    def token(self) -> str:
        """Row identity used by the watcher state."""
        return f"{self.row_number}:{self.name}"


@dataclass
class MatchResult:
    is_match: bool
    match_type: MatchType
    order_names: dict[str, Optional[str]]


@dataclass
class CustomerRow:
    """An existing sheet row belonging to the customer being placed."""
    row_number: int
    order_number: str
    key: Optional[int]


@dataclass(frozen=True)
class PlacementDecision:
    action: PlacementAction
    target_row: int


@dataclass
class FormattedOrder:
    """The three cells an order contributes to a row, plus its name."""
    name: str
    order_number: str
    tracking_number: str
    items_gift: str


@dataclass
class RowOutcome:
    row_number: int
    name: str
    status: RowStatus
    reason: str = ""
    order_number: str = ""

    def to_dict(self) -> dict:
        return {
            "row": self.row_number,
            "name": self.name,
            "status": self.status.value,
            "reason": self.reason,
            "orderNumber": self.order_number,
        }


@dataclass
class ScanReport:
    """Per-row results of one reconciliation pass."""
    outcomes: list[RowOutcome] = field(default_factory=list)

    def by_status(self, status: RowStatus) -> list[RowOutcome]:
        return [o for o in self.outcomes if o.status == status]

    def outcome_for(self, row_number: int) -> Optional[RowOutcome]:
        for outcome in self.outcomes:
            if outcome.row_number == row_number:
                return outcome
        return None

    def to_dict(self) -> dict:
        return {
            "rows": [o.to_dict() for o in self.outcomes],
            "complete": len(self.by_status(RowStatus.COMPLETE)),
            "failed": len(self.by_status(RowStatus.FAILED)),
        }


@dataclass
class SyncResult:
    order_number: str
    success: bool
    customer_name: str = ""
    action: Optional[PlacementAction] = None
    row_number: Optional[int] = None
    message: str = ""

    def to_dict(self) -> dict:
        data = {
            "orderNumber": self.order_number,
            "customerName": self.customer_name,
            "success": self.success,
            "message": self.message,
        }
        if self.action is not None:
            data["action"] = self.action.value
            data["rowIndex"] = self.row_number
        return data


@dataclass
class SyncReport:
    details: list[SyncResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.details)

    @property
    def success_count(self) -> int:
        return sum(1 for d in self.details if d.success)

    @property
    def failed_count(self) -> int:
        return self.total - self.success_count

    def statistics(self) -> dict:
        rate = f"{self.success_count / self.total * 100:.2f}%" if self.total else "0%"
        actions = {action.value: 0 for action in PlacementAction}
        for detail in self.details:
            if detail.success and detail.action is not None:
                actions[detail.action.value] += 1
        return {
            "totalOrders": self.total,
            "successfulSyncs": self.success_count,
            "failedSyncs": self.failed_count,
            "successRate": rate,
            "actions": actions,
        }

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "success": self.success_count,
            "failed": self.failed_count,
            "details": [d.to_dict() for d in self.details],
        }
