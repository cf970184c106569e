"""Gift-item notation for column L ("2 DB BLANC + 1 TH NOIR")."""

from typing import Iterable, Optional

from .models import FormattedOrder, LineItem, Order


def classify_item(title: str) -> tuple[str, str]:
    """Return (code, color) for a product title; code is "" when unmapped."""
    title = (title or "").lower()
    code = ""
    if "débardeur" in title or "debardeur" in title:
        code = "DB"
    elif "thermal" in title:
        code = "TH"

    color = ""
    if code:
        if "blanc" in title:
            color = "BLANC"
        elif "noir" in title:
            color = "NOIR"
    return code, color


def _tally(line_items: Iterable[LineItem]) -> tuple[dict[str, int], list[dict], int]:
    counts: dict[str, int] = {}
    unmapped = []
    total = 0
    for item in line_items:
        total += item.quantity
        code, color = classify_item(item.title)
        if code:
            key = f"{code} {color}".strip()
            counts[key] = counts.get(key, 0) + item.quantity
        if not code or not color:
            unmapped.append({
                "title": item.title,
                "quantity": item.quantity,
                "reason": "unknown product type" if not code else "no color in title",
            })
    return counts, unmapped, total


def _render(counts: dict[str, int]) -> str:
    return " + ".join(f"{qty} {key}" for key, qty in counts.items() if qty > 0)


def format_items_gift(line_items: Iterable[LineItem]) -> str:
    counts, _, _ = _tally(line_items)
    return _render(counts)


def analyze_line_items(line_items: Iterable[LineItem]) -> dict:
    """Notation plus what could not be mapped, for operator diagnostics."""
    counts, unmapped, total = _tally(line_items)
    return {
        "totalItems": total,
        "mappedItems": counts,
        "unmappedItems": unmapped,
        "formattedNotation": _render(counts),
    }


def format_order(order: Order) -> FormattedOrder:
    return FormattedOrder(
        name=order.display_name,
        order_number=order.identifier,
        tracking_number=order.tracking_number or "",
        items_gift=format_items_gift(order.line_items),
    )


def validate_order_data(order: Optional[Order]) -> dict:
    errors = []
    warnings = []
    if order is None or not order.identifier:
        errors.append("missing order number")
    else:
        if not order.line_items:
            warnings.append("order has no line items")
        if not order.shipping_name and not order.customer_name:
            warnings.append("no shipping or customer information")
    return {"isValid": not errors, "errors": errors, "warnings": warnings}
