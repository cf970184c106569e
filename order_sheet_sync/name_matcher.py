"""
Name matching between a sheet row and candidate orders.

Exact matching is the only thing allowed to decide which order belongs
to a row. The fuzzy check is a pre-filter for narrowing a long order
list and must never be used as the final decision.
"""

from typing import Iterable, Optional

from .models import MatchResult, MatchType, Order


PRIORITY = (MatchType.CUSTOMER, MatchType.SHIPPING, MatchType.BILLING)


def normalize_name(name) -> str:
    if not isinstance(name, str):
        return ""
    return name.strip().lower()


def is_exact_match(query_name: str, order: Order) -> MatchResult:
    """
    Compare `query_name` with the order's customer, shipping and billing
    names (case-insensitive, trimmed, full string). The first category
    that matches wins.
    """
    names = order.names
    query = normalize_name(query_name)
    if query:
        for match_type in PRIORITY:
            if normalize_name(names.get(match_type.value)) == query:
                return MatchResult(True, match_type, names)
    return MatchResult(False, MatchType.NONE, names)


def select_best_match(query_name: str, candidates: Iterable[Order]) -> Optional[tuple[Order, MatchResult]]:
    """
    Pick the candidate matching `query_name`, one full pass per category:
    any customer match beats any shipping match, which beats any billing
    match. Within a category the first candidate in input order wins.

    Returns None when nothing matches exactly; callers must not guess.
    """
    results = [(order, is_exact_match(query_name, order)) for order in candidates]
    for match_type in PRIORITY:
        for order, result in results:
            if result.match_type == match_type:
                return order, result
    return None


def fuzzy_name_matches(query_name: str, order: Order) -> bool:
    """Loose bidirectional substring check on shipping and customer names."""
    query = normalize_name(query_name)
    if not query:
        return False
    for candidate in (order.shipping_name, order.customer_name):
        name = normalize_name(candidate)
        if name and (query in name or name in query):
            return True
    return False
