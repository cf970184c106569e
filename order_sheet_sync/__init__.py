# Shopify orders -> Google Sheets sync

from .models import Order, LineItem, SheetRow, MatchResult, MatchType, PlacementAction, PlacementDecision, RowStatus
from .errors import (
    SyncError,
    ConfigurationError,
    StructureValidationError,
    LookupFailure,
    MatchFailure,
    WriteFailure,
    NetworkError,
)
from .name_matcher import is_exact_match, select_best_match, fuzzy_name_matches
from .order_sequencer import extract_key, compare
from .row_placement import plan
from .order_processor import ReconciliationScanner, ScanState
from .order_sync import OrderSyncService
from .watcher import SheetsWatcher

__version__ = "1.0.0"

__all__ = [
    # Models
    "Order",
    "LineItem",
    "SheetRow",
    "MatchResult",
    "MatchType",
    "PlacementAction",
    "PlacementDecision",
    "RowStatus",
    # Errors
    "SyncError",
    "ConfigurationError",
    "StructureValidationError",
    "LookupFailure",
    "MatchFailure",
    "WriteFailure",
    "NetworkError",
    # Core
    "is_exact_match",
    "select_best_match",
    "fuzzy_name_matches",
    "extract_key",
    "compare",
    "plan",
    "ReconciliationScanner",
    "ScanState",
    "OrderSyncService",
    "SheetsWatcher",
]
