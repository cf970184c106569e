# errors.py


class SyncError(Exception):
    """Base class for every error raised by the sync service."""


class ConfigurationError(SyncError):
    """Required credentials or settings are missing. Fatal at startup."""


class StructureValidationError(SyncError):
    """The sheet header does not match the expected layout. Blocks all writes."""

    def __init__(self, message, headers=None, expected_headers=None):
        super().__init__(message)
        self.headers = list(headers or [])
        self.expected_headers = list(expected_headers or [])


class NetworkError(SyncError):
    """An external API (Shopify or Google Sheets) call failed."""


class LookupFailure(SyncError):
    """No order found by identifier or by name search."""


class MatchFailure(SyncError):
    """Candidate orders were found but none matches the row exactly."""


class WriteFailure(SyncError):
    """The spreadsheet rejected a write, or the row changed under us."""
