"""
Domain Errors
Error taxonomy for the valuation & analytics engine
"""

from typing import Optional


class AnalyticsError(ValueError):
    """Base class for all analytics errors"""

    error_code = "ANALYTICS_ERROR"

    def __init__(self, message: str, symbol: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.symbol = symbol


class InvalidInput(AnalyticsError):
    """Malformed holding or quote. The item is excluded, the cycle continues."""

    error_code = "INVALID_INPUT"


class StaleQuote(AnalyticsError):
    """Quote is older than the freshness window."""

    error_code = "STALE_QUOTE"


class UnknownPrice(AnalyticsError):
    """No quote was ever observed for the symbol."""

    error_code = "UNKNOWN_PRICE"


class DegenerateAggregate(AnalyticsError):
    """A zero denominator in a percentage (total value or total cost)."""

    error_code = "DEGENERATE_AGGREGATE"


class InvalidBatch(AnalyticsError):
    """Structurally invalid batch. Fatal for the whole computation."""

    error_code = "INVALID_BATCH"
