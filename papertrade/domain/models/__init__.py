"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Constants
    DEFAULT_SECTOR,

    # Enums
    HistoryPeriod,
    PriceStatus,
    SortDirection,
    SortKey,

    # Entities
    AnalyticsResult,
    CachedQuote,
    DiversificationResult,
    HistoryPoint,
    Holding,
    LeaderboardEntry,
    NavCheck,
    PerformanceSummary,
    PortfolioDelta,
    PortfolioSnapshot,
    PositionMetrics,
    Quote,
    RankedEntry,
    RejectedHolding,
    SectorBucket,
)

__all__ = [
    # Constants
    "DEFAULT_SECTOR",

    # Enums
    "HistoryPeriod",
    "PriceStatus",
    "SortDirection",
    "SortKey",

    # Entities
    "AnalyticsResult",
    "CachedQuote",
    "DiversificationResult",
    "HistoryPoint",
    "Holding",
    "LeaderboardEntry",
    "NavCheck",
    "PerformanceSummary",
    "PortfolioDelta",
    "PortfolioSnapshot",
    "PositionMetrics",
    "Quote",
    "RankedEntry",
    "RejectedHolding",
    "SectorBucket",
]
