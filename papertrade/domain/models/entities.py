"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple


DEFAULT_SECTOR = "Other"


class SortKey(str, Enum):
    """Ordering key for ranked position views"""
    ALPHABETIC = "alphabetic"
    GAIN_LOSS_PERCENT = "gain_loss_percent"
    WEIGHT = "weight"


class SortDirection(str, Enum):
    """Ordering direction"""
    ASC = "asc"
    DESC = "desc"


class PriceStatus(str, Enum):
    """Where a position's price came from"""
    LIVE = "LIVE"
    STALE = "STALE"
    UNPRICED = "UNPRICED"


class HistoryPeriod(str, Enum):
    """Chart windows for portfolio history"""
    ONE_DAY = "1D"
    ONE_WEEK = "1W"
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    ONE_YEAR = "1Y"
    ALL = "ALL"


@dataclass(frozen=True)
class Holding:
    """Raw position as supplied by the holdings source - Immutable"""
    symbol: str
    quantity: int
    avg_buy_price: Decimal
    sector: str = DEFAULT_SECTOR
    stock_name: Optional[str] = None


@dataclass(frozen=True)
class Quote:
    """Last traded price observation - Immutable"""
    symbol: str
    price: Decimal
    observed_at: datetime


@dataclass(frozen=True)
class CachedQuote:
    """Quote read back from the cache, annotated with staleness"""
    symbol: str
    price: Decimal
    observed_at: datetime
    stale: bool


@dataclass(frozen=True)
class PositionMetrics:
    """
    Derived per-position figures at full precision.

    weight and overweight stay unset until the portfolio aggregator assigns them.
    """
    symbol: str
    sector: str
    quantity: int
    avg_buy_price: Decimal
    price: Decimal
    value: Decimal
    cost_basis: Decimal
    gain: Decimal
    gain_percent: Decimal
    stale: bool = False
    unpriced: bool = False
    weight: Decimal = Decimal("0")
    overweight: bool = False
    stock_name: Optional[str] = None
    observed_at: Optional[datetime] = None

    @property
    def is_closed(self) -> bool:
        return self.quantity == 0

    @property
    def price_status(self) -> PriceStatus:
        if self.unpriced:
            return PriceStatus.UNPRICED
        if self.stale:
            return PriceStatus.STALE
        return PriceStatus.LIVE


@dataclass(frozen=True)
class RejectedHolding:
    """Holding that failed validation; surfaced, never aggregated"""
    symbol: str
    reason: str


@dataclass(frozen=True)
class SectorBucket:
    """Portfolio value grouped by sector"""
    sector: str
    value: Decimal
    percent_of_portfolio: Decimal
    overweight: bool


@dataclass(frozen=True)
class DiversificationResult:
    """Concentration score across sectors"""
    score: Decimal
    overweight_sectors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Snapshot of the entire portfolio for one computation cycle"""
    cash: Decimal
    holdings_value: Decimal
    total_value: Decimal
    total_cost: Decimal
    total_gain: Decimal
    total_gain_percent: Decimal
    sector_buckets: Tuple[SectorBucket, ...] = ()
    positions: Tuple[PositionMetrics, ...] = ()
    rejected: Tuple[RejectedHolding, ...] = ()
    diversification: Optional[DiversificationResult] = None
    as_of: Optional[datetime] = None

    @property
    def holdings_count(self) -> int:
        return len(self.positions)

    @property
    def stale_symbols(self) -> Tuple[str, ...]:
        return tuple(p.symbol for p in self.positions if p.stale)

    @property
    def unpriced_symbols(self) -> Tuple[str, ...]:
        return tuple(p.symbol for p in self.positions if p.unpriced)

    @property
    def overweight_sectors(self) -> Tuple[str, ...]:
        return tuple(b.sector for b in self.sector_buckets if b.overweight)


@dataclass(frozen=True)
class PortfolioDelta:
    """Change in total value against a prior snapshot"""
    absolute: Decimal
    percent: Decimal
    has_previous: bool

    @property
    def is_gain(self) -> bool:
        return self.absolute >= Decimal("0")


@dataclass(frozen=True)
class NavCheck:
    """Cross-check of computed NAV against the backend-reported NAV"""
    computed: Decimal
    reported: Optional[Decimal]
    difference: Decimal
    difference_percent: Decimal
    within_tolerance: bool
    display_total: Decimal
    source: str


@dataclass(frozen=True)
class AnalyticsResult:
    """Everything one pipeline cycle hands to presentation"""
    snapshot: PortfolioSnapshot
    rankings: Dict[SortKey, Tuple[PositionMetrics, ...]] = field(default_factory=dict)
    delta: Optional[PortfolioDelta] = None
    nav_check: Optional[NavCheck] = None


@dataclass(frozen=True)
class LeaderboardEntry:
    """Per-user figures fed to the leaderboard"""
    user_id: str
    total_value: Decimal
    budget_amount: Decimal
    alias: Optional[str] = None
    badges_count: int = 0
    login_streak: int = 0


@dataclass(frozen=True)
class RankedEntry:
    """Leaderboard row with its computed return and rank"""
    rank: int
    user_id: str
    alias: str
    portfolio_return: Decimal
    badges_count: int
    login_streak: int


@dataclass(frozen=True)
class HistoryPoint:
    """One stored daily portfolio value"""
    date: date
    total_value: Decimal
    total_gain: Decimal = Decimal("0")
    total_gain_percent: Decimal = Decimal("0")


@dataclass(frozen=True)
class PerformanceSummary:
    """History window with its change over the period"""
    period: HistoryPeriod
    start_date: date
    points: Tuple[HistoryPoint, ...]
    delta: PortfolioDelta
