from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from papertrade.domain.models import HistoryPeriod, SortDirection, SortKey


# Requests are typed loosely on purpose: individual holdings and quotes are
# validated by the engine and rejected one by one.

class SortSelectionSchema(BaseModel):
    key: SortKey
    direction: SortDirection = SortDirection.DESC


class SnapshotRequest(BaseModel):
    holdings: List[Any]
    cash: Any = 0
    quotes: List[Any] = Field(default_factory=list)
    previous_total_value: Optional[Any] = None
    reported_total_value: Optional[Any] = None
    sort: Optional[List[SortSelectionSchema]] = None
    as_of: Optional[datetime] = None


class QuoteBatchRequest(BaseModel):
    quotes: List[Any]


class LeaderboardEntrySchema(BaseModel):
    user_id: str
    alias: Optional[str] = None
    total_value: float = 0.0
    budget_amount: float = 10000.0
    badges_count: int = 0
    login_streak: int = 0


class LeaderboardRequest(BaseModel):
    entries: List[LeaderboardEntrySchema]


class PositionSchema(BaseModel):
    symbol: str
    stock_name: Optional[str] = None
    sector: str
    quantity: int
    avg_buy_price: float
    current_price: float
    current_value: float
    cost_basis: float
    gain_loss: float
    gain_loss_percent: float
    weight: float
    overweight: bool
    stale: bool
    unpriced: bool
    price_status: str
    observed_at: Optional[str] = None


class SectorAllocationSchema(BaseModel):
    sector: str
    value: float
    percent: float
    overweight: bool


class DiversificationSchema(BaseModel):
    score: float
    overweight_sectors: List[str]


class RejectedSchema(BaseModel):
    symbol: str
    reason: str


class SnapshotSchema(BaseModel):
    as_of: Optional[str] = None
    cash: float
    holdings_value: float
    total_value: float
    total_cost: float
    total_gain_loss: float
    total_gain_loss_percent: float
    holdings_count: int
    sector_allocation: List[SectorAllocationSchema]
    diversification: Optional[DiversificationSchema] = None
    positions: List[PositionSchema]
    rejected: List[RejectedSchema]
    stale_symbols: List[str]
    unpriced_symbols: List[str]


class DeltaSchema(BaseModel):
    absolute: float
    percent: float
    has_previous: bool


class NavCheckSchema(BaseModel):
    computed: float
    reported: Optional[float] = None
    difference: float
    difference_percent: float
    within_tolerance: bool
    display_total: float
    source: str


class QuoteMergeSchema(BaseModel):
    applied: int
    discarded: int
    rejected: List[RejectedSchema]


class SnapshotResponse(BaseModel):
    snapshot: SnapshotSchema
    rankings: Dict[str, List[str]]
    delta: Optional[DeltaSchema] = None
    nav_check: Optional[NavCheckSchema] = None
    quotes: QuoteMergeSchema


class LeaderboardRowSchema(BaseModel):
    rank: int
    user_id: str
    alias: str
    portfolio_return: float
    badges_count: int
    login_streak: int


class LeaderboardResponse(BaseModel):
    leaderboard: List[LeaderboardRowSchema]


class HistoryPointSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    point_date: date = Field(alias="date")
    total_value: float
    total_gain: float = 0.0
    total_gain_percent: float = 0.0


class PerformanceRequest(BaseModel):
    points: List[HistoryPointSchema]
    period: HistoryPeriod = HistoryPeriod.ONE_MONTH
    today: Optional[date] = None


class PerformanceResponse(BaseModel):
    period: str
    start_date: date
    points: List[HistoryPointSchema]
    delta: DeltaSchema
