"""
ANALYTICS PIPELINE
One full computation cycle: quotes -> valuation -> aggregation -> score,
rankings, change and NAV check

RESPONSIBILITIES:
- Validate batch shape (fatal) and items (recoverable)
- Run every engine in order
- Return one immutable AnalyticsResult

RULES:
❌ No I/O, no fetching, no persistence
❌ One bad holding never aborts the cycle
✅ Same inputs (incl. now) -> equal output
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from papertrade.domain.errors import InvalidBatch, InvalidInput
from papertrade.domain.models import (
    DEFAULT_SECTOR,
    AnalyticsResult,
    Holding,
    PositionMetrics,
    Quote,
    RejectedHolding,
    SortDirection,
    SortKey,
)
from papertrade.domain.services.change_detector import ChangeDetector, HasTotalValue
from papertrade.domain.services.config_engine import AnalyticsConfig
from papertrade.domain.services.diversification_scorer import DiversificationScorer
from papertrade.domain.services.nav_reconciler import NavReconciler
from papertrade.domain.services.portfolio_aggregator import PortfolioAggregator
from papertrade.domain.services.ranking_engine import RankingEngine
from papertrade.domain.services.valuation_engine import ValuationEngine
from papertrade.infrastructure.market_data.quote_store import QuoteCache
from papertrade.utils.numbers import to_decimal
from papertrade.utils.time import ensure_aware, now_utc

logger = logging.getLogger(__name__)


def _first(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return None


def holdings_from_records(
    records: Any,
    default_sector: str = DEFAULT_SECTOR,
) -> Tuple[List[Holding], List[RejectedHolding]]:
    """
    Convert raw holding mappings into Holding objects

    Accepts both snake_case and camelCase field names. Records that are not
    mappings are rejected one by one; a batch that is not a list is fatal.
    """
    if not isinstance(records, (list, tuple)):
        raise InvalidBatch(f"Holdings must be a list, got {type(records).__name__}")

    holdings: List[Holding] = []
    rejected: List[RejectedHolding] = []
    for record in records:
        if not isinstance(record, Mapping):
            rejected.append(RejectedHolding(symbol="", reason="Holding record must be an object"))
            continue

        symbol = _first(record, "symbol")
        sector = _first(record, "sector")
        stock_name = _first(record, "stock_name", "stockName", "name")
        holdings.append(
            Holding(
                symbol=str(symbol).strip() if symbol is not None else "",
                quantity=_first(record, "quantity", "qty"),
                avg_buy_price=_first(record, "avg_buy_price", "avgBuyPrice", "average_price"),
                sector=str(sector).strip() if sector else default_sector,
                stock_name=str(stock_name) if stock_name is not None else None,
            )
        )
    return holdings, rejected


def _parse_timestamp(value: Any, default: datetime) -> datetime:
    if value is None:
        return default
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if value > 1e12 else value  # epoch millis from JS clients
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise InvalidInput(f"Quote timestamp out of range: {value!r}")
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_aware(datetime.fromisoformat(text))
        except ValueError:
            pass
    raise InvalidInput(f"Unrecognised quote timestamp: {value!r}")


def quotes_from_records(
    records: Any,
    now: Optional[datetime] = None,
) -> Tuple[List[Quote], List[RejectedHolding]]:
    """
    Convert raw {symbol, price, timestamp} mappings into Quote objects

    A missing timestamp means the quote was observed now.
    """
    if not isinstance(records, (list, tuple)):
        raise InvalidBatch(f"Quotes must be a list, got {type(records).__name__}")
    now = ensure_aware(now) if now is not None else now_utc()

    quotes: List[Quote] = []
    rejected: List[RejectedHolding] = []
    for record in records:
        if not isinstance(record, Mapping):
            rejected.append(RejectedHolding(symbol="", reason="Quote record must be an object"))
            continue
        symbol = str(_first(record, "symbol") or "").strip()
        try:
            quote = Quote(
                symbol=symbol,
                price=to_decimal(_first(record, "price", "last_price", "ltp"), "price"),
                observed_at=_parse_timestamp(
                    _first(record, "observed_at", "observedAt", "timestamp", "ts"), now
                ),
            )
        except InvalidInput as exc:
            rejected.append(RejectedHolding(symbol=symbol, reason=exc.message))
            continue
        quotes.append(quote)
    return quotes, rejected


class AnalyticsPipeline:
    """
    Analytics Pipeline
    Stateless orchestration of the valuation engines
    """

    def __init__(self, config: Optional[AnalyticsConfig] = None):
        self.config = config or AnalyticsConfig()
        self.valuation_engine = ValuationEngine()
        self.aggregator = PortfolioAggregator(
            overweight_threshold_pct=self.config.overweight_threshold_pct,
        )
        self.scorer = DiversificationScorer(
            dominant_threshold_pct=self.config.dominant_threshold_pct,
            max_score=self.config.max_score,
            min_score=self.config.min_score,
            overweight_penalty=self.config.overweight_penalty,
            dominant_penalty=self.config.dominant_penalty,
        )
        self.ranking_engine = RankingEngine()
        self.change_detector = ChangeDetector()
        self.nav_reconciler = NavReconciler(tolerance_pct=self.config.nav_tolerance_pct)

    def run(
        self,
        holdings: Sequence[Holding],
        cash,
        quote_cache: QuoteCache,
        previous: Optional[HasTotalValue] = None,
        now: Optional[datetime] = None,
        sort_selections: Optional[Iterable[Tuple[SortKey, SortDirection]]] = None,
        reported_nav=None,
        rejected: Sequence[RejectedHolding] = (),
    ) -> AnalyticsResult:
        """
        Compute the full analytics view for one cycle

        Args:
            holdings: Positions supplied by the holdings source
            cash: Uninvested cash
            quote_cache: Cache already merged with this cycle's quotes
            previous: Prior snapshot (anything with total_value) or None
            now: Cycle time used for staleness (defaults to current UTC)
            sort_selections: (key, direction) pairs; defaults to every key
                in its configured direction
            reported_nav: Backend NAV for the cross-check
            rejected: Records already rejected while parsing

        Raises:
            InvalidBatch: holdings not a list, or invalid cash
        """
        if not isinstance(holdings, (list, tuple)):
            raise InvalidBatch(f"Holdings must be a list, got {type(holdings).__name__}")
        now = ensure_aware(now) if now is not None else now_utc()

        positions, item_rejects = self._valuate_all(holdings, quote_cache, now)
        all_rejected = tuple(rejected) + tuple(item_rejects)

        snapshot = self.aggregator.aggregate(positions, cash, rejected=all_rejected, as_of=now)
        snapshot = replace(snapshot, diversification=self.scorer.score(snapshot.sector_buckets))

        if sort_selections is None:
            sort_selections = [
                (key, self.config.default_directions.get(key, SortDirection.DESC))
                for key in SortKey
            ]
        rankings = self.ranking_engine.rank_views(snapshot.positions, sort_selections)

        delta = self.change_detector.delta(snapshot, previous)

        try:
            nav_check = self.nav_reconciler.reconcile(snapshot, reported_nav)
        except InvalidInput as exc:
            logger.warning("Ignoring reported NAV: %s", exc.message)
            nav_check = self.nav_reconciler.reconcile(snapshot, None)

        logger.info(
            "Analytics cycle | positions=%d rejected=%d stale=%d unpriced=%d total=%s",
            snapshot.holdings_count,
            len(snapshot.rejected),
            len(snapshot.stale_symbols),
            len(snapshot.unpriced_symbols),
            snapshot.total_value,
        )

        return AnalyticsResult(
            snapshot=snapshot,
            rankings=rankings,
            delta=delta,
            nav_check=nav_check,
        )

    def run_records(
        self,
        records: Any,
        cash,
        quote_cache: QuoteCache,
        **kwargs,
    ) -> AnalyticsResult:
        """Same as run(), starting from raw holding mappings"""
        holdings, rejected = holdings_from_records(records, self.config.default_sector)
        return self.run(holdings, cash, quote_cache, rejected=rejected, **kwargs)

    def _valuate_all(
        self,
        holdings: Sequence[Holding],
        quote_cache: QuoteCache,
        now: datetime,
    ) -> Tuple[List[PositionMetrics], List[RejectedHolding]]:
        positions: List[PositionMetrics] = []
        rejected: List[RejectedHolding] = []
        seen = set()

        for holding in holdings:
            symbol = str(getattr(holding, "symbol", "") or "").strip()
            try:
                if not isinstance(holding, Holding):
                    raise InvalidInput("Holding record has an unexpected type")
                quote = quote_cache.get(symbol, self.config.freshness_window, now) if symbol else None
                metrics = self.valuation_engine.valuate(holding, quote)
                # Closed lots never count as the symbol's position
                if not metrics.is_closed and metrics.symbol in seen:
                    raise InvalidInput(f"Duplicate symbol in portfolio: {symbol}", symbol=symbol)
            except InvalidInput as exc:
                logger.warning("Rejected holding %s: %s", symbol or "<empty>", exc.message)
                rejected.append(RejectedHolding(symbol=symbol, reason=exc.message))
                continue

            if not metrics.is_closed:
                seen.add(metrics.symbol)
                if metrics.unpriced:
                    logger.warning("No quote for %s, valued at average buy price", metrics.symbol)
            positions.append(metrics)

        return positions, rejected
