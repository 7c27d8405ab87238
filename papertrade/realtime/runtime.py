"""
Refresh runtime: quote source, quote cache, analytics pipeline and status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Set

from papertrade.domain.models import AnalyticsResult, Holding
from papertrade.domain.services.analytics_pipeline import AnalyticsPipeline
from papertrade.infrastructure.market_data.quote_store import MergeResult, QuoteCache
from papertrade.infrastructure.market_data.types import QuoteSource
from papertrade.utils.time import now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PortfolioInput:
    holdings: Sequence[Holding]
    cash: object
    reported_nav: Optional[object] = None


class PortfolioProvider(Protocol):
    async def load_portfolio(self) -> PortfolioInput:
        ...


ResultCallback = Callable[[AnalyticsResult], Awaitable[None]]


@dataclass
class RefreshStatus:
    cycles: int = 0
    failures: int = 0
    last_cycle_at: Optional[datetime] = None
    last_error: Optional[str] = None
    last_merge: Dict[str, object] = field(default_factory=dict)


class RefreshRuntime:
    """
    Periodic driver around the analytics pipeline.

    A cycle only replaces the last result once it fully succeeds; a failed or
    cancelled fetch leaves the previous result in place.
    """

    def __init__(
        self,
        quote_cache: QuoteCache,
        quote_source: QuoteSource,
        pipeline: AnalyticsPipeline,
        portfolio_provider: Optional[PortfolioProvider] = None,
        on_result: Optional[ResultCallback] = None,
        quote_expiry: timedelta = timedelta(days=1),
    ):
        self._quote_cache = quote_cache
        self._quote_source = quote_source
        self._pipeline = pipeline
        self._portfolio_provider = portfolio_provider
        self._on_result = on_result
        self._quote_expiry = quote_expiry
        self._tracked: Set[str] = set()
        self._last_result: Optional[AnalyticsResult] = None
        self._status = RefreshStatus()

    @property
    def last_result(self) -> Optional[AnalyticsResult]:
        return self._last_result

    def track_symbols(self, symbols: Sequence[str]) -> None:
        self._tracked.update(s for s in symbols if s)

    def tracked_symbols(self) -> List[str]:
        return sorted(self._tracked)

    async def refresh_quotes(self, symbols: Sequence[str]) -> MergeResult:
        quotes = await self._quote_source.fetch_quotes(list(symbols))
        return self._quote_cache.merge_batch(list(quotes))

    async def run_cycle(self, now: Optional[datetime] = None) -> Optional[AnalyticsResult]:
        """
        One refresh: load portfolio, fetch quotes, merge, recompute.
        """
        now = now or now_utc()
        portfolio: Optional[PortfolioInput] = None
        try:
            if self._portfolio_provider is not None:
                portfolio = await self._portfolio_provider.load_portfolio()
                self.track_symbols([h.symbol for h in portfolio.holdings])

            merge = await self.refresh_quotes(self.tracked_symbols())
        except Exception as exc:
            self._status.failures += 1
            self._status.last_error = str(exc)
            logger.warning("Quote refresh failed, keeping last snapshot: %s", exc)
            return None

        self._quote_cache.evict_expired(self._quote_expiry, now)
        self._status.cycles += 1
        self._status.last_cycle_at = now
        self._status.last_merge = merge.to_dict()

        if portfolio is None:
            return None

        previous = self._last_result.snapshot if self._last_result else None
        result = self._pipeline.run(
            portfolio.holdings,
            portfolio.cash,
            self._quote_cache,
            previous=previous,
            now=now,
            reported_nav=portfolio.reported_nav,
        )
        self._last_result = result

        if self._on_result is not None:
            await self._on_result(result)
        return result

    def get_status(self) -> Dict[str, object]:
        return {
            "tracked_symbols": self.tracked_symbols(),
            "cycles": self._status.cycles,
            "failures": self._status.failures,
            "last_cycle_at": self._status.last_cycle_at.isoformat() if self._status.last_cycle_at else None,
            "last_error": self._status.last_error,
            "last_merge": dict(self._status.last_merge),
            "cached_quotes": len(self._quote_cache),
        }
