"""
In-memory quote cache with timestamp-ordered last-write-wins merges.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Tuple

from papertrade.domain.errors import InvalidBatch, InvalidInput, StaleQuote, UnknownPrice
from papertrade.domain.models import CachedQuote, Quote
from papertrade.utils.time import ensure_aware, now_utc

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    applied: List[str] = field(default_factory=list)
    discarded: List[str] = field(default_factory=list)
    rejected: List[Tuple[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "applied": len(self.applied),
            "discarded": len(self.discarded),
            "rejected": [{"symbol": s, "reason": r} for s, r in self.rejected],
        }


class QuoteCache:
    """
    Latest known price per symbol.

    The only stateful piece of the analytics engine. Each write replaces a
    single dict entry under the lock, so readers never see a half-merged quote.
    """

    def __init__(
        self,
        freshness_window: timedelta = timedelta(seconds=60),
        max_future_skew: timedelta = timedelta(seconds=60),
    ):
        self._last_quotes: Dict[str, Quote] = {}
        self._freshness_window = freshness_window
        self._max_future_skew = max_future_skew
        self._lock = threading.Lock()

    @property
    def freshness_window(self) -> timedelta:
        return self._freshness_window

    @staticmethod
    def validate(quote: Quote) -> Quote:
        if not isinstance(quote, Quote):
            raise InvalidInput(f"Expected a Quote, got {type(quote).__name__}")
        if not isinstance(quote.symbol, str) or not quote.symbol.strip():
            raise InvalidInput("Quote symbol cannot be empty")
        try:
            price = Decimal(str(quote.price))
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidInput(f"Quote price is not numeric: {quote.price!r}", symbol=quote.symbol)
        if not price.is_finite() or price <= Decimal("0"):
            raise InvalidInput(f"Quote price must be positive: {quote.price}", symbol=quote.symbol)
        if not isinstance(quote.observed_at, datetime):
            raise InvalidInput("Quote timestamp must be a datetime", symbol=quote.symbol)
        return Quote(
            symbol=quote.symbol.strip(),
            price=price,
            observed_at=ensure_aware(quote.observed_at),
        )

    def merge(self, quote: Quote, now: Optional[datetime] = None) -> bool:
        """
        Store the quote unless an equal-or-newer one is already cached.

        Returns True when the quote was applied. Out-of-order arrivals are
        dropped without error. Quotes dated more than the allowed clock skew
        past now raise InvalidInput.
        """
        quote = self.validate(quote)
        now = ensure_aware(now) if now is not None else now_utc()
        if quote.observed_at > now + self._max_future_skew:
            raise InvalidInput(
                f"Quote timestamp {quote.observed_at.isoformat()} is in the future",
                symbol=quote.symbol,
            )
        with self._lock:
            current = self._last_quotes.get(quote.symbol)
            if current is not None and quote.observed_at <= current.observed_at:
                logger.debug(
                    "Discarding out-of-order quote for %s (%s <= %s)",
                    quote.symbol,
                    quote.observed_at.isoformat(),
                    current.observed_at.isoformat(),
                )
                return False
            self._last_quotes[quote.symbol] = quote
        return True

    def merge_batch(self, quotes: Iterable[Quote], now: Optional[datetime] = None) -> MergeResult:
        if not isinstance(quotes, (list, tuple)):
            raise InvalidBatch(f"Quote batch must be a list, got {type(quotes).__name__}")

        result = MergeResult()
        for quote in quotes:
            symbol = str(getattr(quote, "symbol", "") or "")
            try:
                applied = self.merge(quote, now)
            except InvalidInput as exc:
                logger.warning("Rejected quote %s: %s", symbol or "<empty>", exc.message)
                result.rejected.append((symbol, exc.message))
                continue
            if applied:
                result.applied.append(symbol)
            else:
                result.discarded.append(symbol)
        return result

    def get(
        self,
        symbol: str,
        freshness_window: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> Optional[CachedQuote]:
        """
        Latest quote annotated with staleness, or None when never seen.
        """
        quote = self._last_quotes.get(symbol)
        if quote is None:
            return None
        window = freshness_window if freshness_window is not None else self._freshness_window
        now = ensure_aware(now) if now is not None else now_utc()
        return CachedQuote(
            symbol=quote.symbol,
            price=quote.price,
            observed_at=quote.observed_at,
            stale=(now - quote.observed_at) > window,
        )

    def require_fresh(
        self,
        symbol: str,
        freshness_window: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> CachedQuote:
        """Strict lookup for callers that cannot use a stale or missing price."""
        cached = self.get(symbol, freshness_window, now)
        if cached is None:
            raise UnknownPrice(f"No quote seen for {symbol}", symbol=symbol)
        if cached.stale:
            raise StaleQuote(
                f"Quote for {symbol} observed at {cached.observed_at.isoformat()} is stale",
                symbol=symbol,
            )
        return cached

    def get_last_prices(self, symbols: List[str]) -> Dict[str, Decimal]:
        prices: Dict[str, Decimal] = {}
        for symbol in symbols:
            quote = self._last_quotes.get(symbol)
            if quote is not None:
                prices[symbol] = quote.price
        return prices

    def evict_expired(self, max_age: timedelta, now: Optional[datetime] = None) -> List[str]:
        now = ensure_aware(now) if now is not None else now_utc()
        with self._lock:
            expired = [
                symbol
                for symbol, quote in self._last_quotes.items()
                if (now - quote.observed_at) > max_age
            ]
            for symbol in expired:
                del self._last_quotes[symbol]
        if expired:
            logger.info("Evicted %d expired quotes", len(expired))
        return expired

    def symbols(self) -> List[str]:
        return list(self._last_quotes.keys())

    def __len__(self) -> int:
        return len(self._last_quotes)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._last_quotes

    def get_status(self, now: Optional[datetime] = None) -> Dict[str, object]:
        now = ensure_aware(now) if now is not None else now_utc()
        status = {}
        for symbol, quote in list(self._last_quotes.items()):
            age = (now - quote.observed_at).total_seconds()
            status[symbol] = {
                "price": float(quote.price),
                "ts": quote.observed_at.isoformat(),
                "age_seconds": age,
                "stale": age > self._freshness_window.total_seconds(),
            }
        return status
