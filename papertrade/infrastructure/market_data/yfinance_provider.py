"""
YFinance Quote Source
Async-safe Yahoo Finance quotes for NSE-listed stocks
"""

import asyncio
import logging
import os
import random
from decimal import Decimal
from typing import Dict, List, Optional

import yfinance as yf

from papertrade.domain.models import Quote
from papertrade.utils.time import ensure_aware, now_utc

logger = logging.getLogger(__name__)


class YFinanceQuoteSource:
    """
    Yahoo Finance quote source for the refresh loop
    Blocking yfinance calls are offloaded to a thread
    """

    def __init__(self, symbol_suffix: str = ".NS", retries: int = 2):
        self.symbol_suffix = symbol_suffix
        self.retries = retries
        self.symbol_mapping: Dict[str, str] = {
            "NIFTY50": "^NSEI",
            "NIFTY 50": "^NSEI",
            "SENSEX": "^BSESN",
        }
        self._apply_symbol_overrides()

    def _apply_symbol_overrides(self) -> None:
        """
        Apply Yahoo symbol mapping overrides from env.

        Format: YF_SYMBOL_OVERRIDES="M&M=M&M.NS,BAJAJ-AUTO=BAJAJ-AUTO.NS"
        """
        raw = os.getenv("YF_SYMBOL_OVERRIDES", "").strip()
        if not raw:
            return
        for pair in raw.split(","):
            pair = pair.strip()
            if not pair or "=" not in pair:
                continue
            key, value = pair.split("=", 1)
            key = key.strip().upper()
            value = value.strip()
            if key and value:
                self.symbol_mapping[key] = value

    def yahoo_symbol(self, symbol: str) -> str:
        return self.symbol_mapping.get(symbol.upper(), f"{symbol}{self.symbol_suffix}")

    # ------------------------------------------------------------------
    # INTERNAL HELPERS
    # ------------------------------------------------------------------

    async def _history(self, ticker: yf.Ticker, **kwargs):
        """
        Async-safe wrapper around yfinance history()
        """
        return await asyncio.to_thread(ticker.history, **kwargs)

    async def _history_with_retry(self, ticker: yf.Ticker, **kwargs):
        """
        Retry wrapper around history() to handle transient failures.
        """
        last_exc: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            try:
                return await self._history(ticker, **kwargs)
            except Exception as exc:
                last_exc = exc
                if attempt == self.retries:
                    break
                await asyncio.sleep(0.4 * (2 ** attempt) + random.random() * 0.2)
        raise last_exc

    # ------------------------------------------------------------------
    # QUOTES
    # ------------------------------------------------------------------

    async def fetch_quote(self, symbol: str) -> Optional[Quote]:
        ticker = yf.Ticker(self.yahoo_symbol(symbol))
        hist = await self._history_with_retry(
            ticker,
            period="1d",
            interval="1m",
            auto_adjust=False,
        )

        if hist is None or hist.empty or "Close" not in hist:
            # NSE stocks outside market hours have no intraday bars
            hist = await self._history_with_retry(
                ticker,
                period="5d",
                interval="1d",
                auto_adjust=False,
            )

        if hist is None or hist.empty or "Close" not in hist:
            logger.warning(f"No price data for {symbol}")
            return None

        closes = hist["Close"].dropna()
        if closes.empty:
            return None

        price = Decimal(str(float(closes.iloc[-1])))
        if price <= 0:
            return None

        observed_at = closes.index[-1]
        if hasattr(observed_at, "to_pydatetime"):
            observed_at = ensure_aware(observed_at.to_pydatetime())
        else:
            observed_at = now_utc()

        return Quote(symbol=symbol, price=price, observed_at=observed_at)

    async def fetch_quotes(self, symbols: List[str]) -> List[Quote]:
        quotes: List[Quote] = []
        for symbol in symbols:
            try:
                quote = await self.fetch_quote(symbol)
            except Exception as e:
                logger.error(f"Error fetching quote for {symbol}: {e}")
                continue
            if quote is not None:
                quotes.append(quote)
        return quotes
