"""
Quote source protocol for type hints.
"""

from __future__ import annotations

from typing import List, Protocol

from papertrade.domain.models import Quote


class QuoteSource(Protocol):
    async def fetch_quotes(self, symbols: List[str]) -> List[Quote]:
        ...
