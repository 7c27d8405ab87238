"""
PORTFOLIO AGGREGATOR (ENGINE-2)
Roll valued positions up into a portfolio snapshot

RESPONSIBILITIES:
- Portfolio totals (value incl. cash, cost, gain, gain %)
- Per-position weight and overweight flag
- Sector buckets in first-seen order

RULES:
❌ Weight is computed here and nowhere else
❌ Closed positions never reach the totals
✅ Zero denominators resolve to 0
"""

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from papertrade.domain.errors import InvalidBatch, InvalidInput
from papertrade.domain.models import (
    PortfolioSnapshot,
    PositionMetrics,
    RejectedHolding,
    SectorBucket,
)
from papertrade.utils.numbers import ZERO, safe_percent, to_decimal

logger = logging.getLogger(__name__)


class PortfolioAggregator:
    """
    Portfolio Aggregator
    Single place where weight and sector concentration are derived
    """

    def __init__(self, overweight_threshold_pct: Decimal = Decimal("30")):
        self.overweight_threshold_pct = overweight_threshold_pct

    def aggregate(
        self,
        positions: Sequence[PositionMetrics],
        cash,
        rejected: Sequence[RejectedHolding] = (),
        as_of: Optional[datetime] = None,
    ) -> PortfolioSnapshot:
        """
        Build the portfolio snapshot

        Args:
            positions: Valued positions (closed ones are dropped)
            cash: Uninvested cash, included in total value
            rejected: Holdings that failed validation, carried for display
            as_of: Cycle timestamp

        Returns:
            PortfolioSnapshot without a diversification result
        """
        if not isinstance(positions, (list, tuple)):
            raise InvalidBatch(f"Positions must be a list, got {type(positions).__name__}")
        cash_value = self._validate_cash(cash)

        open_positions = [p for p in positions if not p.is_closed]
        if len(open_positions) != len(positions):
            logger.debug("Dropped %d closed positions", len(positions) - len(open_positions))

        holdings_value = sum((p.value for p in open_positions), ZERO)
        total_cost = sum((p.cost_basis for p in open_positions), ZERO)
        total_gain = sum((p.gain for p in open_positions), ZERO)
        total_value = holdings_value + cash_value

        weighted = tuple(
            self._weigh(p, total_value) for p in open_positions
        )

        return PortfolioSnapshot(
            cash=cash_value,
            holdings_value=holdings_value,
            total_value=total_value,
            total_cost=total_cost,
            total_gain=total_gain,
            total_gain_percent=safe_percent(total_gain, total_cost),
            sector_buckets=tuple(self._sector_buckets(open_positions, total_value)),
            positions=weighted,
            rejected=tuple(rejected),
            as_of=as_of,
        )

    def _weigh(self, position: PositionMetrics, total_value: Decimal) -> PositionMetrics:
        weight = safe_percent(position.value, total_value)
        return replace(
            position,
            weight=weight,
            overweight=weight > self.overweight_threshold_pct,
        )

    def _sector_buckets(
        self,
        positions: Sequence[PositionMetrics],
        total_value: Decimal,
    ) -> List[SectorBucket]:
        # dict keeps first-occurrence order
        sector_values: Dict[str, Decimal] = {}
        for position in positions:
            sector_values[position.sector] = sector_values.get(position.sector, ZERO) + position.value

        buckets = []
        for sector, value in sector_values.items():
            percent = safe_percent(value, total_value)
            buckets.append(
                SectorBucket(
                    sector=sector,
                    value=value,
                    percent_of_portfolio=percent,
                    overweight=percent > self.overweight_threshold_pct,
                )
            )
        return buckets

    @staticmethod
    def _validate_cash(cash) -> Decimal:
        try:
            value = to_decimal(cash, "cash")
        except InvalidInput as exc:
            raise InvalidBatch(exc.message) from exc
        if value < ZERO:
            raise InvalidBatch(f"Cash cannot be negative: {value}")
        return value
