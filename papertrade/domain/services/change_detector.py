"""
CHANGE DETECTOR (ENGINE-5)
Period-over-period change in total portfolio value
"""

from decimal import Decimal
from typing import Optional, Protocol

from papertrade.domain.models import PortfolioDelta
from papertrade.utils.numbers import ZERO, safe_percent


class HasTotalValue(Protocol):
    total_value: Decimal


class ChangeDetector:
    """Compares a snapshot with the one before it"""

    def delta(
        self,
        current: HasTotalValue,
        previous: Optional[HasTotalValue],
    ) -> PortfolioDelta:
        """
        Absolute and percentage change in total value

        A missing previous snapshot is a first observation (no change).
        A previous total of 0 still yields the absolute change, percent 0.
        """
        if previous is None:
            return PortfolioDelta(absolute=ZERO, percent=ZERO, has_previous=False)

        absolute = current.total_value - previous.total_value
        return PortfolioDelta(
            absolute=absolute,
            percent=safe_percent(absolute, previous.total_value),
            has_previous=True,
        )
