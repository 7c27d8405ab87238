"""
PERFORMANCE ENGINE
Portfolio history windows for the performance chart
"""

import calendar
from datetime import date, timedelta
from typing import Optional, Sequence

from papertrade.domain.models import (
    HistoryPeriod,
    HistoryPoint,
    PerformanceSummary,
    PortfolioDelta,
)
from papertrade.domain.services.change_detector import ChangeDetector
from papertrade.utils.numbers import ZERO

ALL_TIME_START = date(2020, 1, 1)


def _months_back(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def period_start(period: HistoryPeriod, today: date) -> date:
    """First date included in the period window"""
    period = HistoryPeriod(period)
    if period is HistoryPeriod.ONE_DAY:
        return today - timedelta(days=1)
    if period is HistoryPeriod.ONE_WEEK:
        return today - timedelta(days=7)
    if period is HistoryPeriod.ONE_MONTH:
        return _months_back(today, 1)
    if period is HistoryPeriod.THREE_MONTHS:
        return _months_back(today, 3)
    if period is HistoryPeriod.ONE_YEAR:
        return _months_back(today, 12)
    return ALL_TIME_START


class PerformanceEngine:
    def __init__(self, change_detector: Optional[ChangeDetector] = None):
        self.change_detector = change_detector or ChangeDetector()

    def summarize(
        self,
        points: Sequence[HistoryPoint],
        period: HistoryPeriod,
        today: date,
    ) -> PerformanceSummary:
        """
        Points inside the window, oldest first, with the change from the
        first to the last point.
        """
        start = period_start(period, today)
        window = tuple(
            sorted(
                (p for p in points if start <= p.date <= today),
                key=lambda p: p.date,
            )
        )

        if len(window) < 2:
            delta = PortfolioDelta(absolute=ZERO, percent=ZERO, has_previous=False)
        else:
            delta = self.change_detector.delta(window[-1], window[0])

        return PerformanceSummary(
            period=HistoryPeriod(period),
            start_date=start,
            points=window,
            delta=delta,
        )
