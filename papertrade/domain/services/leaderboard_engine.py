"""
LEADERBOARD ENGINE
Rank paper-trading portfolios by return on their starting budget
"""

from decimal import Decimal
from typing import List, Sequence

from papertrade.domain.models import LeaderboardEntry, RankedEntry
from papertrade.utils.numbers import ZERO, safe_percent, to_decimal

ANONYMOUS_ALIAS = "Anonymous"


class LeaderboardEngine:
    """
    Ordering: return desc, badges desc, login streak desc,
    then alias and user id ascending so the order is total.
    """

    def portfolio_return(self, entry: LeaderboardEntry) -> Decimal:
        budget = to_decimal(entry.budget_amount, "budget_amount")
        value = to_decimal(entry.total_value, "total_value")
        if budget <= ZERO:
            return ZERO
        return safe_percent(value - budget, budget)

    def rank(self, entries: Sequence[LeaderboardEntry]) -> List[RankedEntry]:
        rows = [
            (
                self.portfolio_return(entry),
                entry,
                (entry.alias or "").strip() or ANONYMOUS_ALIAS,
            )
            for entry in entries
        ]

        rows.sort(
            key=lambda row: (
                -row[0],
                -row[1].badges_count,
                -row[1].login_streak,
                row[2].casefold(),
                row[1].user_id,
            )
        )

        return [
            RankedEntry(
                rank=index + 1,
                user_id=entry.user_id,
                alias=alias,
                portfolio_return=ret,
                badges_count=entry.badges_count,
                login_streak=entry.login_streak,
            )
            for index, (ret, entry, alias) in enumerate(rows)
        ]
