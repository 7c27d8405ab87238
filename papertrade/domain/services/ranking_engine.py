"""
RANKING ENGINE (ENGINE-4)
Deterministic ordered views over valued positions

One key function per SortKey plus a shared tie-break (symbol ascending),
so identical inputs always produce identical orderings.
"""

from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from papertrade.domain.models import PositionMetrics, SortDirection, SortKey


_PRIMARY_KEYS: Dict[SortKey, Callable[[PositionMetrics], object]] = {
    SortKey.ALPHABETIC: lambda p: p.symbol.casefold(),
    SortKey.GAIN_LOSS_PERCENT: lambda p: p.gain_percent,
    SortKey.WEIGHT: lambda p: p.weight,
}


class RankingEngine:
    """Orders positions by alphabet, gain/loss % or weight"""

    def rank(
        self,
        positions: Sequence[PositionMetrics],
        key: SortKey,
        direction: SortDirection = SortDirection.DESC,
    ) -> List[PositionMetrics]:
        """
        Sort positions on the raw (unrounded) metric

        Ties on the primary key always fall back to symbol ascending,
        whatever the direction.
        """
        key = SortKey(key)
        direction = SortDirection(direction)
        primary = _PRIMARY_KEYS[key]

        # Python's sort is stable (also with reverse=True), so sorting by the
        # tie-break first leaves equal primaries in symbol order.
        by_symbol = sorted(positions, key=lambda p: p.symbol)
        return sorted(by_symbol, key=primary, reverse=direction is SortDirection.DESC)

    def rank_views(
        self,
        positions: Sequence[PositionMetrics],
        selections: Optional[Iterable[Tuple[SortKey, SortDirection]]] = None,
    ) -> Dict[SortKey, Tuple[PositionMetrics, ...]]:
        """
        Build one ordered view per selected key

        Args:
            positions: Weighted positions from the aggregator
            selections: (key, direction) pairs; defaults to every key descending
        """
        if selections is None:
            selections = [(key, SortDirection.DESC) for key in SortKey]

        views: Dict[SortKey, Tuple[PositionMetrics, ...]] = {}
        for key, direction in selections:
            views[SortKey(key)] = tuple(self.rank(positions, key, direction))
        return views
