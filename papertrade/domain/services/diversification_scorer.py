"""
DIVERSIFICATION SCORER (ENGINE-3)
Sector concentration heuristic on a 0-10 scale

Policy:
- Start at the maximum score (10)
- Subtract one point per overweight sector (> 30%)
- Subtract one more point if the largest sector exceeds 50%
- Clamp to [0, 10]

More concentration never raises the score.
"""

from decimal import Decimal
from typing import Sequence

from papertrade.domain.models import DiversificationResult, SectorBucket


class DiversificationScorer:
    """Scores concentration risk from sector buckets"""

    def __init__(
        self,
        dominant_threshold_pct: Decimal = Decimal("50"),
        max_score: Decimal = Decimal("10"),
        min_score: Decimal = Decimal("0"),
        overweight_penalty: Decimal = Decimal("1"),
        dominant_penalty: Decimal = Decimal("1"),
    ):
        self.dominant_threshold_pct = dominant_threshold_pct
        self.max_score = max_score
        self.min_score = min_score
        self.overweight_penalty = overweight_penalty
        self.dominant_penalty = dominant_penalty

    def score(self, sector_buckets: Sequence[SectorBucket]) -> DiversificationResult:
        overweight = tuple(b.sector for b in sector_buckets if b.overweight)

        score = self.max_score - self.overweight_penalty * len(overweight)

        if sector_buckets:
            largest = max(b.percent_of_portfolio for b in sector_buckets)
            if largest > self.dominant_threshold_pct:
                score -= self.dominant_penalty

        score = max(self.min_score, min(score, self.max_score))
        return DiversificationResult(score=score, overweight_sectors=overweight)
