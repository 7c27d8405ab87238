"""
NAV RECONCILER
Cross-check the computed total value against the backend-reported NAV

The backend keeps its own total_value per portfolio. It is authoritative when
the client could not price a single position, and otherwise serves as a
sanity check for drift between the two computations.
"""

import logging
from decimal import Decimal
from typing import Optional

from papertrade.domain.models import NavCheck, PortfolioSnapshot
from papertrade.utils.numbers import ZERO, safe_percent, to_decimal

logger = logging.getLogger(__name__)

SOURCE_COMPUTED = "computed"
SOURCE_REPORTED = "reported"


class NavReconciler:
    def __init__(self, tolerance_pct: Decimal = Decimal("0.5")):
        self.tolerance_pct = tolerance_pct

    def reconcile(self, snapshot: PortfolioSnapshot, reported_nav=None) -> NavCheck:
        computed = snapshot.total_value
        reported: Optional[Decimal] = None
        if reported_nav is not None:
            reported = to_decimal(reported_nav, "reported_nav")

        if reported is None:
            return NavCheck(
                computed=computed,
                reported=None,
                difference=ZERO,
                difference_percent=ZERO,
                within_tolerance=True,
                display_total=computed,
                source=SOURCE_COMPUTED,
            )

        difference = computed - reported
        difference_percent = safe_percent(difference, reported)
        within = abs(difference_percent) <= self.tolerance_pct
        if reported == ZERO:
            within = difference == ZERO

        nothing_priced = bool(snapshot.positions) and all(p.unpriced for p in snapshot.positions)
        source = SOURCE_REPORTED if nothing_priced else SOURCE_COMPUTED

        if not within:
            logger.warning(
                "NAV drift | computed=%s reported=%s diff_pct=%s",
                computed,
                reported,
                difference_percent,
            )

        return NavCheck(
            computed=computed,
            reported=reported,
            difference=difference,
            difference_percent=difference_percent,
            within_tolerance=within,
            display_total=reported if source == SOURCE_REPORTED else computed,
            source=source,
        )
