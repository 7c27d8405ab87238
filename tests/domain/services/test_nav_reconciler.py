import pytest
from decimal import Decimal

from papertrade.domain.errors import InvalidInput
from papertrade.domain.models import PortfolioSnapshot, PositionMetrics
from papertrade.domain.services.nav_reconciler import (
    SOURCE_COMPUTED,
    SOURCE_REPORTED,
    NavReconciler,
)


def _snapshot(total, unpriced=(False,)):
    total = Decimal(total)
    positions = tuple(
        PositionMetrics(
            symbol=f"S{i}",
            sector="Other",
            quantity=1,
            avg_buy_price=Decimal("1"),
            price=Decimal("1"),
            value=Decimal("1"),
            cost_basis=Decimal("1"),
            gain=Decimal("0"),
            gain_percent=Decimal("0"),
            unpriced=flag,
        )
        for i, flag in enumerate(unpriced)
    )
    return PortfolioSnapshot(
        cash=Decimal("0"),
        holdings_value=total,
        total_value=total,
        total_cost=total,
        total_gain=Decimal("0"),
        total_gain_percent=Decimal("0"),
        positions=positions,
    )


@pytest.fixture
def reconciler():
    return NavReconciler(tolerance_pct=Decimal("0.5"))


@pytest.mark.unit
class TestNavReconciler:

    def test_no_reported_nav(self, reconciler):
        check = reconciler.reconcile(_snapshot("40000"))

        assert check.reported is None
        assert check.within_tolerance is True
        assert check.display_total == Decimal("40000")
        assert check.source == SOURCE_COMPUTED

    def test_within_tolerance(self, reconciler):
        check = reconciler.reconcile(_snapshot("40100"), "40000")

        assert check.difference == Decimal("100")
        assert check.difference_percent == Decimal("0.25")
        assert check.within_tolerance is True
        assert check.display_total == Decimal("40100")

    def test_drift_outside_tolerance(self, reconciler):
        check = reconciler.reconcile(_snapshot("39000"), Decimal("40000"))

        assert check.difference_percent == Decimal("-2.5")
        assert check.within_tolerance is False
        assert check.source == SOURCE_COMPUTED

    def test_reported_used_when_nothing_priced(self, reconciler):
        check = reconciler.reconcile(_snapshot("30000", unpriced=(True, True)), "41000")

        assert check.source == SOURCE_REPORTED
        assert check.display_total == Decimal("41000")

    def test_computed_kept_when_some_priced(self, reconciler):
        check = reconciler.reconcile(_snapshot("30000", unpriced=(True, False)), "41000")
        assert check.source == SOURCE_COMPUTED

    def test_reported_zero(self, reconciler):
        assert reconciler.reconcile(_snapshot("0", unpriced=()), 0).within_tolerance is True
        assert reconciler.reconcile(_snapshot("10", unpriced=()), 0).within_tolerance is False

    def test_invalid_reported_nav(self, reconciler):
        with pytest.raises(InvalidInput):
            reconciler.reconcile(_snapshot("100"), "n/a")
