"""
Unit Tests for Valuation Engine
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from papertrade.domain.errors import InvalidInput
from papertrade.domain.models import CachedQuote, Holding, PriceStatus
from papertrade.domain.services.valuation_engine import ValuationEngine


OBSERVED = datetime(2026, 3, 2, 9, 29, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    return ValuationEngine()


def _quote(symbol, price, stale=False):
    return CachedQuote(symbol=symbol, price=Decimal(price), observed_at=OBSERVED, stale=stale)


@pytest.mark.unit
class TestValuationEngine:

    def test_gain_position(self, engine):
        holding = Holding("TCS", 10, Decimal("3000"), sector="IT")
        metrics = engine.valuate(holding, _quote("TCS", "3200"))

        assert metrics.value == Decimal("32000")
        assert metrics.cost_basis == Decimal("30000")
        assert metrics.gain == Decimal("2000")
        assert metrics.gain_percent.quantize(Decimal("0.01")) == Decimal("6.67")
        assert metrics.price_status is PriceStatus.LIVE
        assert metrics.weight == Decimal("0")

    def test_loss_position(self, engine):
        holding = Holding("HDFC", 5, Decimal("1500"), sector="Financials")
        metrics = engine.valuate(holding, _quote("HDFC", "1400"))

        assert metrics.value == Decimal("7000")
        assert metrics.gain == Decimal("-500")
        assert metrics.gain_percent.quantize(Decimal("0.01")) == Decimal("-6.67")

    def test_full_precision_kept(self, engine):
        holding = Holding("INFY", 3, Decimal("0.1"))
        metrics = engine.valuate(holding, _quote("INFY", "0.2"))

        assert metrics.value == Decimal("0.6")
        assert metrics.gain_percent == Decimal("100")

    def test_zero_cost_basis_gives_zero_percent(self, engine):
        holding = Holding("BONUS", 4, Decimal("0"))
        metrics = engine.valuate(holding, _quote("BONUS", "50"))

        assert metrics.value == Decimal("200")
        assert metrics.gain == Decimal("200")
        assert metrics.gain_percent == Decimal("0")

    def test_missing_quote_falls_back_to_cost(self, engine):
        holding = Holding("WIPRO", 8, Decimal("450"))
        metrics = engine.valuate(holding, None)

        assert metrics.unpriced is True
        assert metrics.price == Decimal("450")
        assert metrics.value == metrics.cost_basis
        assert metrics.gain == Decimal("0")
        assert metrics.price_status is PriceStatus.UNPRICED

    def test_stale_quote_still_values_position(self, engine):
        holding = Holding("TCS", 2, Decimal("3000"))
        metrics = engine.valuate(holding, _quote("TCS", "3100", stale=True))

        assert metrics.stale is True
        assert metrics.value == Decimal("6200")
        assert metrics.price_status is PriceStatus.STALE
        assert metrics.observed_at == OBSERVED

    def test_zero_quantity_is_closed(self, engine):
        metrics = engine.valuate(Holding("SOLD", 0, Decimal("100")), _quote("SOLD", "120"))

        assert metrics.is_closed
        assert metrics.value == Decimal("0")

    def test_blank_sector_defaults_to_other(self, engine):
        metrics = engine.valuate(Holding("X", 1, Decimal("1"), sector="  "), _quote("X", "1"))
        assert metrics.sector == "Other"

    def test_float_inputs_are_converted_by_value(self, engine):
        metrics = engine.valuate(Holding("X", 3, 0.1), _quote("X", "0.1"))
        assert metrics.cost_basis == Decimal("0.3")

    @pytest.mark.parametrize(
        "holding",
        [
            Holding("", 1, Decimal("10")),
            Holding("ABC", -1, Decimal("10")),
            Holding("ABC", Decimal("1.5"), Decimal("10")),
            Holding("ABC", 1, Decimal("-10")),
            Holding("ABC", 1, "ten"),
            Holding("ABC", True, Decimal("10")),
        ],
    )
    def test_invalid_holdings_raise(self, engine, holding):
        with pytest.raises(InvalidInput):
            engine.valuate(holding, None)

    def test_negative_quote_price_raises(self, engine):
        with pytest.raises(InvalidInput) as exc:
            engine.valuate(Holding("ABC", 1, Decimal("10")), _quote("ABC", "-1"))
        assert exc.value.symbol == "ABC"
