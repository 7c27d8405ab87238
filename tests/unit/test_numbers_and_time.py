import pytest
from datetime import datetime, timezone
from decimal import Decimal

from papertrade.domain.errors import DegenerateAggregate, InvalidInput
from papertrade.utils.numbers import safe_percent, to_decimal
from papertrade.utils.time import ensure_aware, to_ist_iso


@pytest.mark.unit
def test_to_decimal_keeps_printed_float_value():
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(" 42 ") == Decimal("42")
    assert to_decimal(Decimal("1.50")) == Decimal("1.50")


@pytest.mark.unit
@pytest.mark.parametrize("value", [None, True, "abc", float("inf"), "NaN"])
def test_to_decimal_rejects(value):
    with pytest.raises(InvalidInput):
        to_decimal(value, "price")


@pytest.mark.unit
def test_safe_percent():
    assert safe_percent(Decimal("1"), Decimal("4")) == Decimal("25")
    assert safe_percent(Decimal("1"), Decimal("0")) == Decimal("0")
    with pytest.raises(DegenerateAggregate):
        safe_percent(Decimal("1"), Decimal("0"), strict=True)


@pytest.mark.unit
def test_naive_datetimes_are_utc():
    naive = datetime(2026, 3, 2, 4, 0)
    assert ensure_aware(naive).tzinfo is timezone.utc
    assert to_ist_iso(naive) == "2026-03-02T09:30:00+05:30"
