"""Decimal helpers shared by the analytics engines."""

from decimal import Decimal, InvalidOperation
from typing import Any

from papertrade.domain.errors import DegenerateAggregate, InvalidInput

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any, field_name: str = "value") -> Decimal:
    """
    Convert int/float/str/Decimal to Decimal via str() so that floats keep
    their printed value (0.1 -> Decimal("0.1")).
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        raise InvalidInput(f"{field_name} must be numeric, got {value!r}")
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidInput(f"{field_name} must be numeric, got {value!r}")
    if not result.is_finite():
        raise InvalidInput(f"{field_name} must be finite, got {value!r}")
    return result


def safe_percent(numerator: Decimal, denominator: Decimal, strict: bool = False) -> Decimal:
    """
    numerator / denominator * 100, or 0 when the denominator is zero.

    With strict=True a zero denominator raises DegenerateAggregate instead.
    """
    if denominator == ZERO:
        if strict:
            raise DegenerateAggregate("Percentage over a zero denominator")
        return ZERO
    return numerator / denominator * HUNDRED
