"""
VALUATION ENGINE (ENGINE-1)
Value one holding against its latest quote

RESPONSIBILITIES:
- Position value, cost basis, gain, gain %
- Stale / unpriced flags

RULES:
❌ No rounding (presentation rounds)
❌ No division by zero
✅ Pure calculation
✅ Unknown price falls back to average buy price
"""

from decimal import Decimal
from typing import Optional

from papertrade.domain.errors import InvalidInput
from papertrade.domain.models import DEFAULT_SECTOR, CachedQuote, Holding, PositionMetrics
from papertrade.utils.numbers import ZERO, safe_percent, to_decimal


class ValuationEngine:
    """
    Valuation Engine
    Computes position-level metrics, never touches portfolio totals
    """

    def valuate(self, holding: Holding, quote: Optional[CachedQuote]) -> PositionMetrics:
        """
        Value a single holding

        Args:
            holding: Raw position
            quote: Cached quote for the symbol, or None if never seen

        Returns:
            PositionMetrics at full precision (weight left at 0)

        Raises:
            InvalidInput: empty symbol, negative/non-integral quantity,
                negative average price or negative quote price
        """
        symbol, quantity, avg_buy_price = self._validate(holding)

        if quote is None:
            # No quote ever seen: show the position at cost
            price = avg_buy_price
            stale = False
            unpriced = True
            observed_at = None
        else:
            price = to_decimal(quote.price, "price")
            if price < ZERO:
                raise InvalidInput(f"Price cannot be negative: {price}", symbol=symbol)
            stale = bool(quote.stale)
            unpriced = False
            observed_at = quote.observed_at

        qty = Decimal(quantity)
        value = qty * price
        cost_basis = qty * avg_buy_price
        gain = value - cost_basis

        return PositionMetrics(
            symbol=symbol,
            sector=(holding.sector or "").strip() or DEFAULT_SECTOR,
            quantity=quantity,
            avg_buy_price=avg_buy_price,
            price=price,
            value=value,
            cost_basis=cost_basis,
            gain=gain,
            gain_percent=safe_percent(gain, cost_basis),
            stale=stale,
            unpriced=unpriced,
            stock_name=holding.stock_name,
            observed_at=observed_at,
        )

    def _validate(self, holding: Holding):
        symbol = (holding.symbol or "").strip() if isinstance(holding.symbol, str) else ""
        if not symbol:
            raise InvalidInput("Holding symbol cannot be empty")

        quantity = holding.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            quantity = to_decimal(quantity, "quantity")
            if quantity != quantity.to_integral_value():
                raise InvalidInput(f"Quantity must be a whole number: {holding.quantity}", symbol=symbol)
            quantity = int(quantity)
        if quantity < 0:
            raise InvalidInput(f"Quantity cannot be negative: {quantity}", symbol=symbol)

        avg_buy_price = to_decimal(holding.avg_buy_price, "avg_buy_price")
        if avg_buy_price < ZERO:
            raise InvalidInput(f"Average buy price cannot be negative: {avg_buy_price}", symbol=symbol)

        return symbol, quantity, avg_buy_price
