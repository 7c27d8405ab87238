"""
Presentation formatters.

Engines keep full precision; everything shown to a user is rounded here,
two decimals for money and for percentages.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from papertrade.domain.models import (
    AnalyticsResult,
    NavCheck,
    PerformanceSummary,
    PortfolioDelta,
    PortfolioSnapshot,
    PositionMetrics,
    RankedEntry,
)
from papertrade.utils.time import to_ist_iso

TWO_PLACES = Decimal("0.01")


def _quantize(value: Decimal) -> Decimal:
    amount = Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    # -0.004 quantizes to Decimal("-0.00")
    if amount == 0:
        amount = abs(amount)
    return amount


def round_money(value: Decimal) -> float:
    return float(_quantize(value))


def round_pct(value: Decimal) -> float:
    return float(_quantize(value))


def _group_indian(digits: str) -> str:
    # 1234567 -> 12,34,567
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups) + "," + tail


def format_inr(value: Decimal) -> str:
    amount = _quantize(value)
    sign = "-" if amount < 0 else ""
    whole, _, fraction = f"{abs(amount):.2f}".partition(".")
    return f"{sign}₹{_group_indian(whole)}.{fraction}"


def format_signed_pct(value: Decimal) -> str:
    pct = _quantize(value)
    sign = "+" if pct >= 0 else ""
    return f"{sign}{pct:.2f}%"


def position_to_dict(position: PositionMetrics) -> Dict[str, Any]:
    return {
        "symbol": position.symbol,
        "stock_name": position.stock_name,
        "sector": position.sector,
        "quantity": position.quantity,
        "avg_buy_price": round_money(position.avg_buy_price),
        "current_price": round_money(position.price),
        "current_value": round_money(position.value),
        "cost_basis": round_money(position.cost_basis),
        "gain_loss": round_money(position.gain),
        "gain_loss_percent": round_pct(position.gain_percent),
        "weight": round_pct(position.weight),
        "overweight": position.overweight,
        "stale": position.stale,
        "unpriced": position.unpriced,
        "price_status": position.price_status.value,
        "observed_at": to_ist_iso(position.observed_at) if position.observed_at else None,
    }


def snapshot_to_dict(snapshot: PortfolioSnapshot) -> Dict[str, Any]:
    diversification = snapshot.diversification
    return {
        "as_of": to_ist_iso(snapshot.as_of) if snapshot.as_of else None,
        "cash": round_money(snapshot.cash),
        "holdings_value": round_money(snapshot.holdings_value),
        "total_value": round_money(snapshot.total_value),
        "total_cost": round_money(snapshot.total_cost),
        "total_gain_loss": round_money(snapshot.total_gain),
        "total_gain_loss_percent": round_pct(snapshot.total_gain_percent),
        "holdings_count": snapshot.holdings_count,
        "sector_allocation": [
            {
                "sector": bucket.sector,
                "value": round_money(bucket.value),
                "percent": round_pct(bucket.percent_of_portfolio),
                "overweight": bucket.overweight,
            }
            for bucket in snapshot.sector_buckets
        ],
        "diversification": {
            "score": float(diversification.score),
            "overweight_sectors": list(diversification.overweight_sectors),
        } if diversification else None,
        "positions": [position_to_dict(p) for p in snapshot.positions],
        "rejected": [{"symbol": r.symbol, "reason": r.reason} for r in snapshot.rejected],
        "stale_symbols": list(snapshot.stale_symbols),
        "unpriced_symbols": list(snapshot.unpriced_symbols),
    }


def delta_to_dict(delta: Optional[PortfolioDelta]) -> Optional[Dict[str, Any]]:
    if delta is None:
        return None
    return {
        "absolute": round_money(delta.absolute),
        "percent": round_pct(delta.percent),
        "has_previous": delta.has_previous,
    }


def nav_check_to_dict(check: Optional[NavCheck]) -> Optional[Dict[str, Any]]:
    if check is None:
        return None
    return {
        "computed": round_money(check.computed),
        "reported": round_money(check.reported) if check.reported is not None else None,
        "difference": round_money(check.difference),
        "difference_percent": round_pct(check.difference_percent),
        "within_tolerance": check.within_tolerance,
        "display_total": round_money(check.display_total),
        "source": check.source,
    }


def result_to_dict(result: AnalyticsResult) -> Dict[str, Any]:
    return {
        "snapshot": snapshot_to_dict(result.snapshot),
        "rankings": {
            key.value: [p.symbol for p in positions]
            for key, positions in result.rankings.items()
        },
        "delta": delta_to_dict(result.delta),
        "nav_check": nav_check_to_dict(result.nav_check),
    }


def leaderboard_to_list(rows: List[RankedEntry]) -> List[Dict[str, Any]]:
    return [
        {
            "rank": row.rank,
            "user_id": row.user_id,
            "alias": row.alias,
            "portfolio_return": round_pct(row.portfolio_return),
            "badges_count": row.badges_count,
            "login_streak": row.login_streak,
        }
        for row in rows
    ]


def performance_to_dict(summary: PerformanceSummary) -> Dict[str, Any]:
    return {
        "period": summary.period.value,
        "start_date": summary.start_date.isoformat(),
        "points": [
            {
                "date": point.date.isoformat(),
                "total_value": round_money(point.total_value),
                "total_gain": round_money(point.total_gain),
                "total_gain_percent": round_pct(point.total_gain_percent),
            }
            for point in summary.points
        ],
        "delta": delta_to_dict(summary.delta),
    }


def format_snapshot_text(snapshot: PortfolioSnapshot) -> str:
    lines = [
        f"Total Portfolio Value: {format_inr(snapshot.total_value)}",
        f"All time: {format_inr(snapshot.total_gain)} ({format_signed_pct(snapshot.total_gain_percent)})",
        f"Cash: {format_inr(snapshot.cash)} | Holdings: {snapshot.holdings_count}",
    ]
    if snapshot.diversification is not None:
        lines.append(f"Diversification Score: {snapshot.diversification.score:g}/10")

    for bucket in snapshot.sector_buckets:
        marker = " ⚠️ overweight" if bucket.overweight else ""
        lines.append(f"  {bucket.sector}: {round_pct(bucket.percent_of_portfolio):.2f}%{marker}")

    for position in snapshot.positions:
        flag = ""
        if position.unpriced:
            flag = " [no live price]"
        elif position.stale:
            flag = " [stale]"
        lines.append(
            f"  {position.symbol}: {format_inr(position.value)} "
            f"({format_signed_pct(position.gain_percent)}){flag}"
        )

    for rejected in snapshot.rejected:
        lines.append(f"  ❌ {rejected.symbol or '<unknown>'}: {rejected.reason}")

    return "\n".join(lines)
