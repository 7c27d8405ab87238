"""
Analytics API Routes
Snapshot, quote, leaderboard and performance endpoints over the pure engine
"""

from dataclasses import dataclass
from decimal import Decimal

from fastapi import APIRouter, Depends, Request

from papertrade.domain.errors import InvalidBatch, InvalidInput
from papertrade.domain.models import HistoryPoint, LeaderboardEntry
from papertrade.domain.schemas.analytics import (
    LeaderboardRequest,
    LeaderboardResponse,
    PerformanceRequest,
    PerformanceResponse,
    QuoteBatchRequest,
    QuoteMergeSchema,
    SnapshotRequest,
    SnapshotResponse,
)
from papertrade.domain.services.analytics_pipeline import (
    AnalyticsPipeline,
    holdings_from_records,
    quotes_from_records,
)
from papertrade.domain.services.leaderboard_engine import LeaderboardEngine
from papertrade.domain.services.performance_engine import PerformanceEngine
from papertrade.infrastructure.market_data.quote_store import QuoteCache
from papertrade.presentation.formatters import (
    leaderboard_to_list,
    performance_to_dict,
    result_to_dict,
)
from papertrade.utils.numbers import to_decimal
from papertrade.utils.time import ensure_aware, now_utc, to_ist

router = APIRouter()


@dataclass(frozen=True)
class _PriorTotal:
    total_value: Decimal


def get_quote_cache(request: Request) -> QuoteCache:
    return request.app.state.quote_cache


def get_pipeline(request: Request) -> AnalyticsPipeline:
    return request.app.state.pipeline


def _track(request: Request, symbols) -> None:
    runtime = getattr(request.app.state, "refresh_runtime", None)
    if runtime is not None:
        runtime.track_symbols(symbols)


def _merge_quotes(quote_cache: QuoteCache, records, now) -> dict:
    quotes, parse_rejects = quotes_from_records(records, now=now)
    merge = quote_cache.merge_batch(quotes)
    merge.rejected = [(r.symbol, r.reason) for r in parse_rejects] + merge.rejected
    return merge.to_dict()


@router.post("/snapshot", response_model=SnapshotResponse)
async def compute_snapshot(
    payload: SnapshotRequest,
    request: Request,
    quote_cache: QuoteCache = Depends(get_quote_cache),
    pipeline: AnalyticsPipeline = Depends(get_pipeline),
):
    """
    Value holdings against the cached quotes (plus any quotes in the request)

    Returns totals, weights, sector allocation, diversification score,
    ranked symbol lists and the change against the previous total.
    """
    now = ensure_aware(payload.as_of) if payload.as_of else now_utc()
    merge = _merge_quotes(quote_cache, payload.quotes, now)

    holdings, rejected = holdings_from_records(payload.holdings, pipeline.config.default_sector)
    _track(request, [h.symbol for h in holdings])

    previous = None
    if payload.previous_total_value is not None:
        try:
            previous = _PriorTotal(total_value=to_decimal(payload.previous_total_value, "previous_total_value"))
        except InvalidInput as exc:
            raise InvalidBatch(exc.message) from exc

    selections = None
    if payload.sort:
        selections = [(s.key, s.direction) for s in payload.sort]

    result = pipeline.run(
        holdings,
        payload.cash,
        quote_cache,
        previous=previous,
        now=now,
        sort_selections=selections,
        reported_nav=payload.reported_total_value,
        rejected=rejected,
    )

    body = result_to_dict(result)
    body["quotes"] = merge
    return body


@router.post("/quotes", response_model=QuoteMergeSchema)
async def merge_quotes(
    payload: QuoteBatchRequest,
    quote_cache: QuoteCache = Depends(get_quote_cache),
):
    """Merge a quote batch into the cache (older quotes are discarded)"""
    return _merge_quotes(quote_cache, payload.quotes, now_utc())


@router.get("/quotes/status")
async def quote_status(
    request: Request,
    quote_cache: QuoteCache = Depends(get_quote_cache),
):
    runtime = getattr(request.app.state, "refresh_runtime", None)
    return {
        "quotes": quote_cache.get_status(),
        "refresh": runtime.get_status() if runtime is not None else None,
    }


@router.post("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(payload: LeaderboardRequest):
    """Rank portfolios by return on their starting budget"""
    entries = [
        LeaderboardEntry(
            user_id=e.user_id,
            alias=e.alias,
            total_value=Decimal(str(e.total_value)),
            budget_amount=Decimal(str(e.budget_amount)),
            badges_count=e.badges_count,
            login_streak=e.login_streak,
        )
        for e in payload.entries
    ]
    rows = LeaderboardEngine().rank(entries)
    return {"leaderboard": leaderboard_to_list(rows)}


@router.post("/performance", response_model=PerformanceResponse)
async def performance(payload: PerformanceRequest):
    """
    Portfolio history for one chart window (1D, 1W, 1M, 3M, 1Y, ALL)

    The window ends today in IST unless the request pins a date.
    """
    today = payload.today or to_ist(now_utc()).date()
    points = [
        HistoryPoint(
            date=p.point_date,
            total_value=Decimal(str(p.total_value)),
            total_gain=Decimal(str(p.total_gain)),
            total_gain_percent=Decimal(str(p.total_gain_percent)),
        )
        for p in payload.points
    ]
    summary = PerformanceEngine().summarize(points, payload.period, today)
    return performance_to_dict(summary)
