"""
Unit Tests for the Analytics Pipeline
End-to-end cycles over an in-memory quote cache
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from papertrade.domain.errors import InvalidBatch, InvalidInput
from papertrade.domain.models import Holding, Quote, SortDirection, SortKey
from papertrade.domain.services.analytics_pipeline import (
    AnalyticsPipeline,
    holdings_from_records,
    quotes_from_records,
)
from papertrade.domain.services.config_engine import AnalyticsConfig
from papertrade.infrastructure.market_data.quote_store import QuoteCache


NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)
TWO_PLACES = Decimal("0.01")


@pytest.fixture
def pipeline():
    return AnalyticsPipeline(AnalyticsConfig())


@pytest.fixture
def cache():
    cache = QuoteCache(freshness_window=timedelta(seconds=60))
    cache.merge(Quote("TCS", Decimal("3200"), NOW - timedelta(seconds=5)))
    cache.merge(Quote("HDFC", Decimal("1400"), NOW - timedelta(seconds=5)))
    return cache


@pytest.fixture
def holdings():
    return [
        Holding("TCS", 10, Decimal("3000"), sector="IT"),
        Holding("HDFC", 5, Decimal("1500"), sector="Financials"),
    ]


@pytest.mark.unit
class TestAnalyticsPipeline:

    def test_two_stock_portfolio(self, pipeline, cache, holdings):
        result = pipeline.run(holdings, Decimal("1000"), cache, now=NOW)
        snapshot = result.snapshot
        positions = {p.symbol: p for p in snapshot.positions}

        assert positions["TCS"].value == Decimal("32000")
        assert positions["TCS"].gain == Decimal("2000")
        assert positions["TCS"].gain_percent.quantize(TWO_PLACES) == Decimal("6.67")
        assert positions["HDFC"].value == Decimal("7000")
        assert positions["HDFC"].gain == Decimal("-500")
        assert positions["HDFC"].gain_percent.quantize(TWO_PLACES) == Decimal("-6.67")

        assert snapshot.total_value == Decimal("40000")
        assert positions["TCS"].weight == Decimal("80")
        assert positions["HDFC"].weight == Decimal("17.5")
        assert positions["TCS"].overweight is True
        assert positions["HDFC"].overweight is False

        assert snapshot.overweight_sectors == ("IT",)
        assert snapshot.diversification.score == Decimal("8")
        assert snapshot.diversification.overweight_sectors == ("IT",)

    def test_default_rankings_follow_config(self, pipeline, cache, holdings):
        result = pipeline.run(holdings, 1000, cache, now=NOW)

        assert [p.symbol for p in result.rankings[SortKey.ALPHABETIC]] == ["HDFC", "TCS"]
        assert [p.symbol for p in result.rankings[SortKey.GAIN_LOSS_PERCENT]] == ["TCS", "HDFC"]
        assert [p.symbol for p in result.rankings[SortKey.WEIGHT]] == ["TCS", "HDFC"]

    def test_selected_rankings(self, pipeline, cache, holdings):
        result = pipeline.run(
            holdings, 1000, cache, now=NOW,
            sort_selections=[(SortKey.WEIGHT, SortDirection.ASC)],
        )
        assert list(result.rankings) == [SortKey.WEIGHT]
        assert [p.symbol for p in result.rankings[SortKey.WEIGHT]] == ["HDFC", "TCS"]

    def test_stale_quote_is_used_and_flagged(self, pipeline, holdings):
        cache = QuoteCache(freshness_window=timedelta(minutes=1))
        cache.merge(Quote("TCS", Decimal("3200"), NOW - timedelta(minutes=10)))
        cache.merge(Quote("HDFC", Decimal("1400"), NOW))

        snapshot = pipeline.run(holdings, 0, cache, now=NOW).snapshot
        tcs = next(p for p in snapshot.positions if p.symbol == "TCS")

        assert tcs.stale is True
        assert tcs.value == Decimal("32000")
        assert snapshot.stale_symbols == ("TCS",)
        assert snapshot.holdings_count == 2

    def test_unpriced_position_uses_cost(self, pipeline, cache):
        holdings = [Holding("NEWCO", 4, Decimal("250"), sector="IT")]
        snapshot = pipeline.run(holdings, 0, cache, now=NOW).snapshot

        assert snapshot.unpriced_symbols == ("NEWCO",)
        assert snapshot.total_value == Decimal("1000")

    def test_bad_holding_is_rejected_not_fatal(self, pipeline, cache, holdings):
        bad = Holding("BAD", -3, Decimal("10"))
        result = pipeline.run(holdings + [bad], 1000, cache, now=NOW)

        assert result.snapshot.holdings_count == 2
        assert [r.symbol for r in result.snapshot.rejected] == ["BAD"]
        assert result.snapshot.total_value == Decimal("40000")

    def test_duplicate_symbol_rejected(self, pipeline, cache, holdings):
        dup = Holding("TCS", 1, Decimal("1"), sector="IT")
        snapshot = pipeline.run(holdings + [dup], 1000, cache, now=NOW).snapshot

        assert snapshot.total_value == Decimal("40000")
        assert snapshot.rejected[0].symbol == "TCS"
        assert "Duplicate" in snapshot.rejected[0].reason

    def test_closed_lot_before_live_lot_keeps_position(self, pipeline, cache):
        holdings = [
            Holding("TCS", 0, Decimal("2800"), sector="IT"),
            Holding("TCS", 10, Decimal("3000"), sector="IT"),
        ]
        snapshot = pipeline.run(holdings, 0, cache, now=NOW).snapshot

        assert snapshot.rejected == ()
        assert snapshot.holdings_count == 1
        assert snapshot.total_value == Decimal("32000")

    def test_closed_lot_after_live_lot_is_not_a_duplicate(self, pipeline, cache):
        holdings = [
            Holding("TCS", 10, Decimal("3000"), sector="IT"),
            Holding("TCS", 0, Decimal("2800"), sector="IT"),
        ]
        snapshot = pipeline.run(holdings, 0, cache, now=NOW).snapshot

        assert snapshot.rejected == ()
        assert snapshot.total_value == Decimal("32000")

    def test_holdings_must_be_a_list(self, pipeline, cache):
        with pytest.raises(InvalidBatch):
            pipeline.run({"TCS": 10}, 0, cache, now=NOW)

    def test_negative_cash_is_fatal(self, pipeline, cache, holdings):
        with pytest.raises(InvalidBatch):
            pipeline.run(holdings, -1, cache, now=NOW)

    def test_idempotent(self, pipeline, cache, holdings):
        first = pipeline.run(holdings, 1000, cache, now=NOW)
        second = pipeline.run(holdings, 1000, cache, now=NOW)
        assert first == second

    def test_delta_against_previous(self, pipeline, cache, holdings):
        first = pipeline.run(holdings, 0, cache, now=NOW)
        cache.merge(Quote("TCS", Decimal("3300"), NOW + timedelta(seconds=3)))
        second = pipeline.run(
            holdings, 0, cache, previous=first.snapshot, now=NOW + timedelta(seconds=3)
        )

        assert first.delta.has_previous is False
        assert second.delta.absolute == Decimal("1000")
        assert second.delta.has_previous is True

    def test_reported_nav_cross_check(self, pipeline, cache, holdings):
        result = pipeline.run(holdings, 1000, cache, now=NOW, reported_nav="40100")
        assert result.nav_check.reported == Decimal("40100")
        assert result.nav_check.within_tolerance is True

    def test_invalid_reported_nav_is_ignored(self, pipeline, cache, holdings):
        result = pipeline.run(holdings, 1000, cache, now=NOW, reported_nav="garbage")
        assert result.nav_check.reported is None

    def test_run_records(self, pipeline, cache):
        records = [
            {"symbol": "TCS", "qty": 10, "avgBuyPrice": 3000, "sector": "IT"},
            {"symbol": "HDFC", "quantity": 5, "avg_buy_price": "1500"},
            "not a record",
        ]
        snapshot = pipeline.run_records(records, 1000, cache, now=NOW).snapshot

        assert snapshot.total_value == Decimal("40000")
        assert [b.sector for b in snapshot.sector_buckets] == ["IT", "Other"]
        assert len(snapshot.rejected) == 1


@pytest.mark.unit
class TestRecordParsing:

    def test_holdings_from_records_defaults(self):
        holdings, rejected = holdings_from_records(
            [{"symbol": " INFY ", "quantity": 2, "average_price": 1400, "stockName": "Infosys"}],
            default_sector="Unclassified",
        )
        assert rejected == []
        assert holdings[0].symbol == "INFY"
        assert holdings[0].sector == "Unclassified"
        assert holdings[0].stock_name == "Infosys"

    def test_holdings_batch_must_be_list(self):
        with pytest.raises(InvalidBatch):
            holdings_from_records("TCS")

    def test_quote_timestamps(self):
        quotes, rejected = quotes_from_records(
            [
                {"symbol": "A", "price": 10, "timestamp": "2026-03-02T09:29:00Z"},
                {"symbol": "B", "ltp": "20.5", "ts": 1772443740},
                {"symbol": "C", "last_price": 30, "observedAt": 1772443740000},
                {"symbol": "D", "price": 40},
            ],
            now=NOW,
        )
        assert rejected == []
        by_symbol = {q.symbol: q for q in quotes}
        assert by_symbol["A"].observed_at == datetime(2026, 3, 2, 9, 29, tzinfo=timezone.utc)
        assert by_symbol["B"].observed_at == by_symbol["C"].observed_at
        assert by_symbol["B"].price == Decimal("20.5")
        assert by_symbol["D"].observed_at == NOW

    def test_bad_quote_records_are_rejected(self):
        quotes, rejected = quotes_from_records(
            [
                {"symbol": "A", "price": "abc"},
                {"symbol": "B", "price": 1, "timestamp": "yesterday"},
                42,
            ],
            now=NOW,
        )
        assert quotes == []
        assert [r.symbol for r in rejected] == ["A", "B", ""]

    def test_quote_batch_must_be_list(self):
        with pytest.raises(InvalidBatch):
            quotes_from_records({"symbol": "A"})

    def test_invalid_input_is_a_value_error(self):
        assert issubclass(InvalidInput, ValueError)
