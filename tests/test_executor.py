"""Tests for screen execution: filtering, enrichment, sorting and paging."""

from __future__ import annotations

import httpx
import numpy as np
import pytest

from screener.executor import ScreenExecutionError, ScreenExecutor
from screener.models import (
    HighLow52W,
    MarketCapSize,
    RSIFilter,
    ScreenerCriteria,
    ScreenRequest,
    SMA50vs200,
    SMAFilter,
)
from screener.parser import parse_query

from conftest import FakeProvider, make_bars


def _tickers(response) -> list[str]:
    return [r.ticker for r in response.results]


class TestDefaults:
    def test_default_request(self) -> None:
        request = ScreenRequest()
        assert (request.sort_by, request.sort_order, request.limit, request.offset) == (
            "volume", "desc", 100, 0,
        )

    def test_invalid_sort_rejected(self) -> None:
        with pytest.raises(ValueError, match="sortBy"):
            ScreenRequest(sort_by="rsi")

    def test_empty_criteria_returns_all_priced_rows(self, executor) -> None:
        response = executor.execute(ScreenRequest())
        assert response.total_count == 6
        assert "DEAD" not in _tickers(response)
        assert _tickers(response) == ["AAPL", "F", "SOFI", "XOM", "PENY", "NEWCO"]
        assert response.explanation == "Found 6 matching stocks"
        assert response.source == "fake"
        assert response.execution_time_ms >= 0

    def test_page_rows_get_reference_details(self, executor, provider) -> None:
        response = executor.execute(ScreenRequest())
        newco = next(r for r in response.results if r.ticker == "NEWCO")
        assert newco.sector == "Technology"
        assert newco.market_cap == 5e9
        assert provider.detail_calls == [["NEWCO"]]


class TestFiltering:
    def test_parsed_query(self, executor) -> None:
        response = executor.execute(ScreenRequest(criteria=parse_query("Under $20 high volume")))
        assert _tickers(response) == ["F", "PENY"]
        assert response.total_count == 2
        assert response.explanation == "Found 2 stocks under $20 with unusual volume"

    def test_missing_values_never_match(self, executor) -> None:
        response = executor.execute(ScreenRequest(criteria=ScreenerCriteria(min_pe=5.0)))
        assert sorted(_tickers(response)) == ["AAPL", "F", "XOM"]

    def test_upper_bound_excludes_missing(self, executor) -> None:
        response = executor.execute(ScreenRequest(criteria=ScreenerCriteria(max_pe=15.0)))
        assert sorted(_tickers(response)) == ["F", "XOM"]

    def test_gap_down(self, executor) -> None:
        response = executor.execute(ScreenRequest(criteria=ScreenerCriteria(min_gap_down=0.5)))
        assert _tickers(response) == ["XOM"]

    def test_sector_uses_details_lookup(self, executor) -> None:
        criteria = ScreenerCriteria(sectors=("Technology",))
        assert _tickers(executor.execute(ScreenRequest(criteria=criteria))) == ["AAPL", "NEWCO"]

    def test_market_cap_tier(self, executor) -> None:
        criteria = ScreenerCriteria(market_cap=MarketCapSize.MID)
        assert _tickers(executor.execute(ScreenRequest(criteria=criteria))) == ["SOFI", "NEWCO"]

    def test_tier_supersedes_explicit_bounds(self, executor) -> None:
        criteria = ScreenerCriteria(market_cap=MarketCapSize.MEGA, max_market_cap=1e9)
        assert _tickers(executor.execute(ScreenRequest(criteria=criteria))) == ["AAPL", "XOM"]

    def test_exchange_hint_passed_to_provider(self, executor, provider) -> None:
        criteria = ScreenerCriteria(exchanges=("NYSE",))
        response = executor.execute(ScreenRequest(criteria=criteria))
        assert provider.universe_calls == ["NYSE"]
        assert _tickers(response) == ["F", "XOM", "NEWCO"]

    def test_index_membership(self, executor) -> None:
        criteria = ScreenerCriteria(indexes=("djia",))
        assert _tickers(executor.execute(ScreenRequest(criteria=criteria))) == ["AAPL", "XOM"]

    def test_unconfigured_index_matches_nothing(self, executor) -> None:
        criteria = ScreenerCriteria(indexes=("sp500",))
        assert executor.execute(ScreenRequest(criteria=criteria)).total_count == 0


class TestTechnicals:
    def test_oversold(self, executor) -> None:
        criteria = ScreenerCriteria(rsi_filter=RSIFilter.OVERSOLD_30)
        assert _tickers(executor.execute(ScreenRequest(criteria=criteria))) == ["PENY"]

    def test_overbought(self, executor) -> None:
        criteria = ScreenerCriteria(rsi_filter=RSIFilter.OVERBOUGHT_70)
        assert _tickers(executor.execute(ScreenRequest(criteria=criteria))) == ["AAPL"]

    def test_price_above_200_sma(self, executor) -> None:
        criteria = ScreenerCriteria(sma200=SMAFilter.PRICE_ABOVE)
        assert _tickers(executor.execute(ScreenRequest(criteria=criteria))) == ["AAPL"]

    def test_new_high(self, executor) -> None:
        criteria = ScreenerCriteria(high_low_52w=HighLow52W.NEW_HIGH)
        response = executor.execute(ScreenRequest(criteria=criteria))
        assert _tickers(response) == ["AAPL"]
        assert response.results[0].pct_from_52wk_high == pytest.approx(-100 / 191, rel=1e-6)

    def test_monthly_performance(self, executor) -> None:
        criteria = ScreenerCriteria(min_perf_month=1.0)
        assert _tickers(executor.execute(ScreenRequest(criteria=criteria))) == ["AAPL"]

    def test_bars_only_fetched_when_needed(self, executor, provider) -> None:
        executor.execute(ScreenRequest(criteria=ScreenerCriteria(min_price=1.0)))
        assert provider.bar_calls == []

    def test_enrichment_limit(self, provider) -> None:
        executor = ScreenExecutor(
            provider=provider,
            settings={"technical_enrichment_limit": 1, "enrich_page_details": False},
        )
        criteria = ScreenerCriteria(rsi_filter=RSIFilter.OVERSOLD_30)
        response = executor.execute(ScreenRequest(criteria=criteria))
        assert provider.bar_calls == ["AAPL"]
        assert response.total_count == 0


def _flat_then(last: float, base: float = 100.0, periods: int = 260) -> np.ndarray:
    """Closes pinned at *base* with only the final bar moved to *last*."""
    closes = np.full(periods, base)
    closes[-1] = last
    return closes


def _bar_executor(series: dict[str, tuple[np.ndarray, float]]) -> ScreenExecutor:
    """Executor over tickers whose bars are *closes* and whose quote is *price*."""
    rows = [
        {"ticker": ticker, "company": f"{ticker} Corp.", "sector": "Industrials",
         "exchange": "NYSE", "price": price, "volume": 2e6 + i, "market_cap": 5e9}
        for i, (ticker, (_, price)) in enumerate(series.items())
    ]
    bars = {ticker: make_bars(closes) for ticker, (closes, _) in series.items()}
    return ScreenExecutor(
        provider=FakeProvider(rows, bars=bars),
        settings={"enrich_page_details": False},
    )


class TestCrossovers:
    @pytest.fixture()
    def crossing(self) -> ScreenExecutor:
        return _bar_executor({
            "GC": (_flat_then(110.0), 110.0),
            "DC": (_flat_then(90.0), 90.0),
            "FLAT": (_flat_then(100.0), 100.0),
        })

    def test_golden_cross(self, crossing) -> None:
        criteria = ScreenerCriteria(sma50_vs_200=SMA50vs200.CROSS_ABOVE)
        assert _tickers(crossing.execute(ScreenRequest(criteria=criteria))) == ["GC"]

    def test_death_cross(self, crossing) -> None:
        criteria = ScreenerCriteria(sma50_vs_200=SMA50vs200.CROSS_BELOW)
        assert _tickers(crossing.execute(ScreenRequest(criteria=criteria))) == ["DC"]

    def test_cross_quick_screens(self, crossing) -> None:
        assert _tickers(crossing.run_quick_screen("golden_cross")) == ["GC"]
        assert _tickers(crossing.run_quick_screen("death_cross")) == ["DC"]

    def test_parsed_golden_cross(self, crossing) -> None:
        response = crossing.execute(ScreenRequest(criteria=parse_query("golden cross")))
        assert _tickers(response) == ["GC"]

    def test_sma50_above_is_not_a_cross(self) -> None:
        executor = _bar_executor({
            "UP": (np.linspace(50.0, 150.0, 260), 150.0),
            "GC": (_flat_then(110.0), 110.0),
        })
        above = ScreenerCriteria(sma50_vs_200=SMA50vs200.ABOVE)
        cross = ScreenerCriteria(sma50_vs_200=SMA50vs200.CROSS_ABOVE)
        assert _tickers(executor.execute(ScreenRequest(criteria=above))) == ["GC", "UP"]
        assert _tickers(executor.execute(ScreenRequest(criteria=cross))) == ["GC"]

    @pytest.mark.parametrize("field", ["sma20", "sma50", "sma200"])
    def test_price_crosses_average(self, crossing, field) -> None:
        up = ScreenerCriteria(**{field: SMAFilter.CROSS_ABOVE})
        down = ScreenerCriteria(**{field: SMAFilter.CROSS_BELOW})
        assert _tickers(crossing.execute(ScreenRequest(criteria=up))) == ["GC"]
        assert _tickers(crossing.execute(ScreenRequest(criteria=down))) == ["DC"]

    def test_price_below_average(self, crossing) -> None:
        criteria = ScreenerCriteria(sma20=SMAFilter.PRICE_BELOW)
        assert _tickers(crossing.execute(ScreenRequest(criteria=criteria))) == ["DC"]


class TestFiftyTwoWeekExtremes:
    @pytest.fixture()
    def extremes(self) -> ScreenExecutor:
        # Downtrend: 52-week low 49.  Uptrend: 52-week high 101.
        down = np.linspace(100.0, 50.0, 260)
        up = np.linspace(50.0, 100.0, 260)
        return _bar_executor({
            "NLOW": (down, 51.0),
            "NRLOW": (down, 53.0),
            "NHIGH": (up, 98.0),
            "NRHIGH": (up, 93.0),
        })

    def _matches(self, executor, value: HighLow52W) -> list[str]:
        criteria = ScreenerCriteria(high_low_52w=value)
        return sorted(_tickers(executor.execute(ScreenRequest(criteria=criteria))))

    def test_new_low_within_five_percent(self, extremes) -> None:
        assert self._matches(extremes, HighLow52W.NEW_LOW) == ["NLOW"]

    def test_near_low_within_ten_percent(self, extremes) -> None:
        assert self._matches(extremes, HighLow52W.NEAR_LOW) == ["NLOW", "NRLOW"]

    def test_new_high_within_five_percent(self, extremes) -> None:
        assert self._matches(extremes, HighLow52W.NEW_HIGH) == ["NHIGH"]

    def test_near_high_within_ten_percent(self, extremes) -> None:
        assert self._matches(extremes, HighLow52W.NEAR_HIGH) == ["NHIGH", "NRHIGH"]

    def test_distance_reported(self, extremes) -> None:
        criteria = ScreenerCriteria(high_low_52w=HighLow52W.NEW_LOW)
        result = extremes.execute(ScreenRequest(criteria=criteria)).results[0]
        assert result.low_52w == pytest.approx(49.0)
        assert result.pct_from_52wk_low == pytest.approx(2.0 / 49.0 * 100.0)


class TestSortingAndPaging:
    def test_change_sorts_by_percent_change(self, executor) -> None:
        response = executor.execute(ScreenRequest(sort_by="change", sort_order="desc"))
        assert _tickers(response) == ["PENY", "SOFI", "NEWCO", "AAPL", "F", "XOM"]

    def test_ticker_ascending(self, executor) -> None:
        response = executor.execute(ScreenRequest(sort_by="ticker", sort_order="asc"))
        assert _tickers(response) == ["AAPL", "F", "NEWCO", "PENY", "SOFI", "XOM"]

    def test_missing_sort_values_last(self, executor) -> None:
        response = executor.execute(ScreenRequest(sort_by="marketCap", sort_order="desc"))
        assert _tickers(response)[-1] == "NEWCO"
        assert _tickers(response)[0] == "AAPL"

    def test_offset_and_limit(self, executor) -> None:
        response = executor.execute(ScreenRequest(limit=2, offset=1))
        assert _tickers(response) == ["F", "SOFI"]
        assert response.total_count == 6

    def test_limit_capped(self, provider) -> None:
        executor = ScreenExecutor(provider=provider, settings={"max_limit": 3})
        response = executor.execute(ScreenRequest(limit=100))
        assert len(response.results) == 3
        assert response.total_count == 6


class TestQuickScreensAndErrors:
    def test_run_quick_screen(self, executor) -> None:
        response = executor.run_quick_screen("top_gainers")
        assert _tickers(response) == ["PENY", "SOFI"]

    def test_unknown_quick_screen(self, executor) -> None:
        with pytest.raises(KeyError):
            executor.run_quick_screen("nope")

    def test_provider_failure_wrapped(self) -> None:
        provider = FakeProvider([], error=httpx.ConnectError("connection refused"))
        executor = ScreenExecutor(provider=provider)
        with pytest.raises(ScreenExecutionError, match="connection refused"):
            executor.execute(ScreenRequest())

    def test_response_wire_shape(self, executor) -> None:
        data = executor.execute(ScreenRequest(limit=1)).to_dict()
        assert set(data) == {
            "criteria", "results", "totalCount", "explanation",
            "source", "timestamp", "executionTimeMs",
        }
        assert data["results"][0]["ticker"] == "AAPL"
        assert data["results"][0]["changePercent"] == 1.5
