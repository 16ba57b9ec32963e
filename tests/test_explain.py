"""Tests for explanation sentences and display formatting."""

from __future__ import annotations

import dataclasses

import pytest

from screener.explain import describe, explain
from screener.formatting import (
    format_dollars,
    format_market_cap,
    format_number,
    format_percent,
    format_volume,
)
from screener.models import (
    HighLow52W,
    MarketCapSize,
    RSIFilter,
    ScreenerCriteria,
    SMA50vs200,
    SMAFilter,
)
from screener.parser import parse_query


class TestExplain:
    def test_price_and_volume(self) -> None:
        criteria = ScreenerCriteria(max_price=20.0, min_relative_volume=3.0)
        assert explain(criteria, 34) == "Found 34 stocks under $20 with unusual volume"

    def test_empty_criteria(self) -> None:
        assert explain(ScreenerCriteria(), 12) == "Found 12 matching stocks"

    def test_singular(self) -> None:
        assert explain(ScreenerCriteria(), 1) == "Found 1 matching stock"

    def test_is_pure(self) -> None:
        criteria = parse_query("large cap tech gainers above $5 with high dividend")
        assert explain(criteria, 7) == explain(criteria, 7)

    def test_descriptors_precede_noun(self) -> None:
        criteria = ScreenerCriteria(
            market_cap=MarketCapSize.LARGE,
            sectors=("Technology", "Healthcare"),
            min_perf_today=0.0,
        )
        assert explain(criteria, 5) == "Found 5 large-cap Technology/Healthcare gaining stocks"

    def test_gain_threshold(self) -> None:
        criteria = ScreenerCriteria(min_perf_today=5.0, min_volume=500_000.0)
        assert explain(criteria, 3) == "Found 3 gaining stocks up 5%+ today with volume above 500.0K"

    def test_tier_hides_explicit_cap_bounds(self) -> None:
        criteria = ScreenerCriteria(market_cap=MarketCapSize.MID, min_market_cap=1e12)
        assert explain(criteria, 2) == "Found 2 mid-cap stocks"

    def test_parsed_technical_queries(self) -> None:
        assert describe(parse_query("above 20 day")) == "Stocks above the 20-day SMA"
        assert describe(parse_query("golden cross")) == "Stocks with a golden cross"

    def test_qualifiers(self) -> None:
        criteria = ScreenerCriteria(
            min_price=5.0,
            max_price=20.0,
            high_low_52w=HighLow52W.NEW_HIGH,
            min_dividend_yield=3.0,
            max_pe=15.0,
        )
        assert explain(criteria, 3) == (
            "Found 3 stocks between $5 and $20 at 52-week highs "
            "with 3%+ dividend yield and P/E under 15"
        )

    def test_modest_relative_volume(self) -> None:
        criteria = ScreenerCriteria(min_relative_volume=1.5)
        assert explain(criteria, 2) == "Found 2 stocks with relative volume above 1.5x"

    def test_oversold(self) -> None:
        criteria = ScreenerCriteria(rsi_filter=RSIFilter.OVERSOLD_30)
        assert explain(criteria, 4).startswith("Found 4 oversold stocks")


class TestDescribe:
    def test_describe_without_count(self) -> None:
        criteria = ScreenerCriteria(max_price=20.0, min_relative_volume=3.0)
        assert describe(criteria) == "Stocks under $20 with unusual volume"

    def test_describe_empty(self) -> None:
        assert describe(ScreenerCriteria()) == "All stocks"


FIELD_PHRASES: dict[str, tuple[object, str]] = {
    "market_cap": (MarketCapSize.LARGE, "large-cap"),
    "min_market_cap": (1e9, "with market cap above $1.00B"),
    "max_market_cap": (2e9, "with market cap under $2.00B"),
    "min_price": (5.0, "above $5"),
    "max_price": (20.0, "under $20"),
    "sectors": (("Energy",), "Energy"),
    "exchanges": (("NYSE",), "on NYSE"),
    "indexes": (("sp500",), "in the S&P 500"),
    "min_volume": (1e6, "with volume above 1.00M"),
    "max_volume": (5e5, "with volume under 500.0K"),
    "min_relative_volume": (1.5, "with relative volume above 1.5x"),
    "min_perf_today": (5.0, "up 5%+ today"),
    "max_perf_today": (-5.0, "down 5%+ today"),
    "min_perf_month": (10.0, "up 10%+ this month"),
    "min_gap_up": (3.0, "gapping up 3%+"),
    "min_gap_down": (3.0, "gapping down 3%+"),
    "min_pe": (5.0, "with P/E above 5"),
    "max_pe": (15.0, "with P/E under 15"),
    "min_dividend_yield": (3.0, "with 3%+ dividend yield"),
    "min_roe": (15.0, "with ROE above 15%"),
    "min_net_margin": (0.0, "with positive net margin"),
    "max_debt_equity": (0.5, "with debt/equity under 0.5"),
    "min_eps_growth_this_year": (15.0, "with EPS growth 15%+"),
    "min_float_short": (15.0, "with 15%+ short interest"),
    "rsi_filter": (RSIFilter.NOT_OVERBOUGHT, "with RSI 70 or lower"),
    "sma20": (SMAFilter.PRICE_ABOVE, "above the 20-day SMA"),
    "sma50": (SMAFilter.PRICE_BELOW, "below the 50-day SMA"),
    "sma200": (SMAFilter.CROSS_ABOVE, "crossing above the 200-day SMA"),
    "sma50_vs_200": (SMA50vs200.CROSS_BELOW, "with a death cross"),
    "high_low_52w": (HighLow52W.NEAR_LOW, "near 52-week lows"),
}


class TestFieldCoverage:
    def test_every_field_has_a_phrase(self) -> None:
        assert set(FIELD_PHRASES) == {f.name for f in dataclasses.fields(ScreenerCriteria)}

    @pytest.mark.parametrize("name", sorted(FIELD_PHRASES))
    def test_field_described(self, name: str) -> None:
        value, phrase = FIELD_PHRASES[name]
        criteria = ScreenerCriteria(**{name: value})
        assert phrase.lower() in describe(criteria).lower()
        assert phrase in explain(criteria, 7)
        assert explain(criteria, 7) != "Found 7 matching stocks"


class TestFormatting:
    def test_dollars(self) -> None:
        assert format_dollars(20) == "$20"
        assert format_dollars(12.5) == "$12.50"

    def test_market_cap(self) -> None:
        assert format_market_cap(2.5e12) == "$2.50T"
        assert format_market_cap(10e9) == "$10.00B"
        assert format_market_cap(150e6) == "$150.00M"

    def test_volume(self) -> None:
        assert format_volume(1_500) == "1.5K"
        assert format_volume(2_000_000) == "2.00M"

    def test_percent(self) -> None:
        assert format_percent(1.234) == "+1.23%"
        assert format_percent(-0.5) == "-0.50%"
        assert format_percent(None) == "-"

    def test_number(self) -> None:
        assert format_number(3.0) == "3"
        assert format_number(2.5) == "2.5"
