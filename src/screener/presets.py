"""Quick-screen catalog: built-in, non-editable preset screens."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from screener.models import (
    HighLow52W,
    MarketCapSize,
    QuickScreen,
    RSIFilter,
    ScreenerCriteria,
    SMA50vs200,
    SMAFilter,
)

CATEGORIES: tuple[str, ...] = ("movers", "technical", "fundamental", "signals", "patterns")

_MIN_LIQUIDITY = 500_000.0
_ONE_BILLION = 1e9


def _qs(
    key: str,
    name: str,
    description: str,
    category: str,
    criteria: ScreenerCriteria,
    sort_by: str = "volume",
    sort_order: str = "desc",
) -> QuickScreen:
    return QuickScreen(key, name, description, criteria, category, sort_by, sort_order)


_PRESETS: tuple[QuickScreen, ...] = (
    # Market movers
    _qs("top_gainers", "Top Gainers", "Stocks up 5%+ today", "movers",
        ScreenerCriteria(min_perf_today=5.0, min_volume=_MIN_LIQUIDITY), "change", "desc"),
    _qs("top_losers", "Top Losers", "Stocks down 5%+ today", "movers",
        ScreenerCriteria(max_perf_today=-5.0, min_volume=_MIN_LIQUIDITY), "change", "asc"),
    _qs("most_active", "Most Active", "Highest volume today", "movers",
        ScreenerCriteria(min_volume=10_000_000.0)),
    _qs("unusual_volume", "Unusual Volume", "Volume 3x+ above average", "movers",
        ScreenerCriteria(min_relative_volume=3.0, min_volume=_MIN_LIQUIDITY)),
    _qs("gap_up", "Gap Up", "Gapped up 3%+ at open", "movers",
        ScreenerCriteria(min_gap_up=3.0, min_volume=_MIN_LIQUIDITY)),
    _qs("gap_down", "Gap Down", "Gapped down 3%+ at open", "movers",
        ScreenerCriteria(min_gap_down=3.0, min_volume=_MIN_LIQUIDITY)),
    _qs("momentum_leaders", "Momentum Leaders", "Up 10%+ over the past month", "movers",
        ScreenerCriteria(min_perf_month=10.0, min_volume=_MIN_LIQUIDITY), "change", "desc"),

    # Technical
    _qs("new_52w_high", "52-Week Highs", "At or near 52-week highs", "technical",
        ScreenerCriteria(high_low_52w=HighLow52W.NEW_HIGH, min_volume=_MIN_LIQUIDITY)),
    _qs("new_52w_low", "52-Week Lows", "At or near 52-week lows", "technical",
        ScreenerCriteria(high_low_52w=HighLow52W.NEW_LOW, min_volume=_MIN_LIQUIDITY)),
    _qs("oversold_rsi", "Oversold (RSI < 30)", "RSI below 30, potentially oversold", "technical",
        ScreenerCriteria(rsi_filter=RSIFilter.OVERSOLD_30, min_volume=_MIN_LIQUIDITY)),
    _qs("overbought_rsi", "Overbought (RSI > 70)", "RSI above 70, potentially overbought", "technical",
        ScreenerCriteria(rsi_filter=RSIFilter.OVERBOUGHT_70, min_volume=_MIN_LIQUIDITY)),
    _qs("golden_cross", "Golden Cross", "SMA50 crossed above SMA200", "technical",
        ScreenerCriteria(sma50_vs_200=SMA50vs200.CROSS_ABOVE, min_volume=_MIN_LIQUIDITY)),
    _qs("death_cross", "Death Cross", "SMA50 crossed below SMA200", "technical",
        ScreenerCriteria(sma50_vs_200=SMA50vs200.CROSS_BELOW, min_volume=_MIN_LIQUIDITY)),
    _qs("above_200_sma", "Above 200 SMA", "Price above 200-day moving average", "technical",
        ScreenerCriteria(sma200=SMAFilter.PRICE_ABOVE, min_volume=_MIN_LIQUIDITY)),
    _qs("below_200_sma", "Below 200 SMA", "Price below 200-day moving average", "technical",
        ScreenerCriteria(sma200=SMAFilter.PRICE_BELOW, min_volume=_MIN_LIQUIDITY)),

    # Fundamental
    _qs("high_dividend", "High Dividend (4%+)", "Dividend yield 4% or higher", "fundamental",
        ScreenerCriteria(min_dividend_yield=4.0, min_market_cap=_ONE_BILLION)),
    _qs("value_stocks", "Value Stocks", "Low P/E under 12", "fundamental",
        ScreenerCriteria(max_pe=12.0, min_pe=0.0, min_market_cap=_ONE_BILLION)),
    _qs("high_growth", "High Growth", "EPS growth 25%+", "fundamental",
        ScreenerCriteria(min_eps_growth_this_year=25.0, min_market_cap=_ONE_BILLION)),
    _qs("low_debt", "Low Debt", "Debt/Equity under 0.3", "fundamental",
        ScreenerCriteria(max_debt_equity=0.3, min_market_cap=_ONE_BILLION)),
    _qs("high_roe", "High ROE (20%+)", "Return on Equity 20%+", "fundamental",
        ScreenerCriteria(min_roe=20.0, min_market_cap=_ONE_BILLION)),
    _qs("profitable", "Profitable", "Positive net margin", "fundamental",
        ScreenerCriteria(min_net_margin=0.0, min_market_cap=_ONE_BILLION)),
    _qs("mega_cap", "Mega Cap ($200B+)", "Largest companies", "fundamental",
        ScreenerCriteria(market_cap=MarketCapSize.MEGA), "marketCap", "desc"),
    _qs("large_cap", "Large Cap ($10-200B)", "Large established companies", "fundamental",
        ScreenerCriteria(market_cap=MarketCapSize.LARGE), "marketCap", "desc"),
    _qs("mid_cap", "Mid Cap ($2-10B)", "Mid-sized companies", "fundamental",
        ScreenerCriteria(market_cap=MarketCapSize.MID), "marketCap", "desc"),
    _qs("small_cap", "Small Cap ($300M-2B)", "Smaller companies", "fundamental",
        ScreenerCriteria(market_cap=MarketCapSize.SMALL), "marketCap", "desc"),

    # Signals
    _qs("heavily_shorted", "Heavily Shorted", "Short interest 20%+", "signals",
        ScreenerCriteria(min_float_short=20.0, min_volume=_MIN_LIQUIDITY)),
    _qs("short_squeeze", "Short Squeeze Setup", "Shorted 15%+ and trading up on heavy volume", "signals",
        ScreenerCriteria(min_float_short=15.0, min_perf_today=0.0, min_relative_volume=2.0), "change", "desc"),

    # Patterns
    _qs("breakout", "Breakout", "Breaking out of consolidation", "patterns",
        ScreenerCriteria(high_low_52w=HighLow52W.NEW_HIGH, min_relative_volume=2.0, min_perf_today=2.0)),
    _qs("oversold_bounce", "Oversold Bounce", "Oversold names turning green on volume", "patterns",
        ScreenerCriteria(rsi_filter=RSIFilter.OVERSOLD_40, min_perf_today=1.0, min_relative_volume=1.5),
        "change", "desc"),
)

QUICK_SCREENS: Mapping[str, QuickScreen] = MappingProxyType({qs.key: qs for qs in _PRESETS})


def get_quick_screen(key: str) -> QuickScreen:
    """Return the preset registered under *key*.

    Raises:
        KeyError: If no preset exists under *key*.
    """
    try:
        return QUICK_SCREENS[key]
    except KeyError:
        raise KeyError(f'Quick screen "{key}" not found') from None


def quick_screens_by_category(category: str) -> dict[str, QuickScreen]:
    """Return the presets in *category*, keyed by preset key.

    Raises:
        ValueError: If *category* is not a known category.
    """
    if category not in CATEGORIES:
        raise ValueError(f"Unknown category '{category}'. Available: {', '.join(CATEGORIES)}")
    return {key: qs for key, qs in QUICK_SCREENS.items() if qs.category == category}
