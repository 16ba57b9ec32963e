"""One-sentence, human-readable summary of what a screen filtered for."""

from __future__ import annotations

from screener.formatting import format_dollars, format_market_cap, format_number, format_volume
from screener.models import HighLow52W, RSIFilter, ScreenerCriteria, SMA50vs200, SMAFilter

_INDEX_NAMES: dict[str, str] = {
    "sp500": "the S&P 500",
    "djia": "the Dow Jones",
    "nasdaq100": "the Nasdaq-100",
    "russell2000": "the Russell 2000",
}

_HIGH_LOW_PHRASES: dict[HighLow52W, str] = {
    HighLow52W.NEW_HIGH: "at 52-week highs",
    HighLow52W.NEW_LOW: "at 52-week lows",
    HighLow52W.NEAR_HIGH: "near 52-week highs",
    HighLow52W.NEAR_LOW: "near 52-week lows",
}

_CROSS_PHRASES: dict[SMA50vs200, str] = {
    SMA50vs200.ABOVE: "SMA50 above SMA200",
    SMA50vs200.BELOW: "SMA50 below SMA200",
    SMA50vs200.CROSS_ABOVE: "a golden cross",
    SMA50vs200.CROSS_BELOW: "a death cross",
}

_SMA_PHRASES: dict[SMAFilter, str] = {
    SMAFilter.PRICE_ABOVE: "above",
    SMAFilter.PRICE_BELOW: "below",
    SMAFilter.CROSS_ABOVE: "crossing above",
    SMAFilter.CROSS_BELOW: "crossing below",
}

_RSI_DESCRIPTORS: dict[RSIFilter, str] = {
    RSIFilter.OVERSOLD_30: "oversold",
    RSIFilter.OVERSOLD_40: "oversold",
    RSIFilter.OVERBOUGHT_60: "overbought",
    RSIFilter.OVERBOUGHT_70: "overbought",
}

_RSI_QUALIFIERS: dict[RSIFilter, str] = {
    RSIFilter.NOT_OVERSOLD: "RSI 30 or higher",
    RSIFilter.NOT_OVERBOUGHT: "RSI 70 or lower",
}


def _range(label: str, low: float | None, high: float | None, fmt) -> str | None:
    if low is not None and high is not None:
        return f"{label} between {fmt(low)} and {fmt(high)}"
    if low is not None:
        return f"{label} above {fmt(low)}"
    if high is not None:
        return f"{label} under {fmt(high)}"
    return None


def _move(value: float, period: str, floor: bool) -> str:
    """Phrase a percent bound on a price move, e.g. "up 5%+ today"."""
    pct = format_number(abs(value))
    if floor:
        return f"up {pct}%+ {period}" if value >= 0 else f"down no more than {pct}% {period}"
    return f"down {pct}%+ {period}" if value <= 0 else f"up no more than {pct}% {period}"


def _descriptors(c: ScreenerCriteria) -> list[str]:
    parts: list[str] = []
    if c.market_cap is not None:
        parts.append(f"{c.market_cap.value}-cap")
    if c.sectors:
        parts.append("/".join(c.sectors))
    if c.min_perf_today is not None and c.min_perf_today >= 0:
        parts.append("gaining")
    if c.max_perf_today is not None and c.max_perf_today <= 0:
        parts.append("declining")
    if c.rsi_filter in _RSI_DESCRIPTORS:
        parts.append(_RSI_DESCRIPTORS[c.rsi_filter])
    return parts


def _qualifiers(c: ScreenerCriteria) -> list[str]:
    parts: list[str] = []
    if c.min_price is not None and c.max_price is not None:
        parts.append(f"between {format_dollars(c.min_price)} and {format_dollars(c.max_price)}")
    elif c.max_price is not None:
        parts.append(f"under {format_dollars(c.max_price)}")
    elif c.min_price is not None:
        parts.append(f"above {format_dollars(c.min_price)}")

    if c.exchanges:
        parts.append(f"on {'/'.join(c.exchanges)}")
    if c.indexes:
        parts.append("in " + " or ".join(_INDEX_NAMES.get(i, i) for i in c.indexes))
    if c.min_perf_today:
        parts.append(_move(c.min_perf_today, "today", floor=True))
    if c.max_perf_today:
        parts.append(_move(c.max_perf_today, "today", floor=False))
    if c.min_perf_month is not None:
        parts.append(_move(c.min_perf_month, "this month", floor=True))
    if c.high_low_52w is not None:
        parts.append(_HIGH_LOW_PHRASES[c.high_low_52w])
    for period, value in ((20, c.sma20), (50, c.sma50), (200, c.sma200)):
        if value is not None:
            parts.append(f"{_SMA_PHRASES[value]} the {period}-day SMA")
    if c.min_gap_up is not None:
        parts.append(f"gapping up {format_number(c.min_gap_up)}%+")
    if c.min_gap_down is not None:
        parts.append(f"gapping down {format_number(c.min_gap_down)}%+")

    with_items: list[str] = []
    if c.market_cap is None:
        cap = _range("market cap", c.min_market_cap, c.max_market_cap, format_market_cap)
        if cap:
            with_items.append(cap)
    volume = _range("volume", c.min_volume, c.max_volume, format_volume)
    if volume:
        with_items.append(volume)
    if c.sma50_vs_200 is not None:
        with_items.append(_CROSS_PHRASES[c.sma50_vs_200])
    if c.min_dividend_yield is not None:
        with_items.append(f"{format_number(c.min_dividend_yield)}%+ dividend yield")
    pe = _range("P/E", c.min_pe, c.max_pe, format_number)
    if pe:
        with_items.append(pe)
    if c.min_roe is not None:
        with_items.append(f"ROE above {format_number(c.min_roe)}%")
    if c.min_net_margin is not None:
        if c.min_net_margin == 0:
            with_items.append("positive net margin")
        else:
            with_items.append(f"net margin above {format_number(c.min_net_margin)}%")
    if c.max_debt_equity is not None:
        with_items.append(f"debt/equity under {format_number(c.max_debt_equity)}")
    if c.min_eps_growth_this_year is not None:
        with_items.append(f"EPS growth {format_number(c.min_eps_growth_this_year)}%+")
    if c.min_float_short is not None:
        with_items.append(f"{format_number(c.min_float_short)}%+ short interest")
    if c.min_relative_volume is not None:
        if c.min_relative_volume > 2:
            with_items.append("unusual volume")
        else:
            with_items.append(f"relative volume above {format_number(c.min_relative_volume)}x")
    if c.rsi_filter in _RSI_QUALIFIERS:
        with_items.append(_RSI_QUALIFIERS[c.rsi_filter])

    if with_items:
        parts.append("with " + " and ".join(with_items))
    return parts


def explain(criteria: ScreenerCriteria, count: int) -> str:
    """Describe the screen and its match count in one sentence.

    Pure: identical arguments always yield the identical string.

    >>> explain(ScreenerCriteria(max_price=20, min_relative_volume=3), 34)
    'Found 34 stocks under $20 with unusual volume'
    """
    noun = "stock" if count == 1 else "stocks"
    descriptors = _descriptors(criteria)
    qualifiers = _qualifiers(criteria)

    if not descriptors and not qualifiers:
        return f"Found {count} matching {noun}"

    words = ["Found", str(count), *descriptors, noun, *qualifiers]
    return " ".join(words)


def describe(criteria: ScreenerCriteria) -> str:
    """Describe what a screen looks for without a match count.

    >>> describe(ScreenerCriteria(max_price=20, min_relative_volume=3))
    'Stocks under $20 with unusual volume'
    """
    words = [*_descriptors(criteria), "stocks", *_qualifiers(criteria)]
    if len(words) == 1:
        return "All stocks"
    text = " ".join(words)
    return text[0].upper() + text[1:]
