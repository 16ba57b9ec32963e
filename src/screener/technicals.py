"""Derive per-ticker indicator values from daily bars for technical filters."""

from __future__ import annotations

import math

import pandas as pd

from indicators import pct_from, percent_change, rolling_high, rolling_low, rsi, sma
from indicators.core import TRADING_DAYS_PER_YEAR

RSI_PERIOD = 14
SMA_PERIODS: tuple[int, ...] = (20, 50, 200)
MONTH_BARS = 21

TECHNICAL_COLUMNS: list[str] = [
    "rsi",
    "sma20", "sma50", "sma200",
    "prev_sma20", "prev_sma50", "prev_sma200",
    "prev_close",
    "high_52w", "low_52w",
    "pct_from_52wk_high", "pct_from_52wk_low",
    "perf_month",
]


def _last(series: pd.Series, offset: int = 1) -> float:
    if len(series) < offset:
        return math.nan
    value = series.iloc[-offset]
    return float(value) if pd.notna(value) else math.nan


def technical_snapshot(bars: pd.DataFrame, price: float | None = None) -> dict[str, float]:
    """Summarise *bars* into the latest indicator readings.

    Args:
        bars: Daily OHLCV frame sorted ascending by timestamp.
        price: Current price; defaults to the last close.  The 52-week
            distances are measured from this price.

    Returns:
        A dict keyed by :data:`TECHNICAL_COLUMNS`.  Values are NaN where the
        history is too short.
    """
    out = {name: math.nan for name in TECHNICAL_COLUMNS}
    if bars is None or bars.empty:
        return out

    close = bars["close"].astype(float)
    current = float(price) if price else _last(close)

    out["rsi"] = _last(rsi(close, RSI_PERIOD))
    for period in SMA_PERIODS:
        avg = sma(close, period)
        out[f"sma{period}"] = _last(avg)
        out[f"prev_sma{period}"] = _last(avg, 2)
    out["prev_close"] = _last(close, 2)

    high = _last(rolling_high(bars["high"].astype(float), TRADING_DAYS_PER_YEAR))
    low = _last(rolling_low(bars["low"].astype(float), TRADING_DAYS_PER_YEAR))
    out["high_52w"] = high
    out["low_52w"] = low
    distances = pct_from(pd.Series([current, current]), pd.Series([high, low]))
    out["pct_from_52wk_high"] = _last(distances, 2)
    out["pct_from_52wk_low"] = _last(distances, 1)

    out["perf_month"] = _last(percent_change(close, MONTH_BARS))
    return out
