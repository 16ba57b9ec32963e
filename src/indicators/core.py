"""Technical indicators implemented as pure functions on pandas Series.

All indicators use only numpy and pandas -- no external TA libraries.
Each function accepts pandas Series input and returns pandas Series.  NaN
values are naturally produced at the beginning of each output where
insufficient lookback data exists.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

TRADING_DAYS_PER_YEAR = 252


# ---------------------------------------------------------------------------
# Trend / Moving Averages
# ---------------------------------------------------------------------------


def sma(series: pd.Series, period: int) -> pd.Series:
    """Simple Moving Average.

    Args:
        series: Price or value series.
        period: Lookback window length.

    Returns:
        A Series of the rolling arithmetic mean.  The first ``period - 1``
        values will be NaN.
    """
    return series.rolling(window=period, min_periods=period).mean()


def crossed_above(
    fast: pd.Series,
    slow: pd.Series,
    prev_fast: pd.Series | None = None,
    prev_slow: pd.Series | None = None,
) -> pd.Series:
    """Boolean Series, True where *fast* moves from <= *slow* to > *slow*.

    The prior values default to the previous bar of each series.  Pass
    *prev_fast* / *prev_slow* explicitly to compare aligned columns, e.g.
    one row per ticker holding today's and yesterday's readings.
    """
    prev_fast = fast.shift(1) if prev_fast is None else prev_fast
    prev_slow = slow.shift(1) if prev_slow is None else prev_slow
    return (fast > slow) & (prev_fast <= prev_slow)


def crossed_below(
    fast: pd.Series,
    slow: pd.Series,
    prev_fast: pd.Series | None = None,
    prev_slow: pd.Series | None = None,
) -> pd.Series:
    """Boolean Series, True where *fast* moves from >= *slow* to < *slow*."""
    prev_fast = fast.shift(1) if prev_fast is None else prev_fast
    prev_slow = slow.shift(1) if prev_slow is None else prev_slow
    return (fast < slow) & (prev_fast >= prev_slow)


# ---------------------------------------------------------------------------
# Momentum
# ---------------------------------------------------------------------------


def rsi(series: pd.Series, period: int = 14) -> pd.Series:
    """Relative Strength Index using Wilder's smoothing method.

    Wilder's smoothing is equivalent to an EMA with ``alpha = 1 / period``
    (i.e. ``com = period - 1``).

    Args:
        series: Price series (typically close prices).
        period: Lookback period (default 14).

    Returns:
        RSI values between 0 and 100.  The first ``period`` values will be
        NaN.
    """
    delta = series.diff()

    gain = delta.where(delta > 0, 0.0)
    loss = (-delta).where(delta < 0, 0.0)

    # Wilder's smoothing: EMA with alpha = 1/period  =>  com = period - 1
    avg_gain = gain.ewm(com=period - 1, min_periods=period, adjust=False).mean()
    avg_loss = loss.ewm(com=period - 1, min_periods=period, adjust=False).mean()

    rs = avg_gain / avg_loss
    result = 100.0 - (100.0 / (1.0 + rs))

    # Where avg_loss is zero, RSI is 100 (all gains, no losses).
    result = result.where(avg_loss != 0, 100.0)

    # Ensure the first `period` values are NaN (insufficient lookback).
    result.iloc[:period] = np.nan

    return result


def percent_change(series: pd.Series, periods: int) -> pd.Series:
    """Percent change over *periods* bars, expressed in percent (5.0 == 5%)."""
    return series.pct_change(periods=periods) * 100.0


# ---------------------------------------------------------------------------
# Range
# ---------------------------------------------------------------------------


def rolling_high(high: pd.Series, period: int = TRADING_DAYS_PER_YEAR) -> pd.Series:
    """Highest high over the trailing *period* bars (partial windows allowed)."""
    return high.rolling(window=period, min_periods=1).max()


def rolling_low(low: pd.Series, period: int = TRADING_DAYS_PER_YEAR) -> pd.Series:
    """Lowest low over the trailing *period* bars (partial windows allowed)."""
    return low.rolling(window=period, min_periods=1).min()


def pct_from(price: pd.Series, reference: pd.Series) -> pd.Series:
    """Distance of *price* from *reference* in percent (negative when below)."""
    return (price - reference) / reference.replace(0.0, np.nan) * 100.0
