"""Technical indicators module.

Pure-function implementations built on numpy and pandas -- no external TA
library dependencies.
"""

from indicators.core import (
    crossed_above,
    crossed_below,
    pct_from,
    percent_change,
    rolling_high,
    rolling_low,
    rsi,
    sma,
)

__all__ = [
    "crossed_above",
    "crossed_below",
    "pct_from",
    "percent_change",
    "rolling_high",
    "rolling_low",
    "rsi",
    "sma",
]
