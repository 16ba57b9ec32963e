"""Vectorised filter rules mapping criteria fields onto universe columns.

Each :class:`FieldFilter` turns one criteria dimension into a boolean mask
over a universe frame.  A row whose column value is missing (NaN) never
satisfies a constraint.  Filters are grouped by the *stage* at which their
data becomes available:

* ``snapshot``  -- columns present on the provider's universe snapshot;
* ``reference`` -- sector, exchange, market cap and index membership, which
  may need a details lookup first;
* ``technical`` -- indicator columns derived from daily bars.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

import pandas as pd

from indicators import crossed_above, crossed_below
from screener.models import (
    HighLow52W,
    RSIFilter,
    ScreenerCriteria,
    SMA50vs200,
    SMAFilter,
)
from screener.vocabulary import MARKET_CAP_RANGES

STAGES: tuple[str, ...] = ("snapshot", "reference", "technical")

# Percent-from-extreme thresholds for the 52-week filters.
NEW_EXTREME_PCT = 5.0
NEAR_EXTREME_PCT = 10.0

MaskFn = Callable[[pd.DataFrame, Any], pd.Series]


@dataclass(frozen=True)
class FieldFilter:
    """Filter rule for one criteria field."""

    field: str
    stage: str
    mask: MaskFn


def _col(frame: pd.DataFrame, name: str) -> pd.Series:
    if name in frame.columns:
        return pd.to_numeric(frame[name], errors="coerce")
    return pd.Series(float("nan"), index=frame.index)


def _at_least(column: str) -> MaskFn:
    return lambda frame, value: _col(frame, column) >= value


def _at_most(column: str) -> MaskFn:
    return lambda frame, value: _col(frame, column) <= value


# ---------------------------------------------------------------------------
# Reference filters
# ---------------------------------------------------------------------------


def _market_cap_tier(frame: pd.DataFrame, tier: Any) -> pd.Series:
    low, high = MARKET_CAP_RANGES[tier]
    cap = _col(frame, "market_cap")
    return (cap >= low) & (cap < high)


def _explicit_cap(op: str) -> MaskFn:
    def apply(frame: pd.DataFrame, value: float) -> pd.Series:
        cap = _col(frame, "market_cap")
        return cap >= value if op == "min" else cap <= value
    return apply


def _in_set(column: str, normalise: Callable[[str], str]) -> MaskFn:
    def apply(frame: pd.DataFrame, values: Iterable[str]) -> pd.Series:
        wanted = {normalise(v) for v in values}
        return frame[column].fillna("").astype(str).map(normalise).isin(wanted)
    return apply


# ---------------------------------------------------------------------------
# Technical filters
# ---------------------------------------------------------------------------

_RSI_RULES: Mapping[RSIFilter, Callable[[pd.Series], pd.Series]] = {
    RSIFilter.OVERSOLD_30: lambda r: r < 30,
    RSIFilter.OVERSOLD_40: lambda r: r < 40,
    RSIFilter.OVERBOUGHT_60: lambda r: r > 60,
    RSIFilter.OVERBOUGHT_70: lambda r: r > 70,
    RSIFilter.NOT_OVERSOLD: lambda r: r >= 30,
    RSIFilter.NOT_OVERBOUGHT: lambda r: r <= 70,
}


def _rsi(frame: pd.DataFrame, value: RSIFilter) -> pd.Series:
    return _RSI_RULES[value](_col(frame, "rsi"))


def _price_vs_sma(period: int) -> MaskFn:
    def apply(frame: pd.DataFrame, value: SMAFilter) -> pd.Series:
        price = _col(frame, "price")
        avg = _col(frame, f"sma{period}")
        if value is SMAFilter.PRICE_ABOVE:
            return price > avg
        if value is SMAFilter.PRICE_BELOW:
            return price < avg
        prev_close = _col(frame, "prev_close")
        prev_avg = _col(frame, f"prev_sma{period}")
        if value is SMAFilter.CROSS_ABOVE:
            return crossed_above(price, avg, prev_close, prev_avg)
        return crossed_below(price, avg, prev_close, prev_avg)
    return apply


def _sma50_vs_200(frame: pd.DataFrame, value: SMA50vs200) -> pd.Series:
    fast, slow = _col(frame, "sma50"), _col(frame, "sma200")
    if value is SMA50vs200.ABOVE:
        return fast > slow
    if value is SMA50vs200.BELOW:
        return fast < slow
    prev_fast, prev_slow = _col(frame, "prev_sma50"), _col(frame, "prev_sma200")
    if value is SMA50vs200.CROSS_ABOVE:
        return crossed_above(fast, slow, prev_fast, prev_slow)
    return crossed_below(fast, slow, prev_fast, prev_slow)


def _high_low_52w(frame: pd.DataFrame, value: HighLow52W) -> pd.Series:
    from_high = _col(frame, "pct_from_52wk_high")
    from_low = _col(frame, "pct_from_52wk_low")
    if value is HighLow52W.NEW_HIGH:
        return from_high >= -NEW_EXTREME_PCT
    if value is HighLow52W.NEW_LOW:
        return from_low <= NEW_EXTREME_PCT
    if value is HighLow52W.NEAR_HIGH:
        return from_high >= -NEAR_EXTREME_PCT
    return from_low <= NEAR_EXTREME_PCT


FILTERS: tuple[FieldFilter, ...] = (
    # snapshot
    FieldFilter("min_price", "snapshot", _at_least("price")),
    FieldFilter("max_price", "snapshot", _at_most("price")),
    FieldFilter("min_volume", "snapshot", _at_least("volume")),
    FieldFilter("max_volume", "snapshot", _at_most("volume")),
    FieldFilter("min_relative_volume", "snapshot", _at_least("relative_volume")),
    FieldFilter("min_perf_today", "snapshot", _at_least("change_percent")),
    FieldFilter("max_perf_today", "snapshot", _at_most("change_percent")),
    FieldFilter("min_gap_up", "snapshot", _at_least("gap_percent")),
    FieldFilter("min_gap_down", "snapshot", lambda f, v: _col(f, "gap_percent") <= -v),
    FieldFilter("min_pe", "snapshot", _at_least("pe")),
    FieldFilter("max_pe", "snapshot", _at_most("pe")),
    FieldFilter("min_dividend_yield", "snapshot", _at_least("dividend_yield")),
    FieldFilter("min_roe", "snapshot", _at_least("roe")),
    FieldFilter("min_net_margin", "snapshot", _at_least("net_margin")),
    FieldFilter("max_debt_equity", "snapshot", _at_most("debt_equity")),
    FieldFilter("min_eps_growth_this_year", "snapshot", _at_least("eps_growth_this_year")),
    FieldFilter("min_float_short", "snapshot", _at_least("float_short")),
    # reference
    FieldFilter("market_cap", "reference", _market_cap_tier),
    FieldFilter("min_market_cap", "reference", _explicit_cap("min")),
    FieldFilter("max_market_cap", "reference", _explicit_cap("max")),
    FieldFilter("sectors", "reference", _in_set("sector", str.lower)),
    FieldFilter("exchanges", "reference", _in_set("exchange", str.upper)),
    # technical
    FieldFilter("min_perf_month", "technical", _at_least("perf_month")),
    FieldFilter("rsi_filter", "technical", _rsi),
    FieldFilter("sma20", "technical", _price_vs_sma(20)),
    FieldFilter("sma50", "technical", _price_vs_sma(50)),
    FieldFilter("sma200", "technical", _price_vs_sma(200)),
    FieldFilter("sma50_vs_200", "technical", _sma50_vs_200),
    FieldFilter("high_low_52w", "technical", _high_low_52w),
)


def active_filters(criteria: ScreenerCriteria, stage: str) -> list[tuple[FieldFilter, Any]]:
    """Return ``(filter, value)`` pairs for *stage* that *criteria* constrains."""
    if stage not in STAGES:
        raise ValueError(f"Unknown filter stage '{stage}'")
    pairs = []
    for rule in FILTERS:
        if rule.stage != stage:
            continue
        value = getattr(criteria, rule.field)
        if value is None:
            continue
        # A tier supersedes explicit market-cap bounds.
        if rule.field in ("min_market_cap", "max_market_cap") and criteria.market_cap is not None:
            continue
        pairs.append((rule, value))
    return pairs


def apply_filters(frame: pd.DataFrame, criteria: ScreenerCriteria, stage: str) -> pd.DataFrame:
    """Return the rows of *frame* satisfying every *stage* constraint."""
    if frame.empty:
        return frame
    mask = pd.Series(True, index=frame.index)
    for rule, value in active_filters(criteria, stage):
        mask &= rule.mask(frame, value).fillna(False).astype(bool)
    return frame[mask]


def index_members(indexes: Iterable[str], constituents: Mapping[str, Iterable[str]]) -> set[str]:
    """Union of the configured constituent tickers for *indexes*."""
    members: set[str] = set()
    for name in indexes:
        members.update(str(t).upper() for t in constituents.get(name) or ())
    return members
