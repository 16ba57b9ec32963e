"""Natural-language query parser.

Turns free text such as ``"small cap tech gainers under $20"`` into a
:class:`~screener.models.ScreenerCriteria`.  Matching is deterministic:
lower-cased keyword and phrase rules on word boundaries, no fuzzy matching
and no external model.  Multi-word phrases are consumed before single words
so that e.g. ``"gap up"`` does not also read as ``"up"``.

Unrecognised text contributes nothing; a query with no recognised keyword
produces empty criteria.  :func:`parse_query` never raises.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable

from screener.models import (
    HighLow52W,
    MarketCapSize,
    RSIFilter,
    ScreenerCriteria,
    SMA50vs200,
    SMAFilter,
)
from screener.vocabulary import (
    INDEX_KEYWORDS,
    MAGNITUDE_SUFFIXES,
    MARKET_CAP_KEYWORDS,
    SECTOR_KEYWORDS,
    SECTORS,
)

logger = logging.getLogger(__name__)

_NUM = r"(\d[\d,]*(?:\.\d+)?)"
_SUFFIX = r"(k|m|mm|mn|b|bn|t|thousand|million|billion|trillion)?"
# A number is not a price when followed by a percent, multiple, magnitude or period.
_NOT_PRICE = (
    r"(?!\s*(?:%|x\b|k\b|m\b|mm\b|b\b|bn\b|t\b|thousand|million|billion|trillion"
    r"|[- ]?days?\b|[- ]?dma\b|[- ]?sma\b))"
)
_SEPARATOR = " ; "


def _number(raw: str) -> float:
    return float(raw.replace(",", ""))


class _QueryText:
    """Mutable view of the query; consumed phrases are blanked out."""

    def __init__(self, text: str) -> None:
        self.value = text

    def take(self, pattern: str) -> list[re.Match[str]]:
        rx = re.compile(pattern)
        matches = list(rx.finditer(self.value))
        if matches:
            self.value = rx.sub(_SEPARATOR, self.value)
        return matches

    def has(self, pattern: str) -> bool:
        return bool(self.take(pattern))

    def peek(self, pattern: str) -> bool:
        return re.search(pattern, self.value) is not None


# ---------------------------------------------------------------------------
# Rule groups, applied in order by parse_query()
# ---------------------------------------------------------------------------

def _market_cap(text: _QueryText, out: dict[str, Any]) -> None:
    bounds: dict[str, float] = {}
    pattern = (
        r"\bmarket[ -]?cap(?:italization)?\s+(over|above|greater than|more than|under|below|less than)"
        rf"\s+\$?{_NUM}\s*{_SUFFIX}\b"
    )
    for m in text.take(pattern):
        value = _number(m.group(2)) * MAGNITUDE_SUFFIXES.get(m.group(3) or "", 1.0)
        key = "min_market_cap" if m.group(1) in ("over", "above", "greater than", "more than") else "max_market_cap"
        bounds[key] = value

    tier: MarketCapSize | None = None
    for word, size in MARKET_CAP_KEYWORDS:
        if text.peek(rf"\b{word}(?:[ -]?caps?)?\b"):
            tier = size
            break
    if tier is not None:
        for word, _ in MARKET_CAP_KEYWORDS:
            text.take(rf"\b{word}(?:[ -]?caps?)?\b")
        # A tier and explicit bounds are mutually exclusive; the tier wins.
        out["market_cap"] = tier
    else:
        out.update(bounds)


def _indexes_and_exchanges(text: _QueryText, out: dict[str, Any]) -> None:
    indexes = [index for pattern, index in INDEX_KEYWORDS if text.has(rf"\b(?:{pattern})\b")]
    if indexes:
        out["indexes"] = tuple(indexes)

    exchanges = [
        name.upper() for name in ("nyse", "nasdaq", "amex") if text.has(rf"\b{name}\b")
    ]
    if exchanges:
        out["exchanges"] = tuple(exchanges)


def _sectors(text: _QueryText, out: dict[str, Any]) -> None:
    matched: set[str] = set()
    for pattern, sectors in SECTOR_KEYWORDS.items():
        if text.has(rf"\b(?:{pattern})\b"):
            matched.update(sectors)
    if matched:
        out["sectors"] = tuple(s for s in SECTORS if s in matched)


def _rsi_filter(threshold: float, oversold: bool) -> RSIFilter:
    if oversold:
        return RSIFilter.OVERSOLD_30 if threshold <= 30 else RSIFilter.OVERSOLD_40
    return RSIFilter.OVERBOUGHT_70 if threshold >= 70 else RSIFilter.OVERBOUGHT_60


def _technicals(text: _QueryText, out: dict[str, Any]) -> None:
    for m in text.take(rf"\brsi\s*(under|below|less than|<)\s*{_NUM}"):
        out["rsi_filter"] = _rsi_filter(_number(m.group(2)), oversold=True)
    for m in text.take(rf"\brsi\s*(over|above|greater than|>)\s*{_NUM}"):
        out["rsi_filter"] = _rsi_filter(_number(m.group(2)), oversold=False)
    if text.has(r"\boversold\b"):
        out["rsi_filter"] = RSIFilter.OVERSOLD_30
    if text.has(r"\boverbought\b"):
        out["rsi_filter"] = RSIFilter.OVERBOUGHT_70

    if text.has(r"\bgolden cross(?:es|ing)?\b"):
        out["sma50_vs_200"] = SMA50vs200.CROSS_ABOVE
    if text.has(r"\bdeath cross(?:es|ing)?\b"):
        out["sma50_vs_200"] = SMA50vs200.CROSS_BELOW

    ma = r"(?:[- ]?(?:days?|dma|sma|ma)(?: moving average)?)"
    if text.has(rf"\babove (?:the )?(?:200{ma}?|sma|moving average)\b"):
        out["sma200"] = SMAFilter.PRICE_ABOVE
    if text.has(rf"\bbelow (?:the )?(?:200{ma}?|sma|moving average)\b"):
        out["sma200"] = SMAFilter.PRICE_BELOW
    for period in (50, 20):
        if text.has(rf"\babove (?:the )?{period}{ma}\b"):
            out[f"sma{period}"] = SMAFilter.PRICE_ABOVE
        if text.has(rf"\bbelow (?:the )?{period}{ma}\b"):
            out[f"sma{period}"] = SMAFilter.PRICE_BELOW

    if text.has(r"\bnear (?:the |its )?(?:52[ -]?week )?highs?\b"):
        out["high_low_52w"] = HighLow52W.NEAR_HIGH
    if text.has(r"\bnear (?:the |its )?(?:52[ -]?week )?lows?\b"):
        out["high_low_52w"] = HighLow52W.NEAR_LOW
    if text.has(r"\b52[ -]?week highs?\b|\bnew highs?\b"):
        out["high_low_52w"] = HighLow52W.NEW_HIGH
    if text.has(r"\b52[ -]?week lows?\b|\bnew lows?\b"):
        out["high_low_52w"] = HighLow52W.NEW_LOW
    if text.has(r"\bbreak ?outs?\b|\bbreaking out\b"):
        out["high_low_52w"] = HighLow52W.NEW_HIGH
        out["min_relative_volume"] = 2.0


def _gaps_and_shorts(text: _QueryText, out: dict[str, Any]) -> None:
    if text.has(r"\bgap(?:s|ped|ping)? up\b"):
        out["min_gap_up"] = 3.0
    if text.has(r"\bgap(?:s|ped|ping)? down\b"):
        out["min_gap_down"] = 3.0

    if text.has(r"\bheavily shorted\b"):
        out["min_float_short"] = 20.0
    if text.has(r"\bshorted\b|\bshort squeeze\b|\bshort interest\b"):
        out.setdefault("min_float_short", 15.0)


def _volume(text: _QueryText, out: dict[str, Any]) -> None:
    if text.has(r"\b(?:volume spikes?|unusual volume|high volume|heavy volume)\b"):
        out["min_relative_volume"] = 3.0
    if text.has(r"\b(?:most )?(?:active|liquid)\b"):
        out["min_volume"] = 1_000_000.0


def _performance(text: _QueryText, out: dict[str, Any]) -> None:
    for m in text.take(rf"\bup\s+(?:over |more than )?{_NUM}\s*%"):
        out["min_perf_today"] = _number(m.group(1))
    for m in text.take(rf"\bdown\s+(?:over |more than )?{_NUM}\s*%"):
        out["max_perf_today"] = -_number(m.group(1))

    if text.has(r"\b(?:gainers?|gaining|up|green)\b"):
        out.setdefault("min_perf_today", 0.0)
    if text.has(r"\b(?:losers?|losing|down|red)\b"):
        out.setdefault("max_perf_today", 0.0)
    if text.has(r"\b(?:momentum|hot)\b"):
        out["min_perf_month"] = 10.0


def _fundamentals(text: _QueryText, out: dict[str, Any]) -> None:
    if text.has(r"\bhigh[ -](?:dividends?|yield(?:ing)?)\b"):
        out["min_dividend_yield"] = 4.0
    if text.has(r"\b(?:dividends?|income|yield(?:ing)?)\b"):
        out.setdefault("min_dividend_yield", 3.0)

    for m in text.take(rf"\bp/?e\s*(?:ratio\s*)?(?:under|below|less than|<)\s*{_NUM}"):
        out["max_pe"] = _number(m.group(1))
    if text.has(r"\b(?:value|cheap|low p/?e)\b"):
        out.setdefault("max_pe", 15.0)

    if text.has(r"\bhigh roe\b"):
        out["min_roe"] = 15.0
    if text.has(r"\blow debt\b"):
        out["max_debt_equity"] = 0.5
    if text.has(r"\bgrowth\b"):
        out["min_eps_growth_this_year"] = 15.0
    if text.has(r"\bprofitable\b"):
        out["min_net_margin"] = 0.0


def _price(text: _QueryText, out: dict[str, Any]) -> None:
    for m in text.take(rf"\bbetween\s+\$?{_NUM}{_NOT_PRICE}\s+and\s+\$?{_NUM}{_NOT_PRICE}"):
        low, high = sorted((_number(m.group(1)), _number(m.group(2))))
        out["min_price"] = low
        out["max_price"] = high
    for m in text.take(rf"\b(?:under|below|less than|cheaper than)\s+\$?{_NUM}{_NOT_PRICE}"):
        out["max_price"] = _number(m.group(1))
    for m in text.take(rf"\b(?:above|over|more than|greater than)\s+\$?{_NUM}{_NOT_PRICE}"):
        out["min_price"] = _number(m.group(1))


_RULES: tuple[Callable[[_QueryText, dict[str, Any]], None], ...] = (
    _market_cap,
    _indexes_and_exchanges,
    _technicals,
    _gaps_and_shorts,
    _volume,
    _fundamentals,
    _price,
    _performance,
    _sectors,
)


def parse_query(query: str | None) -> ScreenerCriteria:
    """Parse a free-text screen query into structured criteria.

    Args:
        query: Arbitrary user text.  ``None`` and blank strings are accepted.

    Returns:
        A (possibly empty) :class:`ScreenerCriteria`.
    """
    normalized = " ".join(str(query or "").lower().split())
    if not normalized:
        return ScreenerCriteria()

    text = _QueryText(normalized)
    out: dict[str, Any] = {}
    for rule in _RULES:
        rule(text, out)

    criteria = ScreenerCriteria(**out)
    logger.debug("Parsed %r -> %s", query, criteria.to_dict())
    return criteria
