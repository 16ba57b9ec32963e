"""Read-only lookup tables shared by the parser, executor and explanation.

All tables are built once at import time and exposed as immutable mappings
or tuples.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from screener.models import MarketCapSize

# ---------------------------------------------------------------------------
# Sector taxonomy (canonical order)
# ---------------------------------------------------------------------------

SECTORS: tuple[str, ...] = (
    "Technology",
    "Healthcare",
    "Financial Services",
    "Consumer Cyclical",
    "Communication Services",
    "Industrials",
    "Consumer Defensive",
    "Energy",
    "Basic Materials",
    "Real Estate",
    "Utilities",
)

# Query keyword (regex alternation, matched on word boundaries) -> sectors.
SECTOR_KEYWORDS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    r"tech|technology|software|semiconductors?": ("Technology",),
    r"health|healthcare|biotech|pharma|medical": ("Healthcare",),
    r"financials?|finance|banks?|banking|insurance": ("Financial Services",),
    r"consumer": ("Consumer Cyclical", "Consumer Defensive"),
    r"retail": ("Consumer Cyclical",),
    r"energy|oil|gas": ("Energy",),
    r"utility|utilities": ("Utilities",),
    r"industrials?|aerospace": ("Industrials",),
    r"materials|mining|chemicals": ("Basic Materials",),
    r"real estate|reits?": ("Real Estate",),
    r"communications?|telecom|media": ("Communication Services",),
})

# ---------------------------------------------------------------------------
# Market-cap tiers
# ---------------------------------------------------------------------------

# Checked in order; the first tier word present in the query wins.
MARKET_CAP_KEYWORDS: tuple[tuple[str, MarketCapSize], ...] = (
    ("mega", MarketCapSize.MEGA),
    ("large", MarketCapSize.LARGE),
    ("mid", MarketCapSize.MID),
    ("small", MarketCapSize.SMALL),
    ("micro", MarketCapSize.MICRO),
    ("nano", MarketCapSize.NANO),
    ("penny", MarketCapSize.NANO),
)

# Lower bound inclusive, upper bound exclusive.
MARKET_CAP_RANGES: Mapping[MarketCapSize, tuple[float, float]] = MappingProxyType({
    MarketCapSize.MEGA: (200e9, float("inf")),
    MarketCapSize.LARGE: (10e9, 200e9),
    MarketCapSize.MID: (2e9, 10e9),
    MarketCapSize.SMALL: (300e6, 2e9),
    MarketCapSize.MICRO: (50e6, 300e6),
    MarketCapSize.NANO: (0.0, 50e6),
})

MAGNITUDE_SUFFIXES: Mapping[str, float] = MappingProxyType({
    "k": 1e3,
    "thousand": 1e3,
    "m": 1e6,
    "mm": 1e6,
    "mn": 1e6,
    "million": 1e6,
    "b": 1e9,
    "bn": 1e9,
    "billion": 1e9,
    "t": 1e12,
    "trillion": 1e12,
})

# ---------------------------------------------------------------------------
# Exchanges and indexes
# ---------------------------------------------------------------------------

EXCHANGES: tuple[str, ...] = ("NYSE", "NASDAQ", "AMEX")

# Polygon MIC codes -> display exchange.
EXCHANGE_CODES: Mapping[str, str] = MappingProxyType({
    "XNYS": "NYSE",
    "XNAS": "NASDAQ",
    "XASE": "AMEX",
    "ARCX": "ARCX",
    "BATS": "BATS",
})

INDEX_KEYWORDS: tuple[tuple[str, str], ...] = (
    (r"nasdaq[ -]?100", "nasdaq100"),
    (r"s&p ?500|sp ?500", "sp500"),
    (r"djia|dow jones|dow", "djia"),
    (r"russell ?2000", "russell2000"),
)

INDEXES: tuple[str, ...] = ("sp500", "djia", "nasdaq100", "russell2000")
