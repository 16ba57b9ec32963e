"""Typed records for screen criteria, results, requests and responses.

Every criteria dimension is an explicit optional field so that absence means
"no constraint on this dimension".  Wire (JSON) names are camelCase and are
declared per field through dataclass metadata; :func:`to_wire` and
:func:`from_wire` translate in both directions.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, TypeVar


class MarketCapSize(Enum):
    """Market-capitalisation tier."""

    MEGA = "mega"
    LARGE = "large"
    MID = "mid"
    SMALL = "small"
    MICRO = "micro"
    NANO = "nano"


class RSIFilter(Enum):
    OVERSOLD_30 = "oversold_30"
    OVERSOLD_40 = "oversold_40"
    OVERBOUGHT_60 = "overbought_60"
    OVERBOUGHT_70 = "overbought_70"
    NOT_OVERSOLD = "not_oversold"
    NOT_OVERBOUGHT = "not_overbought"


class SMAFilter(Enum):
    """Relationship between price and a single moving average."""

    PRICE_ABOVE = "price_above"
    PRICE_BELOW = "price_below"
    CROSS_ABOVE = "cross_above"
    CROSS_BELOW = "cross_below"


class SMA50vs200(Enum):
    ABOVE = "above"
    BELOW = "below"
    CROSS_ABOVE = "cross_above"
    CROSS_BELOW = "cross_below"


class HighLow52W(Enum):
    NEW_HIGH = "new_high"
    NEW_LOW = "new_low"
    NEAR_HIGH = "near_high"
    NEAR_LOW = "near_low"


SORT_FIELDS: tuple[str, ...] = ("volume", "change", "price", "marketCap", "ticker")
SORT_ORDERS: tuple[str, ...] = ("asc", "desc")


def _wire(name: str, *, enum: type[Enum] | None = None, seq: bool = False) -> Any:
    """Declare an optional field with its camelCase wire name."""
    return field(default=None, metadata={"wire": name, "enum": enum, "seq": seq})


# ---------------------------------------------------------------------------
# Wire helpers
# ---------------------------------------------------------------------------

T = TypeVar("T")


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return [_encode(v) for v in value]
    return value


def to_wire(obj: Any, *, omit_none: bool = True) -> dict[str, Any]:
    """Serialise a dataclass into a camelCase JSON-ready dict."""
    out: dict[str, Any] = {}
    for f in dataclasses.fields(obj):
        key = f.metadata.get("wire")
        if key is None:
            continue
        value = getattr(obj, f.name)
        if value is None and omit_none:
            continue
        out[key] = _encode(value)
    return out


def _decode(f: dataclasses.Field, raw: Any) -> Any:
    if raw is None:
        return None
    enum_cls = f.metadata.get("enum")
    if f.metadata.get("seq"):
        items = [raw] if isinstance(raw, str) else list(raw)
        return tuple(str(item) for item in items) or None
    if enum_cls is not None:
        if isinstance(raw, enum_cls):
            return raw
        try:
            return enum_cls(str(raw))
        except ValueError:
            allowed = ", ".join(m.value for m in enum_cls)
            raise ValueError(
                f"Invalid value '{raw}' for {f.metadata['wire']}. Allowed: {allowed}"
            ) from None
    return raw


def from_wire(cls: type[T], data: Mapping[str, Any]) -> dict[str, Any]:
    """Collect constructor kwargs for *cls* from camelCase or snake_case keys."""
    kwargs: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        key = f.metadata.get("wire")
        if key is not None and key in data:
            kwargs[f.name] = _decode(f, data[key])
        elif f.name in data:
            kwargs[f.name] = _decode(f, data[f.name])
    return kwargs


# ---------------------------------------------------------------------------
# ScreenerCriteria
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScreenerCriteria:
    """Structured filter intent.  ``None`` on a field means unconstrained.

    ``min <= max`` is not enforced where both bounds are present; an
    inverted range simply matches nothing.
    """

    # Descriptive
    market_cap: MarketCapSize | None = _wire("marketCap", enum=MarketCapSize)
    min_market_cap: float | None = _wire("minMarketCap")
    max_market_cap: float | None = _wire("maxMarketCap")
    min_price: float | None = _wire("minPrice")
    max_price: float | None = _wire("maxPrice")
    sectors: tuple[str, ...] | None = _wire("sector", seq=True)
    exchanges: tuple[str, ...] | None = _wire("exchange", seq=True)
    indexes: tuple[str, ...] | None = _wire("index", seq=True)
    min_volume: float | None = _wire("minVolume")
    max_volume: float | None = _wire("maxVolume")
    min_relative_volume: float | None = _wire("minRelativeVolume")

    # Performance
    min_perf_today: float | None = _wire("minPerfToday")
    max_perf_today: float | None = _wire("maxPerfToday")
    min_perf_month: float | None = _wire("minPerfMonth")
    min_gap_up: float | None = _wire("minGapUp")
    min_gap_down: float | None = _wire("minGapDown")

    # Fundamentals
    min_pe: float | None = _wire("minPE")
    max_pe: float | None = _wire("maxPE")
    min_dividend_yield: float | None = _wire("minDividendYield")
    min_roe: float | None = _wire("minROE")
    min_net_margin: float | None = _wire("minNetMargin")
    max_debt_equity: float | None = _wire("maxDebtEquity")
    min_eps_growth_this_year: float | None = _wire("minEPSGrowthThisYear")
    min_float_short: float | None = _wire("minFloatShort")

    # Technical
    rsi_filter: RSIFilter | None = _wire("rsiFilter", enum=RSIFilter)
    sma20: SMAFilter | None = _wire("sma20", enum=SMAFilter)
    sma50: SMAFilter | None = _wire("sma50", enum=SMAFilter)
    sma200: SMAFilter | None = _wire("sma200", enum=SMAFilter)
    sma50_vs_200: SMA50vs200 | None = _wire("sma50vs200", enum=SMA50vs200)
    high_low_52w: HighLow52W | None = _wire("highLow52W", enum=HighLow52W)

    def active_fields(self) -> dict[str, Any]:
        """Return ``{field_name: value}`` for every constrained dimension."""
        return {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if getattr(self, f.name) is not None
        }

    def is_empty(self) -> bool:
        return not self.active_fields()

    def uses_technicals(self) -> bool:
        """True when any filter needs indicator data computed from daily bars."""
        return any(
            getattr(self, name) is not None
            for name in (
                "rsi_filter", "sma20", "sma50", "sma200", "sma50_vs_200",
                "high_low_52w", "min_perf_month",
            )
        )

    def replace(self, **changes: Any) -> ScreenerCriteria:
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return to_wire(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ScreenerCriteria:
        """Build criteria from a wire dict.

        Unknown keys are ignored; numeric fields are coerced to ``float``.

        Raises:
            ValueError: On a non-mapping *data*, an invalid enum value or a
                non-numeric bound.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError("criteria must be a JSON object")
        kwargs = from_wire(cls, data)
        for f in dataclasses.fields(cls):
            value = kwargs.get(f.name)
            if value is None or f.metadata.get("enum") or f.metadata.get("seq"):
                continue
            try:
                kwargs[f.name] = float(value)
            except (TypeError, ValueError, OverflowError):
                raise ValueError(
                    f"Invalid numeric value '{value}' for {f.metadata['wire']}"
                ) from None
        if kwargs.get("exchanges"):
            kwargs["exchanges"] = tuple(e.upper() for e in kwargs["exchanges"])
        if kwargs.get("indexes"):
            kwargs["indexes"] = tuple(i.lower() for i in kwargs["indexes"])
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# ScreenerResult
# ---------------------------------------------------------------------------

def _num(name: str) -> Any:
    return field(default=0.0, metadata={"wire": name})


def _opt(name: str) -> Any:
    return field(default=None, metadata={"wire": name})


@dataclass(frozen=True)
class ScreenerResult:
    """Snapshot of one tradable instrument produced by a screen execution."""

    ticker: str = field(default="", metadata={"wire": "ticker"})
    company: str = field(default="", metadata={"wire": "company"})
    sector: str = field(default="", metadata={"wire": "sector"})
    industry: str = field(default="", metadata={"wire": "industry"})
    exchange: str = field(default="", metadata={"wire": "exchange"})
    price: float = _num("price")
    change: float = _num("change")
    change_percent: float = _num("changePercent")
    volume: float = _num("volume")
    avg_volume: float = _num("avgVolume")
    relative_volume: float = _num("relativeVolume")
    market_cap: float = _num("marketCap")

    pe: float | None = _opt("pe")
    dividend_yield: float | None = _opt("dividendYield")
    roe: float | None = _opt("roe")
    net_margin: float | None = _opt("netMargin")
    debt_equity: float | None = _opt("debtEquity")
    eps_growth_this_year: float | None = _opt("epsGrowthThisYear")
    float_short: float | None = _opt("floatShort")

    gap_percent: float | None = _opt("gapPercent")
    perf_month: float | None = _opt("perfMonth")
    rsi: float | None = _opt("rsi")
    sma20: float | None = _opt("sma20")
    sma50: float | None = _opt("sma50")
    sma200: float | None = _opt("sma200")
    high_52w: float | None = _opt("high52W")
    low_52w: float | None = _opt("low52W")
    pct_from_52wk_high: float | None = _opt("pctFrom52WkHigh")
    pct_from_52wk_low: float | None = _opt("pctFrom52WkLow")

    match_score: float = _num("matchScore")

    def to_dict(self) -> dict[str, Any]:
        return to_wire(self, omit_none=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScreenerResult:
        kwargs = from_wire(cls, data)
        for f in dataclasses.fields(cls):
            if f.name not in kwargs:
                continue
            value = kwargs[f.name]
            if isinstance(f.default, str):
                kwargs[f.name] = "" if value is None else str(value)
            elif isinstance(f.default, float):
                kwargs[f.name] = float(value) if value is not None else 0.0
            elif value is not None:
                kwargs[f.name] = float(value)
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Requests / responses
# ---------------------------------------------------------------------------

DEFAULT_LIMIT = 100


@dataclass(frozen=True)
class ScreenRequest:
    """Criteria plus ordering and paging for one screen execution."""

    criteria: ScreenerCriteria = field(default_factory=ScreenerCriteria)
    sort_by: str = "volume"
    sort_order: str = "desc"
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    def __post_init__(self) -> None:
        if self.sort_by not in SORT_FIELDS:
            raise ValueError(
                f"Unknown sortBy '{self.sort_by}'. Allowed: {', '.join(SORT_FIELDS)}"
            )
        if self.sort_order not in SORT_ORDERS:
            raise ValueError(
                f"Unknown sortOrder '{self.sort_order}'. Allowed: {', '.join(SORT_ORDERS)}"
            )
        if self.limit < 0 or self.offset < 0:
            raise ValueError("limit and offset must be non-negative")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScreenRequest:
        """Build a request from a wire dict; an explicit ``limit`` of 0 is kept.

        Raises:
            ValueError: On malformed criteria, sort or paging values.
        """
        return cls(
            criteria=ScreenerCriteria.from_dict(data.get("criteria")),
            sort_by=data.get("sortBy") or "volume",
            sort_order=data.get("sortOrder") or "desc",
            limit=_int_value(data, "limit", DEFAULT_LIMIT),
            offset=_int_value(data, "offset", 0),
        )


def _int_value(data: Mapping[str, Any], key: str, default: int) -> int:
    value = data.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"Invalid integer value '{value}' for {key}") from None


@dataclass
class ScreenerResponse:
    """Outcome of a screen: the page of results plus the unpaged total."""

    criteria: ScreenerCriteria
    results: list[ScreenerResult]
    total_count: int
    explanation: str
    source: str = "polygon"
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    execution_time_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "criteria": self.criteria.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "totalCount": self.total_count,
            "explanation": self.explanation,
            "source": self.source,
            "timestamp": self.timestamp,
            "executionTimeMs": round(self.execution_time_ms, 2),
        }


@dataclass(frozen=True)
class QuickScreen:
    """Built-in, non-editable preset."""

    key: str
    name: str
    description: str
    criteria: ScreenerCriteria
    category: str
    sort_by: str = "volume"
    sort_order: str = "desc"

    def to_request(self, limit: int = DEFAULT_LIMIT) -> ScreenRequest:
        return ScreenRequest(
            criteria=self.criteria,
            sort_by=self.sort_by,
            sort_order=self.sort_order,
            limit=limit,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "criteria": self.criteria.to_dict(),
            "sortBy": self.sort_by,
            "sortOrder": self.sort_order,
        }


@dataclass(frozen=True)
class SavedScreen:
    """A user-named query and its resolved criteria, stored client-side."""

    id: str
    name: str
    query: str
    criteria: ScreenerCriteria
    saved_at: str
    sort_by: str = "volume"
    sort_order: str = "desc"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "query": self.query,
            "criteria": self.criteria.to_dict(),
            "sortBy": self.sort_by,
            "sortOrder": self.sort_order,
            "savedAt": self.saved_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SavedScreen:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            query=str(data.get("query", "")),
            criteria=ScreenerCriteria.from_dict(data.get("criteria")),
            saved_at=str(data.get("savedAt", "")),
            sort_by=data.get("sortBy") or "volume",
            sort_order=data.get("sortOrder") or "desc",
        )
