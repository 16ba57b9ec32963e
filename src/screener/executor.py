"""Run screen requests against a market-data provider.

The executor pulls the provider's universe snapshot, narrows it stage by
stage (snapshot columns, then reference data, then indicators computed from
daily bars), sorts, pages and explains the outcome.  Reference and bar
lookups cost one request per ticker, so they are only made for candidates
that survived the cheaper stages and are capped by configuration.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import numpy as np
import pandas as pd

from app.config import get_section
from app.logging import get_logger
from data.providers import get_provider
from data.providers.base import MarketDataProvider
from screener.explain import explain
from screener.filters import apply_filters, index_members
from screener.models import (
    DEFAULT_LIMIT,
    ScreenerCriteria,
    ScreenerResponse,
    ScreenerResult,
    ScreenRequest,
)
from screener.presets import get_quick_screen
from screener.technicals import TECHNICAL_COLUMNS, technical_snapshot

logger = get_logger(__name__)

# Wire sort field -> universe column.
SORT_COLUMNS: dict[str, str] = {
    "volume": "volume",
    "change": "change_percent",
    "price": "price",
    "marketCap": "market_cap",
    "ticker": "ticker",
}

MATCH_SCORE = 100.0

_DEFAULTS: dict[str, Any] = {
    "provider": "polygon",
    "max_limit": 500,
    "details_enrichment_limit": 100,
    "technical_enrichment_limit": 50,
    "history_days": 400,
    "enrich_page_details": True,
    "indexes": {},
}


class ScreenExecutionError(RuntimeError):
    """A screen could not be completed because market data was unavailable."""


class ScreenExecutor:
    """Execute :class:`ScreenRequest` objects against a provider.

    Args:
        provider: Data provider; defaults to the one named by
            ``screener.provider`` in config (``polygon``).
        settings: Overrides for the ``screener`` config section.

    Raises:
        ValueError: If the default provider cannot be configured.
    """

    def __init__(
        self,
        provider: MarketDataProvider | None = None,
        settings: dict[str, Any] | None = None,
    ) -> None:
        self._settings = {**_DEFAULTS, **get_section("screener"), **(settings or {})}
        self._provider = provider or get_provider(self._settings["provider"])

    @property
    def provider(self) -> MarketDataProvider:
        return self._provider

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def execute(self, request: ScreenRequest) -> ScreenerResponse:
        """Run *request* and return a page of results with the unpaged total.

        Raises:
            ScreenExecutionError: When the provider fails or returns
                malformed data.
        """
        started = time.perf_counter()
        criteria = request.criteria
        logger.info(
            "Screening %d criteria (sort=%s %s, limit=%d, offset=%d)",
            len(criteria.active_fields()), request.sort_by, request.sort_order,
            request.limit, request.offset,
        )
        try:
            matched = self._matching_frame(criteria)
            total = len(matched)
            page = self._page(matched, request)
            if self._settings["enrich_page_details"]:
                page = self._attach_details(page)
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.error("Screen failed: %s", exc)
            raise ScreenExecutionError(f"Screen failed: {exc}") from exc

        results = [_to_result(row) for row in page.to_dict(orient="records")]
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        logger.info("Screen matched %d stocks in %.0f ms", total, elapsed_ms)
        return ScreenerResponse(
            criteria=criteria,
            results=results,
            total_count=total,
            explanation=explain(criteria, total),
            source=self._provider.provider_name(),
            execution_time_ms=elapsed_ms,
        )

    def run_quick_screen(self, key: str, limit: int = DEFAULT_LIMIT) -> ScreenerResponse:
        """Execute the built-in preset *key*.

        Raises:
            KeyError: If *key* is not a known quick screen.
        """
        return self.execute(get_quick_screen(key).to_request(limit))

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _matching_frame(self, criteria: ScreenerCriteria) -> pd.DataFrame:
        exchange_hint = None
        if criteria.exchanges and len(criteria.exchanges) == 1:
            exchange_hint = criteria.exchanges[0]

        frame = self._provider.fetch_universe(exchange=exchange_hint)
        frame = frame[pd.to_numeric(frame["price"], errors="coerce") > 0]
        frame = apply_filters(frame, criteria, "snapshot")
        logger.debug("Snapshot stage: %d candidates", len(frame))

        if criteria.indexes:
            frame = self._filter_indexes(frame, criteria.indexes)

        if _needs_reference(criteria) and not frame.empty:
            frame = self._attach_details(
                frame, limit=int(self._settings["details_enrichment_limit"]),
            )
        frame = apply_filters(frame, criteria, "reference")
        logger.debug("Reference stage: %d candidates", len(frame))

        if criteria.uses_technicals() and not frame.empty:
            frame = self._attach_technicals(frame)
            frame = apply_filters(frame, criteria, "technical")
            logger.debug("Technical stage: %d candidates", len(frame))
        return frame

    def _filter_indexes(self, frame: pd.DataFrame, indexes: tuple[str, ...]) -> pd.DataFrame:
        constituents = self._settings.get("indexes") or {}
        for name in indexes:
            if not constituents.get(name):
                logger.warning("No constituents configured for index '%s'", name)
        members = index_members(indexes, constituents)
        return frame[frame["ticker"].str.upper().isin(members)]

    def _attach_details(self, frame: pd.DataFrame, limit: int | None = None) -> pd.DataFrame:
        """Fill blank sector, industry, exchange and market cap from reference details.

        Only rows missing a sector or market cap are looked up; *limit* caps
        the lookups to the most active of those rows.
        """
        if frame.empty:
            return frame
        needed = frame[(frame["sector"].fillna("") == "") | frame["market_cap"].isna()]
        if limit is not None:
            needed = _by_volume(needed).head(limit)
        if needed.empty:
            return frame

        details = self._provider.fetch_details(needed["ticker"].tolist())
        if details.empty:
            return frame
        details = details.drop_duplicates("ticker").set_index("ticker")

        out = frame.copy()
        for column in ("company", "sector", "industry", "exchange", "market_cap"):
            if column not in details.columns:
                continue
            looked_up = out["ticker"].map(details[column])
            if column == "market_cap":
                out[column] = out[column].where(out[column].notna(), looked_up)
            else:
                blank = out[column].fillna("") == ""
                fill = looked_up.fillna("")
                out[column] = out[column].where(~blank | (fill == ""), fill)
        return out

    def _attach_technicals(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Add indicator columns for the most liquid candidates.

        Candidates beyond ``technical_enrichment_limit`` keep NaN indicator
        values and therefore fail every technical filter.
        """
        limit = int(self._settings["technical_enrichment_limit"])
        candidates = _by_volume(frame)
        if len(candidates) > limit:
            logger.warning(
                "Technical filters limited to the %d most active of %d candidates",
                limit, len(candidates),
            )
            candidates = candidates.head(limit)

        end = datetime.now(timezone.utc)
        start = end - timedelta(days=int(self._settings["history_days"]))
        readings: dict[str, dict[str, float]] = {}
        for ticker, price in zip(candidates["ticker"], candidates["price"]):
            bars = self._provider.fetch_daily_bars(ticker, start, end)
            readings[ticker] = technical_snapshot(bars, price)

        out = frame.copy()
        for column in TECHNICAL_COLUMNS:
            values = out["ticker"].map(lambda t: readings.get(t, {}).get(column, np.nan))
            if column in out.columns:
                out[column] = out[column].where(out[column].notna(), values)
            else:
                out[column] = values.astype("float64")
        return out

    def _page(self, frame: pd.DataFrame, request: ScreenRequest) -> pd.DataFrame:
        column = SORT_COLUMNS[request.sort_by]
        ordered = frame.sort_values(
            column,
            ascending=request.sort_order == "asc",
            na_position="last",
            kind="mergesort",
        )
        limit = min(request.limit, int(self._settings["max_limit"]))
        return ordered.iloc[request.offset:request.offset + limit]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _needs_reference(criteria: ScreenerCriteria) -> bool:
    return any(
        getattr(criteria, name) is not None
        for name in ("market_cap", "min_market_cap", "max_market_cap", "sectors")
    )


def _by_volume(frame: pd.DataFrame) -> pd.DataFrame:
    return frame.sort_values("volume", ascending=False, na_position="last", kind="mergesort")


def _clean(value: Any) -> Any:
    if isinstance(value, float) and np.isnan(value):
        return None
    if isinstance(value, np.generic):
        return value.item()
    return value


def _to_result(row: dict[str, Any]) -> ScreenerResult:
    data = {key: _clean(value) for key, value in row.items()}
    data["match_score"] = MATCH_SCORE
    return ScreenerResult.from_dict(data)
