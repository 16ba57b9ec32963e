"""Polygon.io REST provider for US equity snapshots, details and daily bars."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

import httpx
import pandas as pd
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from app.config import get_section
from app.logging import get_logger
from data.providers.base import MarketDataProvider
from insights.sectors import normalize_sector
from screener.vocabulary import EXCHANGE_CODES

logger = get_logger(__name__)

_DEFAULT_BASE_URL = "https://api.polygon.io"
_TICKERS_PATH = "/v3/reference/tickers"
_SNAPSHOT_PATH = "/v2/snapshot/locale/us/markets/stocks/tickers"
_AGGS_PATH = "/v2/aggs/ticker/{ticker}/range/1/day/{start}/{end}"

# Display exchange -> Polygon MIC code.
_EXCHANGE_TO_MIC: dict[str, str] = {name: mic for mic, name in EXCHANGE_CODES.items()}


def _is_retryable(exc: BaseException) -> bool:
    """Only rate limiting and connection-level failures are worth retrying."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == 429
    return False


class PolygonProvider(MarketDataProvider):
    """Fetch screener data from the Polygon.io REST API.

    Settings are taken from the ``polygon`` config section unless passed
    explicitly.  *transport* lets callers (and tests) substitute the HTTP
    transport used by :class:`httpx.Client`.

    Raises:
        ValueError: If no API key is configured.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
        universe_size: int | None = None,
        snapshot_batch_size: int | None = None,
        retry_wait_min: float | None = None,
        retry_wait_max: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        cfg = get_section("polygon")
        self._api_key = api_key or cfg.get("api_key") or ""
        if not self._api_key:
            raise ValueError("POLYGON_API_KEY not configured")
        self._base_url = (base_url or cfg.get("base_url") or _DEFAULT_BASE_URL).rstrip("/")
        self._timeout = float(timeout or cfg.get("timeout", 30.0))
        self._max_attempts = int(max_attempts or cfg.get("max_attempts", 3))
        self._universe_size = int(universe_size or cfg.get("universe_size", 250))
        self._batch_size = int(snapshot_batch_size or cfg.get("snapshot_batch_size", 100))
        self._wait_min = float(cfg.get("retry_wait_min", 1.0) if retry_wait_min is None else retry_wait_min)
        self._wait_max = float(cfg.get("retry_wait_max", 30.0) if retry_wait_max is None else retry_wait_max)
        self._transport = transport

    # ------------------------------------------------------------------
    # MarketDataProvider interface
    # ------------------------------------------------------------------

    def provider_name(self) -> str:
        return "polygon"

    def fetch_universe(self, exchange: str | None = None) -> pd.DataFrame:
        params: dict[str, Any] = {
            "market": "stocks",
            "active": "true",
            "limit": self._universe_size,
        }
        if exchange:
            params["exchange"] = _EXCHANGE_TO_MIC.get(exchange.upper(), exchange)

        reference = self._get_json(_TICKERS_PATH, params).get("results") or []
        if not reference:
            logger.info("Polygon: reference endpoint returned no tickers (exchange=%s)", exchange)
            return self._make_universe([])

        names = {item["ticker"]: item for item in reference if item.get("ticker")}
        tickers = list(names)

        snapshots: list[dict[str, Any]] = []
        for i in range(0, len(tickers), self._batch_size):
            batch = tickers[i:i + self._batch_size]
            body = self._get_json(_SNAPSHOT_PATH, {"tickers": ",".join(batch)})
            snapshots.extend(body.get("tickers") or [])

        rows = [self._snapshot_row(snap, names.get(snap.get("ticker", ""), {})) for snap in snapshots]
        logger.info("Polygon: %d snapshots for %d reference tickers", len(rows), len(tickers))
        return self._make_universe(rows)

    def fetch_details(self, tickers: Iterable[str]) -> pd.DataFrame:
        rows: list[dict[str, Any]] = []
        for ticker in tickers:
            try:
                body = self._get_json(f"{_TICKERS_PATH}/{ticker}", {})
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code == 404:
                    logger.warning("Polygon: no reference details for %s", ticker)
                    continue
                raise
            info = body.get("results") or {}
            if not info:
                continue
            sic = info.get("sic_description") or ""
            rows.append({
                "ticker": ticker,
                "company": info.get("name") or ticker,
                "sector": normalize_sector(sic) if sic else "",
                "industry": sic,
                "exchange": EXCHANGE_CODES.get(info.get("primary_exchange", ""), info.get("primary_exchange", "")),
                "market_cap": info.get("market_cap"),
            })
        return self._make_frame(rows, self.DETAIL_COLUMNS)

    def fetch_daily_bars(self, ticker: str, start: datetime, end: datetime) -> pd.DataFrame:
        path = _AGGS_PATH.format(
            ticker=ticker,
            start=start.strftime("%Y-%m-%d"),
            end=end.strftime("%Y-%m-%d"),
        )
        body = self._get_json(path, {"adjusted": "true", "sort": "asc", "limit": 50000})
        rows = [
            [
                datetime.fromtimestamp(bar["t"] / 1000.0, tz=timezone.utc),
                bar.get("o"),
                bar.get("h"),
                bar.get("l"),
                bar.get("c"),
                bar.get("v"),
            ]
            for bar in body.get("results") or []
        ]
        logger.debug("Polygon: %d daily bars for %s", len(rows), ticker)
        return self._make_bars(rows)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _snapshot_row(self, snap: dict[str, Any], ref: dict[str, Any]) -> dict[str, Any]:
        """Map one snapshot (plus its reference entry) to a universe row."""
        day = snap.get("day") or {}
        prev_day = snap.get("prevDay") or {}
        minute = snap.get("min") or {}
        last_trade = snap.get("lastTrade") or {}

        price = day.get("c") or minute.get("c") or last_trade.get("p") or 0.0
        prev_close = prev_day.get("c") or price
        change = price - prev_close
        change_percent = self._safe_ratio(change, prev_close, 0.0) * 100.0
        volume = day.get("v") or 0.0
        # Previous session volume stands in for the average when no history is loaded.
        avg_volume = prev_day.get("v") or volume
        relative_volume = self._safe_ratio(volume, avg_volume, 1.0)

        day_open = day.get("o")
        gap_percent = (
            self._safe_ratio(day_open - prev_close, prev_close) * 100.0 if day_open else None
        )

        ticker = snap.get("ticker", "")
        mic = ref.get("primary_exchange", "")
        return {
            "ticker": ticker,
            "company": ref.get("name") or ticker,
            "exchange": EXCHANGE_CODES.get(mic, mic),
            "market_cap": ref.get("market_cap"),
            "price": price,
            "change": change,
            "change_percent": change_percent,
            "volume": volume,
            "avg_volume": avg_volume,
            "relative_volume": relative_volume,
            "gap_percent": gap_percent,
        }

    def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET *path* with retries on rate limiting and transport errors."""
        retryer = Retrying(
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=1, min=self._wait_min, max=self._wait_max),
            reraise=True,
        )
        return retryer(self._request, path, params)

    def _request(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        query = {**params, "apiKey": self._api_key}
        with httpx.Client(
            base_url=self._base_url, timeout=self._timeout, transport=self._transport,
        ) as client:
            resp = client.get(path, params=query)
            resp.raise_for_status()
        return resp.json()
