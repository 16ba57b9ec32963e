"""Abstract base class for screener market-data providers."""

from __future__ import annotations

import abc
from datetime import datetime
from typing import Any, Iterable

import numpy as np
import pandas as pd


class MarketDataProvider(abc.ABC):
    """Base interface every screener data provider must implement.

    A provider supplies three things:

    * the current **universe** snapshot -- one row per instrument with the
      columns listed in :attr:`UNIVERSE_COLUMNS` (fundamentals may be NaN
      when the source does not carry them);
    * reference **details** (company, sector, exchange, market cap) for a
      set of tickers;
    * daily **OHLCV bars** for a single ticker, used to derive RSI, moving
      averages and 52-week extremes.
    """

    # Canonical OHLCV column order.
    BAR_COLUMNS: list[str] = ["timestamp", "open", "high", "low", "close", "volume"]

    # Canonical universe column order.
    UNIVERSE_COLUMNS: list[str] = [
        "ticker", "company", "sector", "industry", "exchange",
        "price", "change", "change_percent", "volume", "avg_volume",
        "relative_volume", "market_cap", "gap_percent", "perf_month",
        "pe", "dividend_yield", "roe", "net_margin", "debt_equity",
        "eps_growth_this_year", "float_short",
    ]

    DETAIL_COLUMNS: list[str] = ["ticker", "company", "sector", "industry", "exchange", "market_cap"]

    _TEXT_COLUMNS: frozenset[str] = frozenset({"ticker", "company", "sector", "industry", "exchange"})

    # ------------------------------------------------------------------
    # Abstract interface
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def fetch_universe(self, exchange: str | None = None) -> pd.DataFrame:
        """Return the current snapshot of tradable instruments.

        Args:
            exchange: Optional exchange hint (``"NYSE"``, ``"NASDAQ"``,
                ``"AMEX"``) the source may use to narrow the request.

        Returns:
            A DataFrame with :attr:`UNIVERSE_COLUMNS`.
        """
        ...

    @abc.abstractmethod
    def fetch_details(self, tickers: Iterable[str]) -> pd.DataFrame:
        """Return reference details for *tickers* (:attr:`DETAIL_COLUMNS`).

        Tickers the source does not know are omitted from the result.
        """
        ...

    @abc.abstractmethod
    def fetch_daily_bars(self, ticker: str, start: datetime, end: datetime) -> pd.DataFrame:
        """Fetch daily OHLCV bars for *ticker* over [*start*, *end*].

        Returns:
            A DataFrame with :attr:`BAR_COLUMNS` sorted by ``timestamp``
            ascending.
        """
        ...

    @abc.abstractmethod
    def provider_name(self) -> str:
        """Return a short, unique identifier for this provider (e.g. ``"polygon"``)."""
        ...

    # ------------------------------------------------------------------
    # Helpers available to all providers
    # ------------------------------------------------------------------

    @classmethod
    def _make_frame(cls, rows: list[dict[str, Any]], columns: list[str]) -> pd.DataFrame:
        """Build a frame with exactly *columns*; missing numerics become NaN."""
        df = pd.DataFrame(rows, columns=columns)
        for col in columns:
            if col in cls._TEXT_COLUMNS:
                df[col] = df[col].fillna("").astype(str)
            else:
                df[col] = pd.to_numeric(df[col], errors="coerce").astype("float64")
        return df

    @classmethod
    def _make_universe(cls, rows: list[dict[str, Any]]) -> pd.DataFrame:
        return cls._make_frame(rows, cls.UNIVERSE_COLUMNS)

    @staticmethod
    def _make_bars(rows: list[list], tz_aware: bool = True) -> pd.DataFrame:
        """Build a standardised OHLCV DataFrame from raw row data.

        Args:
            rows: List of ``[timestamp, open, high, low, close, volume]`` lists.
            tz_aware: If *True* (default), localise the timestamp column to UTC.
        """
        if not rows:
            return pd.DataFrame(columns=MarketDataProvider.BAR_COLUMNS)

        df = pd.DataFrame(rows, columns=MarketDataProvider.BAR_COLUMNS)
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=tz_aware)

        for col in ("open", "high", "low", "close", "volume"):
            df[col] = pd.to_numeric(df[col], errors="coerce")

        df = df.sort_values("timestamp").reset_index(drop=True)
        return df

    @staticmethod
    def _safe_ratio(numerator: float, denominator: float, default: float = np.nan) -> float:
        if denominator and denominator > 0:
            return numerator / denominator
        return default
