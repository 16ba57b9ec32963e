"""Shared test fixtures for Screen Lab.

Provides an in-memory market-data provider, a small snapshot universe,
deterministic daily bars and ready-made screener results.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

import numpy as np
import pandas as pd
import pytest

from data.providers.base import MarketDataProvider
from screener.executor import ScreenExecutor
from screener.models import ScreenerResult

# ---------------------------------------------------------------------------
# Fake provider
# ---------------------------------------------------------------------------


class FakeProvider(MarketDataProvider):
    """Serve canned universe rows, details and bars, recording every call."""

    def __init__(
        self,
        rows: list[dict[str, Any]],
        details: dict[str, dict[str, Any]] | None = None,
        bars: dict[str, pd.DataFrame] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.rows = rows
        self.details = details or {}
        self.bars = bars or {}
        self.error = error
        self.universe_calls: list[str | None] = []
        self.detail_calls: list[list[str]] = []
        self.bar_calls: list[str] = []

    def provider_name(self) -> str:
        return "fake"

    def fetch_universe(self, exchange: str | None = None) -> pd.DataFrame:
        self.universe_calls.append(exchange)
        if self.error is not None:
            raise self.error
        return self._make_universe(self.rows)

    def fetch_details(self, tickers: Iterable[str]) -> pd.DataFrame:
        tickers = list(tickers)
        self.detail_calls.append(tickers)
        found = [self.details[t] for t in tickers if t in self.details]
        return self._make_frame(found, self.DETAIL_COLUMNS)

    def fetch_daily_bars(self, ticker: str, start: datetime, end: datetime) -> pd.DataFrame:
        self.bar_calls.append(ticker)
        return self.bars.get(ticker, self._make_bars([]))


def _row(ticker: str, **values: Any) -> dict[str, Any]:
    row: dict[str, Any] = {"ticker": ticker, "company": f"{ticker} Inc."}
    row.update(values)
    return row


UNIVERSE_ROWS: list[dict[str, Any]] = [
    _row("AAPL", sector="Technology", exchange="NASDAQ", price=190.0, change_percent=1.5,
         volume=60e6, avg_volume=50e6, relative_volume=1.2, market_cap=3e12,
         pe=30.0, dividend_yield=0.5, roe=150.0, gap_percent=0.4),
    _row("PENY", sector="Healthcare", exchange="NASDAQ", price=3.5, change_percent=12.0,
         volume=8e6, avg_volume=2e6, relative_volume=4.0, market_cap=150e6, gap_percent=6.0),
    _row("XOM", sector="Energy", exchange="NYSE", price=110.0, change_percent=-2.0,
         volume=15e6, avg_volume=14e6, relative_volume=1.07, market_cap=450e9,
         pe=12.0, dividend_yield=3.4, roe=18.0, gap_percent=-1.0),
    _row("F", sector="Consumer Cyclical", exchange="NYSE", price=12.0, change_percent=0.5,
         volume=40e6, avg_volume=10e6, relative_volume=4.0, market_cap=48e9,
         pe=7.0, dividend_yield=5.0, roe=12.0, gap_percent=0.1),
    _row("SOFI", sector="Financial Services", exchange="NASDAQ", price=9.0, change_percent=6.0,
         volume=30e6, avg_volume=12e6, relative_volume=2.5, market_cap=9e9, gap_percent=3.5),
    _row("NEWCO", exchange="NYSE", price=25.0, change_percent=3.0,
         volume=2e6, avg_volume=1e6, relative_volume=2.0),
    _row("DEAD", sector="Industrials", exchange="AMEX", price=0.0, change_percent=0.0,
         volume=0.0, relative_volume=0.0, market_cap=1e6),
]

DETAILS: dict[str, dict[str, Any]] = {
    "NEWCO": {"ticker": "NEWCO", "company": "NewCo Holdings", "sector": "Technology",
              "industry": "Prepackaged Software", "exchange": "NYSE", "market_cap": 5e9},
}


def make_bars(closes: np.ndarray, start: str = "2023-01-02") -> pd.DataFrame:
    """Daily bars whose high/low bracket *closes* by one dollar."""
    closes = np.asarray(closes, dtype=float)
    return pd.DataFrame({
        "timestamp": pd.date_range(start, periods=len(closes), freq="D", tz="UTC"),
        "open": closes,
        "high": closes + 1.0,
        "low": closes - 1.0,
        "close": closes,
        "volume": np.full(len(closes), 1_000_000.0),
    })


@pytest.fixture()
def universe_rows() -> list[dict[str, Any]]:
    return [dict(r) for r in UNIVERSE_ROWS]


@pytest.fixture()
def bars() -> dict[str, pd.DataFrame]:
    """Steady uptrend for AAPL ending at its price; steady downtrend for PENY."""
    return {
        "AAPL": make_bars(np.linspace(120.0, 190.0, 260)),
        "PENY": make_bars(np.linspace(9.0, 3.5, 260)),
    }


@pytest.fixture()
def provider(universe_rows, bars) -> FakeProvider:
    return FakeProvider(universe_rows, details=dict(DETAILS), bars=bars)


@pytest.fixture()
def executor(provider) -> ScreenExecutor:
    return ScreenExecutor(
        provider=provider,
        settings={
            "max_limit": 500,
            "details_enrichment_limit": 100,
            "technical_enrichment_limit": 50,
            "enrich_page_details": True,
            "indexes": {"djia": ["AAPL", "XOM"], "sp500": []},
        },
    )


# ---------------------------------------------------------------------------
# Results for insight tests
# ---------------------------------------------------------------------------


def result(ticker: str, **values: Any) -> ScreenerResult:
    values.setdefault("company", f"{ticker} Inc.")
    values.setdefault("price", 50.0)
    return ScreenerResult(ticker=ticker, **values)


@pytest.fixture()
def tech_rally() -> list[ScreenerResult]:
    """Six technology names rallying hard on heavy volume near their highs."""
    return [
        result("NVDA", sector="Technology", change_percent=8.0, relative_volume=3.5,
               market_cap=2e12, pe=60.0, roe=45.0, pct_from_52wk_high=-1.0),
        result("AMD", sector="Technology", change_percent=6.0, relative_volume=2.5,
               market_cap=250e9, pe=55.0, roe=5.0, pct_from_52wk_high=-2.0),
        result("SMCI", sector="Technology", change_percent=11.0, relative_volume=5.0,
               market_cap=40e9, pe=25.0, roe=30.0, pct_from_52wk_high=-4.0),
        result("ARM", sector="Technology", change_percent=4.0, relative_volume=2.2,
               market_cap=150e9, pe=90.0, pct_from_52wk_high=-8.0),
        result("MU", sector="Semiconductors", change_percent=5.5, relative_volume=1.5,
               market_cap=120e9, pe=20.0, roe=18.0, pct_from_52wk_high=-3.5),
        result("AVGO", sector="Technology", change_percent=3.5, relative_volume=1.1,
               market_cap=800e9, pe=35.0, roe=25.0, pct_from_52wk_high=-0.5),
    ]


@pytest.fixture()
def saved_path(tmp_path: Path) -> Path:
    return tmp_path / "saved_screens.json"


@pytest.fixture()
def fresh_config():
    """Reload config after changing environment overrides; drop the cache afterwards."""
    import app.config as config

    yield lambda: config.load_config(reload=True)
    config._instance = None
