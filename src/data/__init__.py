"""Data layer -- market-data providers for the screener.

Quick usage::

    from data import get_provider

    provider = get_provider("polygon")
    universe = provider.fetch_universe(exchange="NASDAQ")
    bars = provider.fetch_daily_bars("AAPL", start, end)
"""

from data.providers import get_provider

__all__ = [
    "get_provider",
]
