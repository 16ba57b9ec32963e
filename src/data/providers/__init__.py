"""Market-data providers for the screener, looked up by name.

::

    from data.providers import get_provider

    provider = get_provider("polygon")
    universe = provider.fetch_universe(exchange="NYSE")
"""

from __future__ import annotations

from typing import Any

from data.providers.base import MarketDataProvider
from data.providers.polygon import PolygonProvider

_PROVIDER_REGISTRY: dict[str, type[MarketDataProvider]] = {
    "polygon": PolygonProvider,
}


def available_providers() -> list[str]:
    return sorted(_PROVIDER_REGISTRY)


def get_provider(name: str, **kwargs: Any) -> MarketDataProvider:
    """Instantiate the provider registered under *name*.

    Keyword arguments are passed to the provider's constructor; anything
    not given there is read from the provider's config section.

    Raises:
        ValueError: If no provider is registered under *name*, or the
            provider is missing required configuration (e.g. an API key).
    """
    cls = _PROVIDER_REGISTRY.get(name.lower())
    if cls is None:
        raise ValueError(
            f"Unknown provider '{name}'. Available providers: {', '.join(available_providers())}"
        )
    return cls(**kwargs)


__all__ = [
    "MarketDataProvider",
    "PolygonProvider",
    "available_providers",
    "get_provider",
]
