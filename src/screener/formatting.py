"""Display formatting for prices, market caps, volumes and percentages."""

from __future__ import annotations


def format_price(price: float) -> str:
    """Format a price for display."""
    if price >= 1000:
        return f"${price:,.2f}"
    elif price >= 1:
        return f"${price:.2f}"
    else:
        return f"${price:.4f}"


def format_dollars(value: float) -> str:
    """Compact dollar amount: whole numbers without cents ("$20", "$12.50")."""
    if float(value).is_integer():
        return f"${value:,.0f}"
    return f"${value:,.2f}"


def format_market_cap(value: float) -> str:
    if value >= 1e12:
        return f"${value / 1e12:.2f}T"
    if value >= 1e9:
        return f"${value / 1e9:.2f}B"
    if value >= 1e6:
        return f"${value / 1e6:.2f}M"
    return f"${value:,.0f}"


def format_volume(value: float) -> str:
    if value >= 1e9:
        return f"{value / 1e9:.2f}B"
    if value >= 1e6:
        return f"{value / 1e6:.2f}M"
    if value >= 1e3:
        return f"{value / 1e3:.1f}K"
    return f"{value:,.0f}"


def format_percent(value: float | None) -> str:
    """Signed percentage with two decimals; ``None`` renders as ``-``."""
    if value is None:
        return "-"
    return f"{'+' if value >= 0 else ''}{value:.2f}%"


def format_number(value: float) -> str:
    """Shortest plain rendering of a threshold (``3.0`` -> ``"3"``)."""
    if float(value).is_integer():
        return f"{value:.0f}"
    return f"{value:g}"
