"""Sector taxonomy, label normalisation and sector benchmark figures."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

OTHER = "Other"

# Ordered substring rules: the first rule with a matching fragment wins.
_NORMALIZATION_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("tech", "software", "semiconductor"), "Technology"),
    (("health", "pharma", "biotech"), "Healthcare"),
    (("bank", "financial", "insurance"), "Financial Services"),
    (("energy", "oil", "gas"), "Energy"),
    (("utility", "electric", "power"), "Utilities"),
    (("real estate", "reit"), "Real Estate"),
    (("industrial", "aerospace", "defense"), "Industrials"),
    (("consumer", "retail"), "Consumer Cyclical"),
    (("material", "chemical", "mining"), "Basic Materials"),
    (("communication", "media", "telecom"), "Communication Services"),
)


def normalize_sector(label: str | None) -> str:
    """Map a provider or free-text sector label onto the canonical taxonomy.

    Labels matching no rule are returned unchanged; blank labels map to
    ``"Other"``.
    """
    text = (label or "").strip()
    lowered = text.lower()
    for fragments, sector in _NORMALIZATION_RULES:
        if any(fragment in lowered for fragment in fragments):
            return sector
    return text or OTHER


@dataclass(frozen=True)
class SectorBenchmark:
    avg_pe: float
    avg_dividend_yield: float
    avg_roe: float


SECTOR_BENCHMARKS: Mapping[str, SectorBenchmark] = MappingProxyType({
    "Technology": SectorBenchmark(28, 0.8, 18),
    "Healthcare": SectorBenchmark(22, 1.5, 14),
    "Financial Services": SectorBenchmark(12, 2.8, 11),
    "Consumer Cyclical": SectorBenchmark(18, 1.8, 16),
    "Communication Services": SectorBenchmark(16, 2.2, 12),
    "Industrials": SectorBenchmark(20, 1.6, 15),
    "Consumer Defensive": SectorBenchmark(22, 2.5, 20),
    "Energy": SectorBenchmark(10, 4.5, 12),
    "Basic Materials": SectorBenchmark(14, 2.8, 10),
    "Real Estate": SectorBenchmark(35, 4.2, 8),
    "Utilities": SectorBenchmark(18, 3.5, 9),
})

