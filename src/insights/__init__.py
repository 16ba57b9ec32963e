"""Deterministic insight reports over screen results."""

from insights.generator import generate_insights
from insights.report import InsightReport, Opportunity, SectorStat
from insights.sectors import SECTOR_BENCHMARKS, normalize_sector

__all__ = [
    "InsightReport",
    "Opportunity",
    "SECTOR_BENCHMARKS",
    "SectorStat",
    "generate_insights",
    "normalize_sector",
]
