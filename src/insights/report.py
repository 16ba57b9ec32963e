"""Result types returned by the insight generator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

EMPTY_SUMMARY = "No stocks found matching your criteria."
EMPTY_RISK = "No data to analyze"
EMPTY_CONTEXT = "Try broadening your search criteria."
ERROR_SUMMARY = "Unable to generate insights at this time."


@dataclass(frozen=True)
class SectorStat:
    sector: str
    count: int
    avg_change: float

    def to_dict(self) -> dict[str, Any]:
        return {"sector": self.sector, "count": self.count, "avgChange": self.avg_change}


@dataclass(frozen=True)
class Opportunity:
    ticker: str
    reason: str
    score: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"ticker": self.ticker, "reason": self.reason}


@dataclass
class InsightReport:
    """Deterministic analysis of one set of screen results."""

    summary: str
    key_findings: list[str] = field(default_factory=list)
    sector_breakdown: list[SectorStat] = field(default_factory=list)
    top_opportunities: list[Opportunity] = field(default_factory=list)
    risk_factors: list[str] = field(default_factory=list)
    market_context: str = ""

    @classmethod
    def no_results(cls) -> InsightReport:
        return cls(
            summary=EMPTY_SUMMARY,
            risk_factors=[EMPTY_RISK],
            market_context=EMPTY_CONTEXT,
        )

    @classmethod
    def empty_error(cls) -> InsightReport:
        """Placeholder report served alongside an error message."""
        return cls(summary=ERROR_SUMMARY)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "keyFindings": list(self.key_findings),
            "sectorBreakdown": [s.to_dict() for s in self.sector_breakdown],
            "topOpportunities": [o.to_dict() for o in self.top_opportunities],
            "riskFactors": list(self.risk_factors),
            "marketContext": self.market_context,
        }
