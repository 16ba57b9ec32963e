"""Rule tables for key findings, opportunity scoring and risk factors.

Rules are plain frozen records evaluated in declaration order.  Finding and
risk rules look at the whole result set through an :class:`InsightContext`;
scoring rules look at one :class:`~screener.models.ScreenerResult` at a time.
Templates are ``str.format`` strings: finding templates are filled from
``InsightContext.stats`` and scoring reasons from the result as ``r``.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Sequence

import numpy as np
import pandas as pd

from insights.report import SectorStat
from insights.sectors import normalize_sector
from screener.models import ScreenerCriteria, ScreenerResult

_TEXT_FIELDS = ("ticker", "company", "sector", "industry", "exchange")


@dataclass(frozen=True)
class FindingRule:
    name: str
    predicate: Callable[[InsightContext], bool]
    template: str


@dataclass(frozen=True)
class ScoringRule:
    name: str
    predicate: Callable[[ScreenerResult], bool]
    weight: int
    reason: str | None = None


@dataclass(frozen=True)
class RiskRule:
    name: str
    predicate: Callable[[InsightContext], bool]
    message: str


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


def results_frame(results: Sequence[ScreenerResult]) -> pd.DataFrame:
    """Tabulate *results* with numeric columns coerced (``None`` -> NaN)."""
    frame = pd.DataFrame([dataclasses.asdict(r) for r in results])
    for column in frame.columns:
        if column not in _TEXT_FIELDS:
            frame[column] = pd.to_numeric(frame[column], errors="coerce")
    return frame


@dataclass
class InsightContext:
    """Everything the set-level rules need, computed once."""

    criteria: ScreenerCriteria
    results: Sequence[ScreenerResult]
    frame: pd.DataFrame
    breakdown: list[SectorStat]
    stats: dict[str, Any]

    @property
    def count(self) -> int:
        return len(self.results)

    def share(self, mask: pd.Series) -> float:
        """Fraction of results for which *mask* is true."""
        if not self.count:
            return 0.0
        return float(mask.fillna(False).astype(bool).sum()) / self.count

    @classmethod
    def build(
        cls,
        criteria: ScreenerCriteria,
        results: Sequence[ScreenerResult],
        breakdown: list[SectorStat],
    ) -> InsightContext:
        frame = results_frame(results)
        n = len(results)
        change = frame["change_percent"]
        pe = frame["pe"][frame["pe"] > 0]
        yields = frame["dividend_yield"][frame["dividend_yield"] > 0]
        from_high = frame["pct_from_52wk_high"]

        avg_change = float(change.mean()) if n else np.nan
        stats: dict[str, Any] = {
            "count": n,
            "avg_change": avg_change,
            "abs_avg_change": abs(avg_change),
            "gainers": int((change > 0).sum()),
            "losers": int((change < 0).sum()),
            "top_sector": "",
            "top_share": np.nan,
            "best_sector": "",
            "best_avg": np.nan,
            "high_volume": int((frame["relative_volume"] > 2).sum()),
            "avg_pe": float(pe.mean()) if len(pe) else np.nan,
            "dividend_payers": len(yields),
            "avg_yield": float(yields.mean()) if len(yields) else np.nan,
            "near_highs": int((from_high > -5).sum()),
            "near_lows": int((from_high < -40).sum()),
        }
        if breakdown and n:
            top = breakdown[0]
            best = max(breakdown, key=lambda s: s.avg_change)
            stats.update(
                top_sector=top.sector,
                top_share=top.count / n * 100.0,
                best_sector=best.sector,
                best_avg=best.avg_change,
            )
        return cls(criteria, results, frame, breakdown, stats)


# ---------------------------------------------------------------------------
# Key findings
# ---------------------------------------------------------------------------

FINDING_RULES: tuple[FindingRule, ...] = (
    FindingRule(
        "strong_momentum",
        lambda c: c.stats["avg_change"] > 3,
        "Strong bullish momentum: average gain of {avg_change:.1f}% across {count} stocks",
    ),
    FindingRule(
        "positive_momentum",
        lambda c: 1 < c.stats["avg_change"] <= 3,
        "Positive momentum: {gainers} gainers vs {losers} losers, average +{avg_change:.1f}%",
    ),
    FindingRule(
        "selling_pressure",
        lambda c: c.stats["avg_change"] < -3,
        "Significant selling pressure: average decline of {abs_avg_change:.1f}%",
    ),
    FindingRule(
        "bearish_bias",
        lambda c: -3 <= c.stats["avg_change"] < -1,
        "Mild bearish bias: {losers} stocks declining vs {gainers} advancing",
    ),
    FindingRule(
        "sector_concentration",
        lambda c: c.stats["top_share"] > 40,
        "High concentration in {top_sector} ({top_share:.0f}% of results)",
    ),
    FindingRule(
        "leading_sector",
        lambda c: c.stats["best_avg"] > 2,
        "{best_sector} leading with +{best_avg:.1f}% average gain",
    ),
    FindingRule(
        "unusual_volume",
        lambda c: c.stats["high_volume"] > c.count * 0.3,
        "{high_volume} stocks trading at 2x+ average volume - heightened activity",
    ),
    FindingRule(
        "value_valuation",
        lambda c: c.stats["avg_pe"] < 15,
        "Value opportunity: average P/E of {avg_pe:.1f}x is below market average",
    ),
    FindingRule(
        "premium_valuation",
        lambda c: c.stats["avg_pe"] > 35,
        "Growth focus: average P/E of {avg_pe:.1f}x indicates premium valuations",
    ),
    FindingRule(
        "income",
        lambda c: c.stats["avg_yield"] > 3,
        "Strong income potential: {dividend_payers} stocks averaging {avg_yield:.1f}% yield",
    ),
    FindingRule(
        "near_highs",
        lambda c: c.stats["near_highs"] > c.count * 0.3,
        "{near_highs} stocks trading near 52-week highs - strength confirmed",
    ),
    FindingRule(
        "deep_drawdowns",
        lambda c: c.stats["near_lows"] > c.count * 0.3,
        "{near_lows} stocks down 40%+ from highs - potential turnaround plays",
    ),
)

MAX_FINDINGS = 5


# ---------------------------------------------------------------------------
# Opportunity scoring
# ---------------------------------------------------------------------------

def _gt(value: float | None, bound: float) -> bool:
    return value is not None and value > bound


SCORING_RULES: tuple[ScoringRule, ...] = (
    ScoringRule(
        "strong_momentum", lambda r: r.change_percent > 5, 3,
        "strong momentum (+{r.change_percent:.1f}%)",
    ),
    ScoringRule(
        "positive_momentum", lambda r: 2 < r.change_percent <= 5, 1,
        "positive momentum",
    ),
    ScoringRule(
        "exceptional_volume", lambda r: r.relative_volume > 3, 2,
        "exceptional volume ({r.relative_volume:.1f}x avg)",
    ),
    ScoringRule(
        "elevated_volume", lambda r: 2 < r.relative_volume <= 3, 1,
        "elevated volume",
    ),
    ScoringRule(
        "attractive_pe", lambda r: r.pe is not None and 0 < r.pe < 15, 2,
        "attractive P/E ({r.pe:.1f}x)",
    ),
    ScoringRule(
        "high_yield", lambda r: _gt(r.dividend_yield, 4), 2,
        "high yield ({r.dividend_yield:.1f}%)",
    ),
    ScoringRule(
        "excellent_roe", lambda r: _gt(r.roe, 20), 2,
        "excellent ROE ({r.roe:.0f}%)",
    ),
    ScoringRule(
        "at_52w_high", lambda r: _gt(r.pct_from_52wk_high, -3), 1,
        "at 52-week high",
    ),
    # Size adds stability to the score but is not a reason on its own.
    ScoringRule("large_cap", lambda r: r.market_cap > 10e9, 1),
)

MAX_OPPORTUNITIES = 5
MAX_REASONS = 3


# ---------------------------------------------------------------------------
# Risk factors
# ---------------------------------------------------------------------------

def _distinct_sectors(ctx: InsightContext) -> int:
    return len({normalize_sector(r.sector) for r in ctx.results})


RISK_RULES: tuple[RiskRule, ...] = (
    RiskRule(
        "small_cap_exposure",
        lambda c: c.share(c.frame["market_cap"] < 2e9) > 0.5,
        "High small-cap exposure increases volatility and liquidity risk",
    ),
    RiskRule(
        "sector_concentration",
        lambda c: _distinct_sectors(c) <= 2 and c.count > 5,
        "Concentrated sector exposure - consider diversification",
    ),
    RiskRule(
        "overextension",
        lambda c: c.share(c.frame["change_percent"] > 10) > 0.3,
        "Many stocks up 10%+ today - watch for profit-taking",
    ),
    RiskRule(
        "high_valuation",
        lambda c: c.share(c.frame["pe"] > 50) > 0.3,
        "Elevated valuations (P/E > 50x) increase downside risk",
    ),
    RiskRule(
        "short_interest",
        lambda c: _gt(c.criteria.min_float_short, 15),
        "High short interest can cause extreme volatility in both directions",
    ),
    RiskRule(
        "volume_spikes",
        lambda c: c.share(c.frame["relative_volume"] > 4) > 0.2,
        "Extreme volume spikes may not be sustainable",
    ),
    RiskRule(
        "broad_decline",
        lambda c: c.share(c.frame["change_percent"] < -5) > 0.3,
        "Many stocks showing significant weakness - exercise caution",
    ),
)

MAX_RISKS = 4
