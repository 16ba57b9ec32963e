"""Turn a set of screen results into a structured, deterministic insight report."""

from __future__ import annotations

import logging
from typing import Sequence

from insights.report import InsightReport, Opportunity, SectorStat
from insights.rules import (
    FINDING_RULES,
    MAX_FINDINGS,
    MAX_OPPORTUNITIES,
    MAX_REASONS,
    MAX_RISKS,
    RISK_RULES,
    SCORING_RULES,
    InsightContext,
)
from insights.sectors import SECTOR_BENCHMARKS, normalize_sector
from screener.formatting import format_number
from screener.models import HighLow52W, RSIFilter, ScreenerCriteria, ScreenerResult

logger = logging.getLogger(__name__)

MAX_SECTORS = 6


def generate_insights(
    criteria: ScreenerCriteria,
    results: Sequence[ScreenerResult],
) -> InsightReport:
    """Analyse *results* produced by a screen over *criteria*.

    The report is a pure function of its inputs: the same criteria and
    results always yield the same report.
    """
    if not results:
        return InsightReport.no_results()

    breakdown = sector_breakdown(results)
    ctx = InsightContext.build(criteria, results, breakdown)
    report = InsightReport(
        summary=_summary(ctx),
        key_findings=key_findings(ctx),
        sector_breakdown=breakdown,
        top_opportunities=top_opportunities(results),
        risk_factors=risk_factors(ctx),
        market_context=_market_context(ctx),
    )
    logger.debug(
        "Insights for %d results: %d findings, %d opportunities, %d risks",
        len(results), len(report.key_findings), len(report.top_opportunities),
        len(report.risk_factors),
    )
    return report


def sector_breakdown(results: Sequence[ScreenerResult]) -> list[SectorStat]:
    """Per-sector count and average change, largest sectors first.

    Ties keep the order in which sectors first appear in *results*.
    """
    totals: dict[str, list[float]] = {}
    for r in results:
        totals.setdefault(normalize_sector(r.sector), []).append(r.change_percent)
    stats = [
        SectorStat(sector, len(changes), sum(changes) / len(changes))
        for sector, changes in totals.items()
    ]
    stats.sort(key=lambda s: s.count, reverse=True)
    return stats[:MAX_SECTORS]


def key_findings(ctx: InsightContext) -> list[str]:
    findings = [
        rule.template.format(**ctx.stats)
        for rule in FINDING_RULES
        if rule.predicate(ctx)
    ]
    return findings[:MAX_FINDINGS]


def top_opportunities(results: Sequence[ScreenerResult]) -> list[Opportunity]:
    """Score each result and return the best few that earned a reason."""
    scored: list[Opportunity] = []
    for r in results:
        score = 0
        reasons: list[str] = []
        for rule in SCORING_RULES:
            if not rule.predicate(r):
                continue
            score += rule.weight
            if rule.reason:
                reasons.append(rule.reason.format(r=r))
        if reasons:
            scored.append(Opportunity(r.ticker, ", ".join(reasons[:MAX_REASONS]), score))
    # list.sort is stable, so equal scores keep result order.
    scored.sort(key=lambda o: o.score, reverse=True)
    return scored[:MAX_OPPORTUNITIES]


def risk_factors(ctx: InsightContext) -> list[str]:
    risks = [rule.message for rule in RISK_RULES if rule.predicate(ctx)]
    return risks[:MAX_RISKS]


def _summary(ctx: InsightContext) -> str:
    criteria = ctx.criteria
    avg_change = ctx.stats["avg_change"]
    text = f"Found {ctx.count} stocks matching your criteria"

    if criteria.sectors:
        plural = "s" if len(criteria.sectors) > 1 else ""
        text += f" in the {' and '.join(criteria.sectors)} sector{plural}"
    elif ctx.breakdown:
        top = ctx.breakdown[0]
        text += f", led by {top.sector} ({top.count} stocks)"

    if avg_change > 0:
        text += f". Average performance: +{avg_change:.1f}% today."
    elif avg_change < 0:
        text += f". Average performance: {avg_change:.1f}% today."
    else:
        text += "."

    quality = ctx.share(ctx.frame["roe"] > 15)
    if quality > 0.5:
        text += f" {int(quality * 100 + 0.5)}% show strong profitability metrics."
    return text


def _market_context(ctx: InsightContext) -> str:
    criteria = ctx.criteria
    parts: list[str] = []

    if criteria.min_dividend_yield:
        parts.append(
            f"Income-focused screen targeting {format_number(criteria.min_dividend_yield)}%+ dividend yields."
        )
    if criteria.max_pe:
        parts.append(f"Value-oriented criteria with P/E cap at {format_number(criteria.max_pe)}x.")
    if criteria.min_perf_today is not None and criteria.min_perf_today > 0:
        parts.append("Momentum filter capturing today's gainers.")
    if criteria.high_low_52w is HighLow52W.NEW_HIGH:
        parts.append("Breakout focus on stocks at or near 52-week highs.")
    if criteria.rsi_filter in (RSIFilter.OVERSOLD_30, RSIFilter.OVERSOLD_40):
        parts.append("Oversold bounce strategy targeting technically depressed stocks.")

    if criteria.sectors:
        sector = criteria.sectors[0]
        benchmark = SECTOR_BENCHMARKS.get(sector)
        if benchmark is not None:
            parts.append(
                f"{sector} sector trades at median P/E of {format_number(benchmark.avg_pe)}x "
                f"with {format_number(benchmark.avg_dividend_yield)}% typical yield."
            )

    if ctx.count < 10:
        parts.append("Selective criteria producing focused results. Consider for high-conviction positions.")
    elif ctx.count > 50:
        parts.append("Broad results suggest adding filters for more targeted selection.")

    return " ".join(parts)
