"""Tests for sector normalisation and the insight report generator."""

from __future__ import annotations

import pytest

from insights import InsightReport, generate_insights, normalize_sector
from insights.generator import sector_breakdown, top_opportunities
from screener.models import ScreenerCriteria

from conftest import result


class TestNormalizeSector:
    @pytest.mark.parametrize(
        "label, expected",
        [
            ("Semiconductors", "Technology"),
            ("Prepackaged Software", "Technology"),
            ("Pharmaceutical Preparations", "Healthcare"),
            ("National Commercial Banks", "Financial Services"),
            ("Crude Petroleum & Natural Gas", "Energy"),
            ("Electric Services", "Utilities"),
            ("Real Estate Investment Trusts", "Real Estate"),
            ("Aerospace", "Industrials"),
            ("Retail-Eating Places", "Consumer Cyclical"),
            ("Mining & Quarrying", "Basic Materials"),
            ("Telecom Services", "Communication Services"),
        ],
    )
    def test_substring_rules(self, label, expected) -> None:
        assert normalize_sector(label) == expected

    def test_unmatched_label_passes_through(self) -> None:
        assert normalize_sector("Conglomerates") == "Conglomerates"

    def test_blank_is_other(self) -> None:
        assert normalize_sector("") == "Other"
        assert normalize_sector(None) == "Other"


class TestEmptyResults:
    def test_short_circuit(self) -> None:
        report = generate_insights(ScreenerCriteria(), [])
        assert report.to_dict() == {
            "summary": "No stocks found matching your criteria.",
            "keyFindings": [],
            "sectorBreakdown": [],
            "topOpportunities": [],
            "riskFactors": ["No data to analyze"],
            "marketContext": "Try broadening your search criteria.",
        }

    def test_error_placeholder(self) -> None:
        data = InsightReport.empty_error().to_dict()
        assert data["summary"] == "Unable to generate insights at this time."
        assert data["riskFactors"] == []
        assert data["marketContext"] == ""


class TestTechRally:
    def test_findings_capped_and_ordered(self, tech_rally) -> None:
        findings = generate_insights(ScreenerCriteria(), tech_rally).key_findings
        assert len(findings) == 5
        assert findings[0] == "Strong bullish momentum: average gain of 6.3% across 6 stocks"
        assert "High concentration in Technology (100% of results)" in findings
        assert "Technology leading with +6.3% average gain" in findings
        assert "4 stocks trading at 2x+ average volume - heightened activity" in findings
        assert "Growth focus: average P/E of 47.5x indicates premium valuations" in findings

    def test_summary(self, tech_rally) -> None:
        report = generate_insights(ScreenerCriteria(), tech_rally)
        assert report.summary == (
            "Found 6 stocks matching your criteria, led by Technology (6 stocks). "
            "Average performance: +6.3% today. 67% show strong profitability metrics."
        )

    def test_sector_summary_when_filtered(self, tech_rally) -> None:
        criteria = ScreenerCriteria(sectors=("Technology",), min_dividend_yield=3.0)
        report = generate_insights(criteria, tech_rally)
        assert " in the Technology sector." in report.summary
        assert report.market_context == (
            "Income-focused screen targeting 3%+ dividend yields. "
            "Technology sector trades at median P/E of 28x with 0.8% typical yield. "
            "Selective criteria producing focused results. Consider for high-conviction positions."
        )

    def test_opportunities(self, tech_rally) -> None:
        opportunities = generate_insights(ScreenerCriteria(), tech_rally).top_opportunities
        assert [o.ticker for o in opportunities] == ["NVDA", "SMCI", "AMD", "AVGO", "MU"]
        assert opportunities[0].reason == (
            "strong momentum (+8.0%), exceptional volume (3.5x avg), excellent ROE (45%)"
        )

    def test_risks(self, tech_rally) -> None:
        risks = generate_insights(ScreenerCriteria(), tech_rally).risk_factors
        assert risks == [
            "Concentrated sector exposure - consider diversification",
            "Elevated valuations (P/E > 50x) increase downside risk",
        ]

    def test_deterministic(self, tech_rally) -> None:
        first = generate_insights(ScreenerCriteria(), tech_rally).to_dict()
        second = generate_insights(ScreenerCriteria(), tech_rally).to_dict()
        assert first == second


class TestSellOff:
    @pytest.fixture()
    def sell_off(self):
        return [
            result("AAA", sector="Energy", change_percent=-4.0),
            result("BBB", sector="Energy", change_percent=-6.0),
            result("CCC", sector="Utilities", change_percent=-8.0),
        ]

    def test_selling_pressure_finding(self, sell_off) -> None:
        findings = generate_insights(ScreenerCriteria(), sell_off).key_findings
        assert findings[0] == "Significant selling pressure: average decline of 6.0%"

    def test_risks(self, sell_off) -> None:
        criteria = ScreenerCriteria(min_float_short=20.0)
        risks = generate_insights(criteria, sell_off).risk_factors
        assert risks == [
            "High small-cap exposure increases volatility and liquidity risk",
            "High short interest can cause extreme volatility in both directions",
            "Many stocks showing significant weakness - exercise caution",
        ]

    def test_negative_average_in_summary(self, sell_off) -> None:
        summary = generate_insights(ScreenerCriteria(), sell_off).summary
        assert summary.endswith("Average performance: -6.0% today.")


class TestBreakdownAndScoring:
    def test_breakdown_ties_keep_first_appearance(self) -> None:
        results = [
            result("A", sector="Energy", change_percent=1.0),
            result("B", sector="Electric Services", change_percent=3.0),
            result("C", sector="Oil & Gas", change_percent=2.0),
            result("D", sector="Power Generation", change_percent=-1.0),
            result("E", sector="Banks", change_percent=0.0),
        ]
        breakdown = sector_breakdown(results)
        assert [(s.sector, s.count) for s in breakdown] == [
            ("Energy", 2), ("Utilities", 2), ("Financial Services", 1),
        ]
        assert breakdown[0].avg_change == pytest.approx(1.5)

    def test_breakdown_limited_to_six(self) -> None:
        sectors = ["A1", "B2", "C3", "D4", "E5", "F6", "G7"]
        results = [result(s, sector=s) for s in sectors]
        assert len(sector_breakdown(results)) == 6

    def test_size_alone_is_not_an_opportunity(self) -> None:
        assert top_opportunities([result("BIG", market_cap=500e9)]) == []

    def test_equal_scores_keep_input_order(self) -> None:
        results = [
            result("X", change_percent=3.0),
            result("Y", change_percent=2.5),
        ]
        assert [o.ticker for o in top_opportunities(results)] == ["X", "Y"]

    def test_value_and_yield_reasons(self) -> None:
        opp = top_opportunities([result("T", pe=9.0, dividend_yield=6.5)])[0]
        assert opp.reason == "attractive P/E (9.0x), high yield (6.5%)"
        assert opp.score == 4
