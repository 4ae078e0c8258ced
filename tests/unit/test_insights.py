"""
Unit tests for portfolio analytics over Home Credit applications.
"""

import pytest

from fraudguard.analytics.insights import (
    analyze_portfolio,
    compute_forecast,
    compute_insights,
    dataset_summary,
)


def _app(sk_id, target, contract, gender, income, credit, ext, days_employed, days_birth, risk, level,
         employed_years=5, age_years=40):
    return {
        "SK_ID_CURR":           sk_id,
        "TARGET":               target,
        "NAME_CONTRACT_TYPE":   contract,
        "NAME_INCOME_TYPE":     "Working",
        "NAME_HOUSING_TYPE":    "House / apartment",
        "CODE_GENDER":          gender,
        "AMT_INCOME_TOTAL":     income,
        "AMT_CREDIT":           credit,
        "AMT_ANNUITY":          credit / 20,
        "EXT_SOURCE_1":         ext[0],
        "EXT_SOURCE_2":         ext[1],
        "EXT_SOURCE_3":         ext[2],
        "DAYS_EMPLOYED":        days_employed,
        "DAYS_BIRTH":           days_birth,
        "CREDIT_INCOME_RATIO":  round(credit / income, 2),
        "ANNUITY_INCOME_RATIO": round(credit / 20 / income, 4),
        "EMPLOYED_YEARS":       employed_years,
        "AGE_YEARS":            age_years,
        "RISK_SCORE":           risk,
        "RISK_LEVEL":           level,
    }


@pytest.fixture
def portfolio():
    return [
        _app(1, 1, "Cash loans",      "M", 100000, 800000,  (0.1, 0.2, 0.15),   -100,  -8030,  85, "High",
             employed_years=0, age_years=22),
        _app(2, 0, "Cash loans",      "F", 200000, 400000,  (0.9, 0.9, 0.9),    -3650, -14600, 10, "Low",
             employed_years=10, age_years=40),
        _app(3, 0, "Revolving loans", "F", 40000,  150000,  (0.4, 0.5, 0.6),    -1000, -18250, 45, "Medium",
             employed_years=3, age_years=50),
        _app(4, 1, "Cash loans",      "F", 60000,  1200000, (0.35, 0.35, 0.35), -200,  -25550, 70, "High",
             employed_years=1, age_years=70),
    ]


class TestDatasetSummary:

    def test_headline_numbers(self, portfolio):
        summary = dataset_summary(portfolio)
        assert summary["totalApps"] == 4
        assert summary["defaultRate"] == 50.0
        assert summary["avgIncome"] == 100000
        assert summary["avgCredit"] == 637500
        assert (summary["highRisk"], summary["mediumRisk"], summary["lowRisk"]) == (2, 1, 1)

    def test_empty(self):
        assert dataset_summary([]) is None


class TestComputeInsights:

    def test_default_counts(self, portfolio):
        insights = compute_insights(portfolio)
        assert insights["defaultCount"] == 2
        assert insights["nonDefaultCount"] == 2
        assert insights["defaultRate"] == 50.0

    def test_income_by_contract(self, portfolio):
        assert compute_insights(portfolio)["incomeByContract"] == [
            {"name": "Cash loans",      "avgIncome": 120000, "count": 3},
            {"name": "Revolving loans", "avgIncome": 40000,  "count": 1},
        ]

    def test_credit_ranges(self, portfolio):
        ranges = {r["range"]: r for r in compute_insights(portfolio)["creditRanges"]}
        assert ranges["0-100K"]["count"] == 0
        assert ranges["0-100K"]["defaultRate"] == 0.0
        assert ranges["500K-1M"] == {"range": "500K-1M", "count": 1, "defaultRate": 100.0}
        assert ranges["1M+"]["count"] == 1
        assert ranges["300K-500K"]["defaultRate"] == 0.0

    def test_ext_score_ranges(self, portfolio):
        counts = {r["range"]: r["count"] for r in compute_insights(portfolio)["extScoreRanges"]}
        assert counts == {"0.0-0.2": 1, "0.2-0.4": 1, "0.4-0.6": 1, "0.6-0.8": 0, "0.8-1.0": 1}

    def test_gender_breakdown(self, portfolio):
        assert compute_insights(portfolio)["genderData"] == [
            {"name": "Male",   "value": 1, "defaultRate": 100.0},
            {"name": "Female", "value": 3, "defaultRate": 33.3},
        ]

    def test_risk_factors(self, portfolio):
        factors = [f["percentage"] for f in compute_insights(portfolio)["riskFactors"]]
        assert factors == [25, 50, 50, 25]

    def test_empty(self):
        assert compute_insights([]) is None


class TestComputeForecast:

    def test_forecast_series(self, portfolio):
        series = compute_forecast(portfolio)["forecast"]
        assert len(series) == 7
        assert series[0] == {"week": "Current", "defaults": 2, "predicted": 2, "confidence": 100}
        assert [p["confidence"] for p in series] == [100, 95, 90, 85, 80, 75, 70]
        assert [p["week"] for p in series[1:]] == [f"Week {i}" for i in range(1, 7)]

    def test_income_risk(self, portfolio):
        brackets = {b["bracket"]: b for b in compute_forecast(portfolio)["incomeRisk"]}
        assert brackets["<50K"]["mediumRisk"] == 1
        assert brackets["50-100K"]["highRisk"] == 1
        assert brackets["100-200K"]["highRisk"] == 1
        assert brackets[">200K"]["lowRisk"] == 1

    def test_credit_ratio_risk(self, portfolio):
        assert compute_forecast(portfolio)["creditRatioRisk"] == [
            {"ratio": "<3x",   "count": 1, "defaultRate": 0.0},
            {"ratio": "3-5x",  "count": 1, "defaultRate": 0.0},
            {"ratio": "5-10x", "count": 1, "defaultRate": 100.0},
            {"ratio": ">10x",  "count": 1, "defaultRate": 100.0},
        ]

    def test_totals(self, portfolio):
        forecast = compute_forecast(portfolio)
        assert forecast["highRisk"] == 2
        assert forecast["defaultCount"] == 2
        assert forecast["avgRiskScore"] == pytest.approx(52.5)

    def test_empty(self):
        assert compute_forecast([]) is None


class TestAnalyzePortfolio:

    def test_scores_from_risk_score(self, portfolio):
        records = analyze_portfolio(portfolio)["transactions"]
        assert [r["fraudScore"] for r in records] == pytest.approx([0.85, 0.10, 0.45, 0.70])
        assert [r["riskLevel"] for r in records] == ["High", "Low", "Medium", "High"]
        assert [r["flagged"] for r in records] == [True, False, False, True]

    def test_summary_shape(self, portfolio):
        summary = analyze_portfolio(portfolio)["summary"]
        assert summary["totalTransactions"] == 4
        assert summary["fraudCount"] == 2
        assert summary["highRiskCount"] == 2
        assert summary["avgFraudScore"] == pytest.approx(0.525)

    def test_detailed_explanations(self, portfolio):
        records = analyze_portfolio(portfolio)["transactions"]
        assert "Very low external credit score (EXT_SOURCE_2: 0.200)" in records[0]["explanation"]
        assert "Young applicant age (22 years)" in records[0]["explanation"]
        assert "Strong external credit score (EXT_SOURCE_2: 0.900)" in records[1]["explanation"]
        assert "Conservative credit-to-income ratio (2.0x)" in records[1]["explanation"]

    def test_missing_fields_use_neutral_defaults(self):
        record = analyze_portfolio([{"SK_ID_CURR": 9}])["transactions"][0]
        assert record["fraudScore"] == pytest.approx(0.5)
        assert record["riskLevel"] == "Medium"
        assert record["contractType"] == "N/A"
        assert record["explanation"].startswith("Standard risk profile")

    def test_empty(self):
        result = analyze_portfolio([])
        assert result["transactions"] == []
        assert result["summary"]["totalTransactions"] == 0
