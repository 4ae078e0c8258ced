"""
Portfolio Analytics — FraudGuard
Aggregate views over the loaded Home Credit applications: dataset summary,
default-rate insights, default forecasting and per-application risk review.
"""

import numpy as np
import pandas as pd
from loguru import logger

from fraudguard.explain.explainer import explain_application_risk
from fraudguard.features.engineer import numeric_column
from fraudguard.scoring.fraud import summarize

CREDIT_RANGES = [
    ("0-100K",    0,         100_000),
    ("100K-300K", 100_000,   300_000),
    ("300K-500K", 300_000,   500_000),
    ("500K-1M",   500_000,   1_000_000),
    ("1M+",       1_000_000, np.inf),
]
EXT_SCORE_RANGES = [
    ("0.0-0.2", 0.0, 0.2),
    ("0.2-0.4", 0.2, 0.4),
    ("0.4-0.6", 0.4, 0.6),
    ("0.6-0.8", 0.6, 0.8),
    ("0.8-1.0", 0.8, 1.0),
]
INCOME_BRACKETS = [
    ("<50K",     0,       50_000),
    ("50-100K",  50_000,  100_000),
    ("100-200K", 100_000, 200_000),
    (">200K",    200_000, np.inf),
]
CREDIT_RATIO_BUCKETS = [
    ("<3x",   -np.inf, 3),
    ("3-5x",  3,       5),
    ("5-10x", 5,       10),
    (">10x",  10,      np.inf),
]
# (label, growth multiplier over current defaults, confidence %)
FORECAST_WEEKS = [
    ("Week 1", 1.05, 95),
    ("Week 2", 1.08, 90),
    ("Week 3", 1.12, 85),
    ("Week 4", 1.15, 80),
    ("Week 5", 1.10, 75),
    ("Week 6", 1.07, 70),
]


def _frame(applications: list[dict]) -> pd.DataFrame:
    return pd.DataFrame.from_records(applications)


def _round(value) -> int:
    """Half-up rounding to a plain int."""
    return int(np.floor(float(value) + 0.5))


def _pct(part: int, whole: int, decimals: int = 1) -> float:
    return round(part / whole * 100, decimals) if whole else 0.0


def _bucket_rates(values: pd.Series, target: pd.Series, ranges: list[tuple]) -> list[dict]:
    """Count and default rate (%) per half-open [low, high) range."""
    rows = []
    for label, low, high in ranges:
        mask = (values >= low) & (values < high)
        count = int(mask.sum())
        rows.append({
            "range":       label,
            "count":       count,
            "defaultRate": _pct(int((mask & (target == 1)).sum()), count),
        })
    return rows


def _risk_counts(df: pd.DataFrame) -> dict:
    levels = df["RISK_LEVEL"].value_counts()
    return {
        "highRisk":   int(levels.get("High", 0)),
        "mediumRisk": int(levels.get("Medium", 0)),
        "lowRisk":    int(levels.get("Low", 0)),
    }


# ------------------------------------------------------------------ #
# Dataset summary                                                      #
# ------------------------------------------------------------------ #

def dataset_summary(applications: list[dict]) -> dict | None:
    """Headline numbers for the loaded sample, or None when empty."""
    if not applications:
        return None
    df = _frame(applications)
    return {
        "totalApps":   len(df),
        "defaultRate": _pct(int((df["TARGET"] == 1).sum()), len(df), decimals=2),
        "avgIncome":   _round(df["AMT_INCOME_TOTAL"].mean()),
        "avgCredit":   _round(df["AMT_CREDIT"].mean()),
        **_risk_counts(df),
    }


# ------------------------------------------------------------------ #
# Insights                                                             #
# ------------------------------------------------------------------ #

def compute_insights(applications: list[dict]) -> dict | None:
    """
    Default-rate breakdowns for the insights view.

    Returns None when there is no data.
    """
    if not applications:
        return None

    df = _frame(applications)
    n = len(df)
    target = df["TARGET"]
    default_count = int((target == 1).sum())

    contract = df["NAME_CONTRACT_TYPE"].fillna("Unknown").replace("", "Unknown")
    by_contract = df.groupby(contract, sort=False)["AMT_INCOME_TOTAL"].agg(["sum", "count"])
    income_by_contract = [
        {"name": name, "avgIncome": _round(row["sum"] / row["count"]), "count": int(row["count"])}
        for name, row in by_contract.iterrows()
    ]

    avg_ext = df[["EXT_SOURCE_1", "EXT_SOURCE_2", "EXT_SOURCE_3"]].mean(axis=1)

    gender = df["CODE_GENDER"].map({"M": "Male", "F": "Female"}).fillna("Other")
    gender_data = [
        {
            "name":        name,
            "value":       int(len(group)),
            "defaultRate": _pct(int((group == 1).sum()), len(group)),
        }
        for name, group in target.groupby(gender, sort=False)
    ]

    credit_income = df["AMT_CREDIT"] / df["AMT_INCOME_TOTAL"]
    risk_factors = [
        {
            "label":       "Low External Score (< 0.3)",
            "percentage":  _round((avg_ext < 0.3).sum() / n * 100),
            "description": "Applicants with poor external credit scores",
        },
        {
            "label":       "High Credit-to-Income Ratio (> 5x)",
            "percentage":  _round((credit_income > 5).sum() / n * 100),
            "description": "Credit amount exceeds 5x annual income",
        },
        {
            "label":       "Short Employment (< 1 year)",
            "percentage":  _round((df["DAYS_EMPLOYED"].abs() < 365).sum() / n * 100),
            "description": "Less than 1 year at current employment",
        },
        {
            "label":       "Young Age (< 25 years)",
            "percentage":  _round((df["DAYS_BIRTH"].abs() / 365 < 25).sum() / n * 100),
            "description": "Applicants under 25 years of age",
        },
    ]

    return {
        "defaultCount":     default_count,
        "nonDefaultCount":  n - default_count,
        "defaultRate":      _pct(default_count, n),
        "incomeByContract": income_by_contract,
        "creditRanges":     _bucket_rates(df["AMT_CREDIT"], target, CREDIT_RANGES),
        "extScoreRanges":   _bucket_rates(avg_ext, target, EXT_SCORE_RANGES),
        "genderData":       gender_data,
        "riskFactors":      risk_factors,
    }


# ------------------------------------------------------------------ #
# Forecasting                                                          #
# ------------------------------------------------------------------ #

def compute_forecast(applications: list[dict]) -> dict | None:
    """
    Six-week default projection from the current default count, plus risk
    by income bracket and default rate by credit/income ratio.
    """
    if not applications:
        return None

    df = _frame(applications)
    n = len(df)
    target = df["TARGET"]
    default_count = int((target == 1).sum())

    forecast = [{"week": "Current", "defaults": default_count, "predicted": default_count, "confidence": 100}]
    forecast += [
        {"week": week, "defaults": 0, "predicted": _round(default_count * mult), "confidence": conf}
        for week, mult, conf in FORECAST_WEEKS
    ]

    income = df["AMT_INCOME_TOTAL"]
    income_risk = []
    for label, low, high in INCOME_BRACKETS:
        bracket = df[(income >= low) & (income < high)]
        counts = _risk_counts(bracket)
        income_risk.append({"bracket": label, **counts})

    ratio = df["CREDIT_INCOME_RATIO"]
    credit_ratio_risk = []
    for label, low, high in CREDIT_RATIO_BUCKETS:
        mask = (ratio >= low) & (ratio < high)
        count = int(mask.sum())
        defaults = int((mask & (target == 1)).sum())
        credit_ratio_risk.append({
            "ratio":       label,
            "count":       count,
            "defaultRate": round(defaults / max(count, 1) * 100, 1),
        })

    return {
        **_risk_counts(df),
        "defaultCount":    default_count,
        "defaultRate":     _pct(default_count, n),
        "avgRiskScore":    float(df["RISK_SCORE"].mean()),
        "forecast":        forecast,
        "incomeRisk":      income_risk,
        "creditRatioRisk": credit_ratio_risk,
    }


# ------------------------------------------------------------------ #
# Portfolio risk review                                                #
# ------------------------------------------------------------------ #

def _portfolio_level(score: float) -> str:
    if score > 0.6:
        return "High"
    if score > 0.3:
        return "Medium"
    return "Low"


def analyze_portfolio(applications: list[dict]) -> dict:
    """
    Review loaded applications as scored records.

    fraudScore is RISK_SCORE / 100. Missing fields fall back to neutral
    defaults (EXT 0.5, credit ratio 3, annuity ratio 0.3, employed 5y,
    age 35, risk 50).

    Returns
    -------
    {"transactions": [...], "summary": {...}} in the analyze-fraud shape.
    """
    if not applications:
        return {"transactions": [], "summary": summarize([])}

    df = _frame(applications)
    cols = {
        "extSource1":         numeric_column(df, "EXT_SOURCE_1", 0.5),
        "extSource2":         numeric_column(df, "EXT_SOURCE_2", 0.5),
        "extSource3":         numeric_column(df, "EXT_SOURCE_3", 0.5),
        "creditIncomeRatio":  numeric_column(df, "CREDIT_INCOME_RATIO", 3),
        "annuityIncomeRatio": numeric_column(df, "ANNUITY_INCOME_RATIO", 0.3),
        "employedYears":      numeric_column(df, "EMPLOYED_YEARS", 5),
        "ageYears":           numeric_column(df, "AGE_YEARS", 35),
        "riskScore":          numeric_column(df, "RISK_SCORE", 50),
        "amount":             numeric_column(df, "AMT_CREDIT"),
        "income":             numeric_column(df, "AMT_INCOME_TOTAL"),
        "target":             numeric_column(df, "TARGET"),
    }

    analyzed = []
    for idx, app in enumerate(applications):
        values = {k: float(v.iloc[idx]) for k, v in cols.items()}
        fraud_score = values["riskScore"] / 100
        record = {
            "id":                 str(app.get("id") or app.get("SK_ID_CURR") or idx),
            "skIdCurr":           int(app.get("SK_ID_CURR") or 0),
            "amount":             values["amount"],
            "income":             values["income"],
            "contractType":       app.get("NAME_CONTRACT_TYPE") or "N/A",
            "incomeType":         app.get("NAME_INCOME_TYPE") or "N/A",
            "housingType":        app.get("NAME_HOUSING_TYPE") or "N/A",
            "fraudScore":         fraud_score,
            "riskLevel":          _portfolio_level(fraud_score),
            "flagged":            fraud_score > 0.5,
            "extSource1":         values["extSource1"],
            "extSource2":         values["extSource2"],
            "extSource3":         values["extSource3"],
            "creditIncomeRatio":  values["creditIncomeRatio"],
            "annuityIncomeRatio": values["annuityIncomeRatio"],
            "ageYears":           values["ageYears"],
            "employedYears":      values["employedYears"],
            "target":             int(values["target"]),
        }
        record["explanation"] = explain_application_risk(record)
        analyzed.append(record)

    summary = summarize(analyzed)
    logger.info(
        f"Portfolio review | n={summary['totalTransactions']} high={summary['highRiskCount']} "
        f"flagged={summary['fraudCount']}"
    )
    return {"transactions": analyzed, "summary": summary}
