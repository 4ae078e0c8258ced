"""
Credit Scorer — FraudGuard
Maps applicant features onto a 300–850 credit score, a risk group and a
SHAP-style feature importance table.
"""

import numpy as np
import pandas as pd
from loguru import logger

from fraudguard.config import MAX_ROWS
from fraudguard.features.engineer import ApplicantFeatureEngineer, numeric_column, records_to_frame

BASE_SCORE        = 500
MIN_SCORE         = 300
MAX_SCORE         = 850
APPROVAL_CUTOFF   = 620

# Feature importance weights (SHAP-style, fixed)
FEATURE_WEIGHTS = {
    "income":           0.18,
    "loanAmount":       0.15,
    "employmentLength": 0.12,
    "creditHistory":    0.20,
    "debtToIncome":     0.18,
    "ageOfCredit":      0.10,
    "numAccounts":      0.07,
}


# ------------------------------------------------------------------ #
# Scoring                                                              #
# ------------------------------------------------------------------ #

def score_frame(features: pd.DataFrame) -> pd.Series:
    """Vectorised credit score over an engineered applicant frame."""
    income = features["income_value"]
    score = BASE_SCORE + np.select(
        [income > 100000, income > 70000, income > 50000, income > 30000],
        [80, 60, 40, 20],
        0,
    )

    lti = features["loan_to_income"]
    score = score + np.select([lti < 2, lti < 4], [50, 25], -30)

    score = score + np.minimum(features["employment_length_value"] * 5, 50)

    hist = features["credit_history_value"]
    score = score + np.select([hist >= 700, hist >= 650, hist >= 600], [100, 60, 30], -50)

    dti = features["debt_to_income_value"]
    score = score + np.select([dti < 0.2, dti < 0.35, dti > 0.5], [60, 30, -50], 0)

    score = score + np.minimum(features["age_of_credit_value"] * 3, 40)

    return pd.Series(np.clip(score, MIN_SCORE, MAX_SCORE), index=features.index, dtype=float)


def _as_score(value: float) -> int | float:
    return int(value) if float(value).is_integer() else float(value)


def calculate_credit_score(applicant: dict) -> int | float:
    """Credit score for a single applicant dict, clamped to [300, 850]."""
    features = ApplicantFeatureEngineer().transform(records_to_frame([applicant]))
    return _as_score(score_frame(features).iloc[0])


def get_risk_group(score: float) -> str:
    if score >= 700:
        return "Prime"
    if score >= 600:
        return "Near-prime"
    return "Subprime"


def _impact(positive: bool, negative: bool) -> str:
    if positive:
        return "positive"
    if negative:
        return "negative"
    return "neutral"


def _importance_from_row(row: pd.Series) -> list[dict]:
    income = row["income_value"]
    hist   = row["credit_history_value"]
    dti    = row["debt_to_income_value"]
    emp    = row["employment_length_value"]
    loan   = row["loan_amount_value"]

    importance = [
        {
            "feature":    "Annual Income",
            "importance": FEATURE_WEIGHTS["income"] * 100,
            "impact":     _impact(income > 50000, income < 30000),
        },
        {
            "feature":    "Credit History",
            "importance": FEATURE_WEIGHTS["creditHistory"] * 100,
            "impact":     _impact(hist >= 650, hist < 600),
        },
        {
            "feature":    "Debt-to-Income",
            "importance": FEATURE_WEIGHTS["debtToIncome"] * 100,
            "impact":     _impact(dti < 0.35, dti > 0.5),
        },
        {
            "feature":    "Loan Amount",
            "importance": FEATURE_WEIGHTS["loanAmount"] * 100,
            "impact":     "positive" if income > 0 and loan / income < 3 else "negative",
        },
        {
            "feature":    "Employment Length",
            "importance": FEATURE_WEIGHTS["employmentLength"] * 100,
            "impact":     _impact(emp >= 3, emp < 1),
        },
    ]
    # stable: equal weights keep insertion order
    return sorted(importance, key=lambda f: f["importance"], reverse=True)


def get_feature_importance(applicant: dict) -> list[dict]:
    """Top credit factors, highest weight first, each tagged positive/negative/neutral."""
    features = ApplicantFeatureEngineer().transform(records_to_frame([applicant]))
    return _importance_from_row(features.iloc[0])


def summarize_factors(importance: list[dict]) -> str:
    """One-line summary of the strongest and weakest of the top 3 factors."""
    top = importance[:3]
    positives = [f["feature"] for f in top if f["impact"] == "positive"]
    negatives = [f["feature"] for f in top if f["impact"] == "negative"]

    parts = []
    if positives:
        parts.append(f"Strong factors: {', '.join(positives)}")
    if negatives:
        parts.append(f"Areas of concern: {', '.join(negatives)}")
    return ". ".join(parts) or "Standard credit profile."


# ------------------------------------------------------------------ #
# Batch                                                                #
# ------------------------------------------------------------------ #

def score_applicants(applicants: list[dict], max_rows: int = MAX_ROWS) -> list[dict]:
    """
    Score the first `max_rows` applicants.

    Each output record echoes its input plus creditScore, riskGroup,
    featureImportance, explanation (factor summary) and approved.
    """
    batch = [a for a in applicants[:max_rows] if isinstance(a, dict)]
    if not batch:
        return []

    features = ApplicantFeatureEngineer().transform(records_to_frame(batch))
    scores   = score_frame(features)

    scored = []
    for idx, applicant in enumerate(batch):
        credit_score = _as_score(scores.iloc[idx])
        importance   = _importance_from_row(features.iloc[idx])
        scored.append({
            **applicant,
            "creditScore":       credit_score,
            "riskGroup":         get_risk_group(credit_score),
            "featureImportance": importance,
            "explanation":       summarize_factors(importance),
            "approved":          credit_score >= APPROVAL_CUTOFF,
        })

    logger.info(f"Credit scoring | n={len(scored)}")
    return scored


def score_distribution(scored: list[dict]) -> dict:
    """Risk-group counts, mean score and approval rate (%). Empty input → zeros."""
    groups = [a["riskGroup"] for a in scored]
    n = len(scored)
    return {
        "prime":        groups.count("Prime"),
        "nearPrime":    groups.count("Near-prime"),
        "subprime":     groups.count("Subprime"),
        "avgScore":     sum(a["creditScore"] for a in scored) / n if n else 0,
        "approvalRate": sum(1 for a in scored if a["approved"]) / n * 100 if n else 0,
    }


# ------------------------------------------------------------------ #
# Home Credit portfolio                                                #
# ------------------------------------------------------------------ #

HOME_CREDIT_BASE_SCORE   = 550
HOME_CREDIT_APPROVAL     = 600

# Values used when a field is missing or zero
HOME_CREDIT_DEFAULTS = {
    "income":             100000.0,
    "loanAmount":         200000.0,
    "employmentLength":   3.0,
    "debtToIncome":       0.3,
    "extSource1":         0.5,
    "extSource2":         0.5,
    "extSource3":         0.5,
    "creditHistory":      650.0,
    "annuityIncomeRatio": 0.3,
    "ageYears":           35.0,
}


def home_credit_applicant(app: dict) -> dict:
    """Map a stored Home Credit application onto the applicant fields the scorer reads."""
    ext2 = app.get("EXT_SOURCE_2")
    return {
        "id":                 f"HC-{app.get('SK_ID_CURR')}",
        "skIdCurr":           app.get("SK_ID_CURR"),
        "income":             app.get("AMT_INCOME_TOTAL"),
        "loanAmount":         app.get("AMT_CREDIT"),
        "employmentLength":   app.get("EMPLOYED_YEARS"),
        "creditHistory":      round(300 + ext2 * 550) if isinstance(ext2, (int, float)) else None,
        "debtToIncome":       app.get("ANNUITY_INCOME_RATIO"),
        "extSource1":         app.get("EXT_SOURCE_1"),
        "extSource2":         ext2,
        "extSource3":         app.get("EXT_SOURCE_3"),
        "creditIncomeRatio":  app.get("CREDIT_INCOME_RATIO"),
        "annuityIncomeRatio": app.get("ANNUITY_INCOME_RATIO"),
        "ageYears":           app.get("AGE_YEARS"),
        "riskScore":          app.get("RISK_SCORE"),
        "target":             app.get("TARGET") or 0,
        "gender":             app.get("CODE_GENDER") or "N/A",
        "familyStatus":       app.get("NAME_FAMILY_STATUS") or "N/A",
        "children":           app.get("CNT_CHILDREN") or 0,
        "education":          app.get("NAME_EDUCATION_TYPE") or "N/A",
        "housingType":        app.get("NAME_HOUSING_TYPE") or "N/A",
        "incomeType":         app.get("NAME_INCOME_TYPE") or "N/A",
        "occupation":         app.get("OCCUPATION_TYPE") or "N/A",
        "ownCar":             app.get("FLAG_OWN_CAR") or "N",
        "ownRealty":          app.get("FLAG_OWN_REALTY") or "N",
    }


def home_credit_frame(applicants: list[dict]) -> pd.DataFrame:
    """Numeric applicant fields with missing or zero values replaced by HOME_CREDIT_DEFAULTS."""
    raw = records_to_frame(applicants)
    df = pd.DataFrame(index=raw.index)
    for column, default in HOME_CREDIT_DEFAULTS.items():
        df[column] = numeric_column(raw, column, default)
    df["creditIncomeRatio"] = numeric_column(raw, "creditIncomeRatio", np.nan)
    df["creditIncomeRatio"] = df["creditIncomeRatio"].fillna(df["loanAmount"] / df["income"])
    return df


def score_home_credit_frame(df: pd.DataFrame) -> pd.Series:
    """
    Bureau-driven credit score over a home_credit_frame.

    550 + 100 per EXT_SOURCE_1..3 + min(5 * employment years, 50)
    - 100 * DTI - 50 when loan/income > 5, rounded and clamped to [300, 850].
    """
    score = (
        HOME_CREDIT_BASE_SCORE
        + df["extSource1"] * 100
        + df["extSource2"] * 100
        + df["extSource3"] * 100
        + np.minimum(df["employmentLength"] * 5, 50)
        - df["debtToIncome"] * 100
        - np.where(df["loanAmount"] / df["income"] > 5, 50, 0)
    )
    # half-up, as the dashboard rounds
    score = np.floor(score + 0.5)
    return pd.Series(np.clip(score, MIN_SCORE, MAX_SCORE), index=df.index).astype(int)


def home_credit_feature_importance(row: pd.Series) -> list[dict]:
    ext2 = row["extSource2"]
    ext3 = row["extSource3"]
    emp  = row["employmentLength"]
    dti  = row["debtToIncome"]
    lti  = row["loanAmount"] / row["income"]
    return [
        {
            "feature":    "EXT_SOURCE_2",
            "importance": round(ext2 * 100),
            "impact":     "positive" if ext2 > 0.5 else "negative",
        },
        {
            "feature":    "EXT_SOURCE_3",
            "importance": round(ext3 * 100),
            "impact":     "positive" if ext3 > 0.5 else "negative",
        },
        {
            "feature":    "Employment Years",
            "importance": min(emp * 10, 100),
            "impact":     "positive" if emp > 2 else "negative",
        },
        {
            "feature":    "Debt-to-Income",
            "importance": round(dti * 100),
            "impact":     "positive" if dti < 0.4 else "negative",
        },
        {
            "feature":    "Credit-to-Income Ratio",
            "importance": round(lti * 20),
            "impact":     "positive" if lti < 4 else "negative",
        },
    ]


def score_home_credit_applicants(applications: list[dict]) -> list[dict]:
    """
    Credit-score stored Home Credit applications.

    Each output record carries the mapped applicant fields (with defaults
    filled in) plus creditScore, riskGroup, featureImportance and approved
    (score >= 600). The narrative explanation is added by the caller.
    """
    applicants = [home_credit_applicant(a) for a in applications if isinstance(a, dict)]
    if not applicants:
        return []

    df     = home_credit_frame(applicants)
    scores = score_home_credit_frame(df)

    scored = []
    for idx, applicant in enumerate(applicants):
        row = df.iloc[idx]
        credit_score = int(scores.iloc[idx])
        scored.append({
            **applicant,
            **{column: float(row[column]) for column in HOME_CREDIT_DEFAULTS},
            "creditIncomeRatio": float(row["creditIncomeRatio"]),
            "creditScore":       credit_score,
            "riskGroup":         get_risk_group(credit_score),
            "featureImportance": home_credit_feature_importance(row),
            "approved":          credit_score >= HOME_CREDIT_APPROVAL,
        })

    logger.info(f"Home Credit scoring | n={len(scored)}")
    return scored
