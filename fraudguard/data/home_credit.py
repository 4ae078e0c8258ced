"""
Home Credit Sample Data — FraudGuard
Synthetic records shaped like the Kaggle Home Credit Default Risk tables
(application, bureau, previous_application), plus demo inputs for the
fraud and credit scoring endpoints.

Reference: https://www.kaggle.com/competitions/home-credit-default-risk
"""

from datetime import datetime, timedelta, timezone

import numpy as np
import pandas as pd
from loguru import logger

from fraudguard.features.engineer import UNEMPLOYED_DAYS, add_home_credit_derived

CONTRACT_TYPES = ["Cash loans", "Revolving loans"]
INCOME_TYPES = [
    "Working", "Commercial associate", "Pensioner", "State servant",
    "Student", "Unemployed", "Maternity leave", "Businessman",
]
EDUCATION_TYPES = [
    "Secondary / secondary special", "Higher education", "Incomplete higher",
    "Lower secondary", "Academic degree",
]
FAMILY_STATUS = ["Married", "Single / not married", "Civil marriage", "Separated", "Widow"]
HOUSING_TYPES = [
    "House / apartment", "With parents", "Municipal apartment",
    "Rented apartment", "Office apartment", "Co-op apartment",
]
OCCUPATION_TYPES = [
    "Laborers", "Core staff", "Sales staff", "Managers", "Drivers",
    "High skill tech staff", "Accountants", "Medicine staff", "Security staff",
    "Cooking staff", "Cleaning staff", "Private service staff", "Low-skill Laborers",
    "Secretaries", "Waiters/barmen staff", "HR staff", "Realty agents", "IT staff",
]
CREDIT_TYPES     = ["Consumer credit", "Credit card", "Mortgage", "Car loan", "Microloan"]
CONTRACT_STATUS  = ["Approved", "Canceled", "Refused", "Unused offer"]
REJECT_REASONS   = ["XAP", "LIMIT", "SCO", "HC", "VERIF", "CLIENT", "SCOFR", "XNA"]
GOODS_CATEGORIES = [
    "XNA", "Mobile", "Consumer Electronics", "Computers", "Audio/Video", "Furniture",
    "Construction Materials", "Clothing and Accessories", "Auto Accessories", "Medical Supplies",
]

APPLICATION_FIELDS = [
    "SK_ID_CURR", "TARGET", "NAME_CONTRACT_TYPE", "CODE_GENDER", "FLAG_OWN_CAR",
    "FLAG_OWN_REALTY", "CNT_CHILDREN", "AMT_INCOME_TOTAL", "AMT_CREDIT", "AMT_ANNUITY",
    "AMT_GOODS_PRICE", "NAME_INCOME_TYPE", "NAME_EDUCATION_TYPE", "NAME_FAMILY_STATUS",
    "NAME_HOUSING_TYPE", "DAYS_BIRTH", "DAYS_EMPLOYED", "DAYS_REGISTRATION",
    "OCCUPATION_TYPE", "CNT_FAM_MEMBERS", "EXT_SOURCE_1", "EXT_SOURCE_2", "EXT_SOURCE_3",
    "DAYS_LAST_PHONE_CHANGE", "AGE_YEARS", "EMPLOYED_YEARS", "CREDIT_INCOME_RATIO",
    "ANNUITY_INCOME_RATIO", "RISK_SCORE", "RISK_LEVEL",
]

# Dataset statistics from the actual Kaggle competition data
DATASET_STATS = {
    "totalApplications":  307511,
    "trainApplications":  307511,
    "testApplications":   48744,
    "defaultRate":        0.0807,
    "avgIncome":          168797.9,
    "avgCredit":          599025.9,
    "avgAnnuity":         27108.5,
    "genderDistribution": {"male": 0.34, "female": 0.66},
    "ownCarRate":         0.34,
    "ownRealtyRate":      0.69,
    "avgAge":             43.9,
    "avgEmploymentYears": 6.2,
    "topIncomeTypes": [
        {"type": "Working",              "percentage": 52.0},
        {"type": "Commercial associate", "percentage": 23.2},
        {"type": "Pensioner",            "percentage": 18.0},
        {"type": "State servant",        "percentage": 6.3},
    ],
    "topEducationTypes": [
        {"type": "Secondary / secondary special", "percentage": 71.0},
        {"type": "Higher education",              "percentage": 24.3},
        {"type": "Incomplete higher",             "percentage": 3.3},
        {"type": "Lower secondary",               "percentage": 1.2},
    ],
}

# Feature importance reported by winning competition solutions
FEATURE_IMPORTANCE = [
    {"feature": "EXT_SOURCE_2",               "importance": 0.156, "description": "External source score 2 (credit bureau)"},
    {"feature": "EXT_SOURCE_3",               "importance": 0.142, "description": "External source score 3 (credit bureau)"},
    {"feature": "EXT_SOURCE_1",               "importance": 0.098, "description": "External source score 1 (credit bureau)"},
    {"feature": "DAYS_BIRTH",                 "importance": 0.067, "description": "Client age in days"},
    {"feature": "DAYS_EMPLOYED",              "importance": 0.058, "description": "Employment duration in days"},
    {"feature": "AMT_CREDIT",                 "importance": 0.045, "description": "Credit amount of the loan"},
    {"feature": "AMT_ANNUITY",                "importance": 0.042, "description": "Loan annuity"},
    {"feature": "AMT_GOODS_PRICE",            "importance": 0.038, "description": "Price of goods for which loan is given"},
    {"feature": "DAYS_REGISTRATION",          "importance": 0.033, "description": "Days since client changed registration"},
    {"feature": "DAYS_ID_PUBLISH",            "importance": 0.031, "description": "Days since ID document was published"},
    {"feature": "AMT_INCOME_TOTAL",           "importance": 0.029, "description": "Income of the client"},
    {"feature": "REGION_POPULATION_RELATIVE", "importance": 0.025, "description": "Normalized population of region"},
    {"feature": "CREDIT_INCOME_RATIO",        "importance": 0.024, "description": "Ratio of credit to income"},
    {"feature": "ANNUITY_INCOME_RATIO",       "importance": 0.022, "description": "Ratio of annuity to income"},
    {"feature": "DAYS_LAST_PHONE_CHANGE",     "importance": 0.019, "description": "Days since phone change"},
]


# ------------------------------------------------------------------ #
# Random helpers                                                       #
# ------------------------------------------------------------------ #

def _choice(rng: np.random.Generator, options: list):
    return options[int(rng.integers(len(options)))]


def _int(rng: np.random.Generator, low: int, high: int) -> int:
    """Uniform integer in [low, high] (inclusive)."""
    return int(rng.integers(low, high + 1))


def _float(rng: np.random.Generator, low: float, high: float, decimals: int = 2) -> float:
    return round(float(rng.uniform(low, high)), decimals)


# ------------------------------------------------------------------ #
# Risk scoring                                                         #
# ------------------------------------------------------------------ #

def compute_risk_score(
    credit_income_ratio:  float,
    annuity_income_ratio: float,
    employed_years:       float,
    age_years:            float,
    ext_source_1:         float,
    ext_source_2:         float,
    ext_source_3:         float,
) -> int:
    """
    Composite 0–100 default-risk score (higher = riskier).

    credit/income  > 5 → 25, > 3 → 15, else 5
    annuity/income > 0.5 → 20, > 0.3 → 10, else 5
    employed < 1y → 20, < 3y → 10
    age < 25 → 15, > 60 → 10
    each EXT_SOURCE < 0.3 → 15, < 0.5 → 8
    """
    score = 0
    score += 25 if credit_income_ratio > 5 else 15 if credit_income_ratio > 3 else 5
    score += 20 if annuity_income_ratio > 0.5 else 10 if annuity_income_ratio > 0.3 else 5
    score += 20 if employed_years < 1 else 10 if employed_years < 3 else 0
    score += 15 if age_years < 25 else 10 if age_years > 60 else 0
    for ext in (ext_source_1, ext_source_2, ext_source_3):
        score += 15 if ext < 0.3 else 8 if ext < 0.5 else 0
    return min(100, score)


def risk_level(risk_score: float) -> str:
    if risk_score < 30:
        return "Low"
    if risk_score < 60:
        return "Medium"
    return "High"


# ------------------------------------------------------------------ #
# Generators                                                           #
# ------------------------------------------------------------------ #

def _raw_application(rng: np.random.Generator, sk_id: int) -> dict:
    income  = _int(rng, 20000, 500000)
    credit  = _int(rng, 50000, 2000000)
    annuity = round(credit / _int(rng, 12, 60))
    days_birth = -_int(rng, 7300, 25550)  # 20–70 years old
    days_employed = (
        -_int(rng, 30, min(-days_birth - 6570, 15000))
        if rng.random() > 0.1 else UNEMPLOYED_DAYS
    )

    return {
        "SK_ID_CURR":             sk_id,
        "NAME_CONTRACT_TYPE":     _choice(rng, CONTRACT_TYPES),
        "CODE_GENDER":            "F" if rng.random() > 0.35 else "M",
        "FLAG_OWN_CAR":           "Y" if rng.random() > 0.6 else "N",
        "FLAG_OWN_REALTY":        "Y" if rng.random() > 0.3 else "N",
        "CNT_CHILDREN":           _int(rng, 0, 4),
        "AMT_INCOME_TOTAL":       income,
        "AMT_CREDIT":             credit,
        "AMT_ANNUITY":            annuity,
        "AMT_GOODS_PRICE":        round(credit * _float(rng, 0.8, 1.0)),
        "NAME_INCOME_TYPE":       _choice(rng, INCOME_TYPES),
        "NAME_EDUCATION_TYPE":    _choice(rng, EDUCATION_TYPES),
        "NAME_FAMILY_STATUS":     _choice(rng, FAMILY_STATUS),
        "NAME_HOUSING_TYPE":      _choice(rng, HOUSING_TYPES),
        "DAYS_BIRTH":             days_birth,
        "DAYS_EMPLOYED":          days_employed,
        "DAYS_REGISTRATION":      -_int(rng, 365, 10000),
        "OCCUPATION_TYPE":        _choice(rng, OCCUPATION_TYPES),
        "CNT_FAM_MEMBERS":        _int(rng, 1, 6),
        "EXT_SOURCE_1":           _float(rng, 0, 1, 4),
        "EXT_SOURCE_2":           _float(rng, 0, 1, 4),
        "EXT_SOURCE_3":           _float(rng, 0, 1, 4),
        "DAYS_LAST_PHONE_CHANGE": -_int(rng, 0, 3650),
    }


def generate_applications(count: int = 100, rng: np.random.Generator | None = None) -> list[dict]:
    """
    Generate `count` application records with derived analysis fields.

    RISK_SCORE uses the unrounded credit/income and annuity/income ratios;
    only the stored CREDIT_INCOME_RATIO and ANNUITY_INCOME_RATIO are rounded.
    TARGET defaults with p=0.7 when RISK_SCORE > 60, otherwise p=0.08.
    """
    rng = rng if rng is not None else np.random.default_rng()
    if count <= 0:
        return []

    df = pd.DataFrame([_raw_application(rng, 100000 + i) for i in range(count)])
    df = add_home_credit_derived(df)

    df["RISK_SCORE"] = [
        compute_risk_score(
            row.AMT_CREDIT / row.AMT_INCOME_TOTAL, row.AMT_ANNUITY / row.AMT_INCOME_TOTAL,
            row.EMPLOYED_YEARS, row.AGE_YEARS, row.EXT_SOURCE_1, row.EXT_SOURCE_2, row.EXT_SOURCE_3,
        )
        for row in df.itertuples(index=False)
    ]
    df["RISK_LEVEL"] = df["RISK_SCORE"].map(risk_level)
    draws = rng.random(count)
    df["TARGET"] = np.where(df["RISK_SCORE"] > 60, draws > 0.3, draws > 0.92).astype(int)

    logger.info(
        f"Generated {count} applications | default rate: {df['TARGET'].mean() * 100:.2f}%"
    )
    return df[APPLICATION_FIELDS].to_dict(orient="records")


def generate_bureau_records(
    sk_id_curr: int, count: int = 5, rng: np.random.Generator | None = None
) -> list[dict]:
    """Credit bureau history rows for one applicant."""
    rng = rng if rng is not None else np.random.default_rng()
    records = []
    for i in range(count):
        credit_sum  = _int(rng, 10000, 500000)
        credit_debt = _int(rng, 0, credit_sum) if rng.random() > 0.3 else 0
        records.append({
            "SK_ID_CURR":             sk_id_curr,
            "SK_ID_BUREAU":           5000000 + sk_id_curr * 10 + i,
            "CREDIT_ACTIVE":          "Active" if rng.random() > 0.4 else "Closed",
            "CREDIT_CURRENCY":        "currency 1",
            "DAYS_CREDIT":            -_int(rng, 30, 3650),
            "CREDIT_DAY_OVERDUE":     _int(rng, 1, 90) if rng.random() > 0.85 else 0,
            "AMT_CREDIT_MAX_OVERDUE": _int(rng, 1000, 50000) if rng.random() > 0.8 else 0,
            "CNT_CREDIT_PROLONG":     _int(rng, 1, 3) if rng.random() > 0.9 else 0,
            "AMT_CREDIT_SUM":         credit_sum,
            "AMT_CREDIT_SUM_DEBT":    credit_debt,
            "AMT_CREDIT_SUM_LIMIT":   _int(rng, 50000, 200000) if rng.random() > 0.5 else 0,
            "AMT_CREDIT_SUM_OVERDUE": _int(rng, 1000, 20000) if rng.random() > 0.9 else 0,
            "CREDIT_TYPE":            _choice(rng, CREDIT_TYPES),
            "DAYS_CREDIT_ENDDATE":    _int(rng, -365, 1825),
        })
    return records


def generate_previous_applications(
    sk_id_curr: int, count: int = 3, rng: np.random.Generator | None = None
) -> list[dict]:
    """Previous Home Credit applications for one applicant."""
    rng = rng if rng is not None else np.random.default_rng()
    records = []
    for i in range(count):
        credit = _int(rng, 30000, 800000)
        status = _choice(rng, CONTRACT_STATUS)
        records.append({
            "SK_ID_CURR":          sk_id_curr,
            "SK_ID_PREV":          1000000 + sk_id_curr * 10 + i,
            "NAME_CONTRACT_TYPE":  _choice(rng, CONTRACT_TYPES),
            "AMT_ANNUITY":         round(credit / _int(rng, 12, 48)),
            "AMT_APPLICATION":     credit,
            "AMT_CREDIT":          round(credit * _float(rng, 0.9, 1.1)),
            "AMT_DOWN_PAYMENT":    round(credit * _float(rng, 0, 0.2)),
            "AMT_GOODS_PRICE":     round(credit * _float(rng, 0.85, 1.0)),
            "NAME_CONTRACT_STATUS": status,
            "DAYS_DECISION":       -_int(rng, 30, 2000),
            "NAME_PAYMENT_TYPE":   "Cash through the bank" if rng.random() > 0.5 else "XNA",
            "CODE_REJECT_REASON":  _choice(rng, REJECT_REASONS) if status == "Refused" else None,
            "NAME_CLIENT_TYPE":    _choice(rng, ["Repeater", "New", "Refreshed"]),
            "NAME_GOODS_CATEGORY": _choice(rng, GOODS_CATEGORIES),
            "NAME_PRODUCT_TYPE":   _choice(rng, ["x-sell", "walk-in", "XNA"]),
            "CNT_PAYMENT":         _int(rng, 6, 60),
        })
    return records


def load_sample_dataset(
    count: int = 100, rng: np.random.Generator | None = None
) -> tuple[list[dict], list[dict], list[dict]]:
    """
    Applications plus bureau (1–5 each) and previous applications (1–3 each)
    for the first 20 applicants.
    """
    rng = rng if rng is not None else np.random.default_rng()
    applications = generate_applications(count, rng=rng)

    bureau, previous = [], []
    for app in applications[:20]:
        bureau.extend(generate_bureau_records(app["SK_ID_CURR"], _int(rng, 1, 5), rng=rng))
    for app in applications[:20]:
        previous.extend(generate_previous_applications(app["SK_ID_CURR"], _int(rng, 1, 3), rng=rng))

    logger.success(
        f"Sample dataset ready | applications={len(applications)} "
        f"bureau={len(bureau)} previous={len(previous)}"
    )
    return applications, bureau, previous


# ------------------------------------------------------------------ #
# Demo inputs for the scoring endpoints                                #
# ------------------------------------------------------------------ #

MERCHANTS  = ["Amazon", "Walmart", "Target", "Best Buy", "Apple Store",
              "Unknown Merchant", "Foreign ATM", "Gas Station"]
CATEGORIES = ["electronics", "grocery", "gas", "restaurant", "online", "atm", "jewelry", "gift_cards"]
LOCATIONS  = ["New York", "Los Angeles", "Chicago", "Houston", "Phoenix", "Unknown", "Foreign"]
CARD_TYPES = ["Visa", "Mastercard", "Amex", "Discover"]


def generate_sample_transactions(
    count: int = 20, rng: np.random.Generator | None = None
) -> list[dict]:
    """Card transactions from the last 7 days; ~15% look like fraud (large, often foreign)."""
    rng = rng if rng is not None else np.random.default_rng()
    now = datetime.now(timezone.utc)

    transactions = []
    for i in range(count):
        is_fraud = rng.random() > 0.85
        base_amount = rng.random() * 8000 + 500 if is_fraud else rng.random() * 500 + 10
        location = (
            "Foreign" if is_fraud and rng.random() > 0.5
            else _choice(rng, LOCATIONS[:-2])
        )
        when = now - timedelta(seconds=float(rng.random() * 7 * 24 * 3600))
        transactions.append({
            "id":        f"TXN-{i + 1:05d}",
            "amount":    round(base_amount, 2),
            "merchant":  _choice(rng, MERCHANTS),
            "category":  _choice(rng, CATEGORIES),
            "location":  location,
            "time":      when.isoformat().replace("+00:00", "Z"),
            "cardType":  _choice(rng, CARD_TYPES),
            "cardLast4": str(_int(rng, 1000, 9999)),
        })
    return transactions


def generate_sample_applicants(
    count: int = 20, rng: np.random.Generator | None = None
) -> list[dict]:
    """Loan applicants; ~60% drawn from a good-credit profile."""
    rng = rng if rng is not None else np.random.default_rng()
    applicants = []
    for i in range(count):
        good = rng.random() > 0.4
        applicants.append({
            "id":               f"APP-{i + 1:05d}",
            "income":           round(60000 + rng.random() * 80000 if good else 25000 + rng.random() * 40000),
            "loanAmount":       round(10000 + rng.random() * 40000),
            "employmentLength": round(3 + rng.random() * 15 if good else rng.random() * 5),
            "creditHistory":    round(650 + rng.random() * 150 if good else 500 + rng.random() * 150),
            "debtToIncome":     round(0.15 + rng.random() * 0.2 if good else 0.3 + rng.random() * 0.3, 2),
            "ageOfCredit":      round(5 + rng.random() * 15 if good else rng.random() * 5),
            "numAccounts":      round(2 + rng.random() * 8),
        })
    return applicants


if __name__ == "__main__":
    apps, bureau, previous = load_sample_dataset(100)
    df = pd.DataFrame(apps)
    print(df["RISK_LEVEL"].value_counts().to_dict())
    print(df[["SK_ID_CURR", "TARGET", "CREDIT_INCOME_RATIO", "RISK_SCORE", "RISK_LEVEL"]].head(5))
