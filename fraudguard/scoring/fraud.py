"""
Fraud Scorer — FraudGuard
Rule-based fraud scoring for card transactions (and transactions carrying
Home Credit fields). Scores are weighted threshold sums capped at 1.0.
"""

import uuid

import numpy as np
import pandas as pd
from loguru import logger

from fraudguard.config import FRAUD_JITTER, MAX_ROWS
from fraudguard.features.engineer import TransactionFeatureEngineer, records_to_frame

FLAG_THRESHOLD = 0.5


def empty_summary() -> dict:
    return {
        "totalTransactions": 0,
        "fraudCount":        0,
        "genuineCount":      0,
        "avgFraudScore":     0,
        "highRiskCount":     0,
        "mediumRiskCount":   0,
        "lowRiskCount":      0,
    }


# ------------------------------------------------------------------ #
# Scoring                                                              #
# ------------------------------------------------------------------ #

def score_frame(
    features: pd.DataFrame,
    jitter: float = FRAUD_JITTER,
    rng: np.random.Generator | None = None,
) -> pd.Series:
    """
    Vectorised fraud score over an engineered transaction frame.

    Rules
    -----
    amount > 5000 → +0.30, > 1000 → +0.15, > 500 → +0.05
    high-risk category → +0.20
    night hour (0–5) → +0.15
    creditRatio > 0.5 → +0.20, > 0.3 → +0.10
    mean external score < 0.3 → +0.25
    plus `jitter * U[0, 1)`, capped at 1.0
    """
    amount = features["amount_value"]
    score = np.select([amount > 5000, amount > 1000, amount > 500], [0.3, 0.15, 0.05], 0.0)
    score = score + features["is_high_risk_category"] * 0.2
    score = score + features["is_night"] * 0.15

    ratio = features["credit_ratio"]
    score = score + np.select([ratio > 0.5, ratio > 0.3], [0.2, 0.1], 0.0)
    score = score + np.where(features["avg_ext_score"] < 0.3, 0.25, 0.0)

    if jitter > 0:
        rng = rng if rng is not None else np.random.default_rng()
        score = score + rng.random(len(features)) * jitter

    return pd.Series(np.minimum(score, 1.0), index=features.index, dtype=float)


def calculate_fraud_score(
    transaction: dict,
    jitter: float = FRAUD_JITTER,
    rng: np.random.Generator | None = None,
) -> float:
    """Score a single transaction dict (0.0 – 1.0)."""
    features = TransactionFeatureEngineer().transform(records_to_frame([transaction]))
    return float(score_frame(features, jitter=jitter, rng=rng).iloc[0])


def get_risk_level(score: float) -> str:
    if score < 0.3:
        return "Low"
    if score < 0.6:
        return "Medium"
    return "High"


# ------------------------------------------------------------------ #
# Explanations                                                         #
# ------------------------------------------------------------------ #

def format_amount(amount: float) -> str:
    """en-US style grouping: 5500 → '5,500', 1234.5 → '1,234.5'."""
    if float(amount).is_integer():
        return f"{int(amount):,}"
    return f"{amount:,.3f}".rstrip("0").rstrip(".")


def _explain_row(row: pd.Series, fraud_score: float) -> str:
    reasons = []
    amount = row["amount_value"]

    if amount > 5000:
        reasons.append(
            f"Very high transaction amount (${format_amount(amount)}) significantly exceeds "
            f"typical spending patterns"
        )
    elif amount > 1000:
        reasons.append(
            f"Elevated transaction amount (${format_amount(amount)}) warrants additional scrutiny"
        )

    if row["is_high_risk_category"]:
        reasons.append(
            f'Transaction category "{row.get("category")}" is commonly associated with '
            f"fraudulent activity"
        )

    if row["is_night"]:
        hour = int(row["hour_of_day"])
        reasons.append(
            f"Transaction occurred at {hour}:00 AM, an unusual time that may indicate "
            f"compromised credentials"
        )

    if row["credit_ratio"] > 0.5:
        reasons.append(
            f"Credit-to-income ratio of {row['credit_ratio'] * 100:.1f}% indicates "
            f"potential overextension"
        )

    # Only reported (non-zero) bureau scores count here, unlike the scorer's 0.5 default
    if row["has_ext_score"] and row["reported_ext_avg"] < 0.3:
        reasons.append(
            f"Low external credit scores (avg: {row['reported_ext_avg'] * 100:.0f}%) suggest "
            f"elevated risk profile"
        )

    if not reasons:
        if fraud_score > 0.6:
            reasons.append("Multiple minor risk indicators combine to create elevated risk profile")
        elif fraud_score > 0.3:
            reasons.append("Some risk factors detected but within acceptable thresholds")
        else:
            reasons.append("Transaction appears normal with no significant risk indicators")

    return ". ".join(reasons) + "."


def explain_transaction(transaction: dict, fraud_score: float) -> str:
    """Rule-based explanation of why a transaction scored the way it did."""
    features = TransactionFeatureEngineer().transform(records_to_frame([transaction]))
    return _explain_row(features.iloc[0], fraud_score)


# ------------------------------------------------------------------ #
# Batch                                                                #
# ------------------------------------------------------------------ #

def summarize(analyzed: list[dict]) -> dict:
    """Counts and mean score over analysed records (shared with portfolio analysis)."""
    if not analyzed:
        return empty_summary()

    flagged = sum(1 for t in analyzed if t["flagged"])
    levels  = [t["riskLevel"] for t in analyzed]
    return {
        "totalTransactions": len(analyzed),
        "fraudCount":        flagged,
        "genuineCount":      len(analyzed) - flagged,
        "avgFraudScore":     sum(t["fraudScore"] for t in analyzed) / len(analyzed),
        "highRiskCount":     levels.count("High"),
        "mediumRiskCount":   levels.count("Medium"),
        "lowRiskCount":      levels.count("Low"),
    }


def analyze_transactions(
    transactions: list[dict],
    jitter: float = FRAUD_JITTER,
    rng: np.random.Generator | None = None,
    max_rows: int = MAX_ROWS,
) -> dict:
    """
    Score, classify and explain a batch of transactions.

    Only the first `max_rows` records are analysed. Each output record echoes
    its input fields plus id, fraudScore, riskLevel, explanation and flagged.

    Returns
    -------
    {"transactions": [...], "summary": {...}}
    """
    rows  = transactions[:max_rows]
    batch = [t for t in rows if isinstance(t, dict)]
    if len(batch) < len(rows):
        logger.warning(f"Skipped {len(rows) - len(batch)} non-object transaction entries")
    if not batch:
        return {"transactions": [], "summary": empty_summary()}

    features = TransactionFeatureEngineer().transform(records_to_frame(batch))
    scores   = score_frame(features, jitter=jitter, rng=rng)

    analyzed = []
    for idx, txn in enumerate(batch):
        fraud_score = float(scores.iloc[idx])
        analyzed.append({
            **txn,
            "id":          txn.get("id") or f"TXN-{uuid.uuid4().hex[:9]}",
            "fraudScore":  fraud_score,
            "riskLevel":   get_risk_level(fraud_score),
            "explanation": _explain_row(features.iloc[idx], fraud_score),
            "flagged":     fraud_score > FLAG_THRESHOLD,
        })

    summary = summarize(analyzed)
    logger.info(
        f"Fraud analysis | n={summary['totalTransactions']} flagged={summary['fraudCount']} "
        f"avg={summary['avgFraudScore']:.4f}"
    )
    return {"transactions": analyzed, "summary": summary}
