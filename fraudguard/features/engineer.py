"""
Feature Engineering — FraudGuard
Turns loosely-typed JSON records into numeric feature frames for the
rule-based scorers.
"""

import numpy as np
import pandas as pd
from loguru import logger

HIGH_RISK_CATEGORIES = ("electronics", "jewelry", "gift_cards", "cryptocurrency")

# Home Credit marks "not employed" with this DAYS_EMPLOYED value
UNEMPLOYED_DAYS = 365243


def records_to_frame(records: list[dict]) -> pd.DataFrame:
    """Build a DataFrame from raw records, one row per record, original order kept."""
    return pd.DataFrame.from_records([dict(r) for r in records], index=range(len(records)))


def numeric_column(df: pd.DataFrame, column: str, default: float = 0.0) -> pd.Series:
    """
    Coerce a column to float.

    Missing columns, blanks, non-numeric strings and zeros all map to `default`
    (zero is treated as "not provided", the same way the dashboard reads fields).
    """
    if column not in df.columns:
        return pd.Series(default, index=df.index, dtype=float)
    values = pd.to_numeric(df[column], errors="coerce").astype(float)
    values = values.replace([np.inf, -np.inf], np.nan)
    return values.where(values.notna() & (values != 0), default)


class TransactionFeatureEngineer:
    """
    Transforms raw card transactions (optionally carrying Kaggle credit
    fields) into the signals used by the fraud scorer.

    Features Generated
    ------------------
    - Amount     : amount
    - Category   : category_lc, is_high_risk_category
    - Temporal   : hour_of_day (NaN if unparseable), is_night (00:00–05:59 UTC)
    - Credit     : credit_ratio
    - Bureau     : ext_score_1..3 (missing → 0.5), avg_ext_score,
                   reported_ext_avg (missing → 0), has_ext_score
    """

    EXT_SCORE_COLUMNS = ("extScore1", "extScore2", "extScore3")

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Apply the full feature pipeline to a copy of the DataFrame."""
        df = df.copy()
        df = self._add_amount_features(df)
        df = self._add_category_features(df)
        df = self._add_temporal_features(df)
        df = self._add_credit_features(df)
        logger.debug(f"Transaction features built | shape={df.shape}")
        return df

    def _add_amount_features(self, df: pd.DataFrame) -> pd.DataFrame:
        df["amount_value"] = numeric_column(df, "amount")
        return df

    def _add_category_features(self, df: pd.DataFrame) -> pd.DataFrame:
        raw = df["category"] if "category" in df.columns else pd.Series("", index=df.index)
        df["category_lc"] = raw.fillna("").astype(str).str.lower()
        df["is_high_risk_category"] = df["category_lc"].isin(HIGH_RISK_CATEGORIES).astype(int)
        return df

    def _add_temporal_features(self, df: pd.DataFrame) -> pd.DataFrame:
        """Hour of day from the ISO `time` field, evaluated in UTC."""
        if "time" in df.columns:
            raw = df["time"].astype("string")
            parsed = pd.to_datetime(raw, errors="coerce", utc=True, format="mixed")
            df["hour_of_day"] = parsed.dt.hour.astype(float)
        else:
            df["hour_of_day"] = np.nan
        df["is_night"] = df["hour_of_day"].between(0, 5).astype(int)
        return df

    def _add_credit_features(self, df: pd.DataFrame) -> pd.DataFrame:
        df["credit_ratio"] = numeric_column(df, "creditRatio")

        for i, col in enumerate(self.EXT_SCORE_COLUMNS, 1):
            df[f"ext_score_{i}"] = numeric_column(df, col, default=0.5)
        df["avg_ext_score"] = df[["ext_score_1", "ext_score_2", "ext_score_3"]].mean(axis=1)

        reported = pd.concat(
            [numeric_column(df, col, default=0.0) for col in self.EXT_SCORE_COLUMNS], axis=1
        )
        df["has_ext_score"] = (reported > 0).any(axis=1).astype(int)
        df["reported_ext_avg"] = reported.mean(axis=1)
        return df


class ApplicantFeatureEngineer:
    """
    Numeric view of a credit applicant.

    Features Generated
    ------------------
    income, loan_amount, loan_to_income (1.0 when income is 0),
    employment_length, credit_history, debt_to_income, age_of_credit
    """

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.copy()
        df["income_value"]      = numeric_column(df, "income")
        df["loan_amount_value"] = numeric_column(df, "loanAmount")
        df["loan_to_income"]    = np.where(
            df["income_value"] > 0,
            df["loan_amount_value"] / df["income_value"].where(df["income_value"] > 0, 1.0),
            1.0,
        )
        df["employment_length_value"] = numeric_column(df, "employmentLength")
        df["credit_history_value"]    = numeric_column(df, "creditHistory")
        df["debt_to_income_value"]    = numeric_column(df, "debtToIncome")
        df["age_of_credit_value"]     = numeric_column(df, "ageOfCredit")
        logger.debug(f"Applicant features built | shape={df.shape}")
        return df


def add_home_credit_derived(df: pd.DataFrame) -> pd.DataFrame:
    """
    Derive the analysis columns of a Home Credit application frame.

    Adds AGE_YEARS, EMPLOYED_YEARS (0 for the unemployed sentinel),
    CREDIT_INCOME_RATIO (2 dp) and ANNUITY_INCOME_RATIO (4 dp).
    """
    df = df.copy()
    df["AGE_YEARS"] = (df["DAYS_BIRTH"] / 365).round().abs().astype(int)
    df["EMPLOYED_YEARS"] = np.where(
        df["DAYS_EMPLOYED"] == UNEMPLOYED_DAYS,
        0,
        (df["DAYS_EMPLOYED"] / 365).round().abs(),
    ).astype(int)
    df["CREDIT_INCOME_RATIO"]  = (df["AMT_CREDIT"] / df["AMT_INCOME_TOTAL"]).round(2)
    df["ANNUITY_INCOME_RATIO"] = (df["AMT_ANNUITY"] / df["AMT_INCOME_TOTAL"]).round(4)
    return df
