"""
Unit tests for the rule-based fraud scorer.
"""

import numpy as np
import pytest
from loguru import logger

from fraudguard.features.engineer import TransactionFeatureEngineer, records_to_frame
from fraudguard.scoring.fraud import (
    analyze_transactions,
    calculate_fraud_score,
    explain_transaction,
    format_amount,
    get_risk_level,
    summarize,
)


@pytest.fixture
def risky_txn():
    """Large electronics purchase at 03:15 UTC."""
    return {
        "id":       "TXN-00001",
        "amount":   6200.0,
        "category": "electronics",
        "time":     "2025-01-10T03:15:00Z",
        "merchant": "Unknown Merchant",
    }


@pytest.fixture
def normal_txn():
    return {
        "id":       "TXN-00002",
        "amount":   25.0,
        "category": "grocery",
        "time":     "2025-01-10T14:00:00Z",
    }


class TestTransactionFeatureEngineer:

    def test_hour_and_night_flag(self, risky_txn, normal_txn):
        out = TransactionFeatureEngineer().transform(records_to_frame([risky_txn, normal_txn]))
        assert list(out["hour_of_day"]) == [3.0, 14.0]
        assert list(out["is_night"]) == [1, 0]

    def test_hour_is_taken_in_utc(self):
        # 23:30 at UTC-3 is 02:30 UTC
        out = TransactionFeatureEngineer().transform(
            records_to_frame([{"amount": 10, "time": "2025-01-10T23:30:00-03:00"}])
        )
        assert out["hour_of_day"].iloc[0] == 2.0
        assert out["is_night"].iloc[0] == 1

    def test_unparseable_time_is_not_night(self):
        out = TransactionFeatureEngineer().transform(
            records_to_frame([{"amount": 10, "time": "not a date"}])
        )
        assert np.isnan(out["hour_of_day"].iloc[0])
        assert out["is_night"].iloc[0] == 0

    def test_category_is_case_insensitive(self):
        out = TransactionFeatureEngineer().transform(
            records_to_frame([{"amount": 10, "category": "JeWeLrY"}])
        )
        assert out["is_high_risk_category"].iloc[0] == 1

    def test_missing_ext_scores_default_to_half(self):
        out = TransactionFeatureEngineer().transform(records_to_frame([{"amount": 10}]))
        assert out["avg_ext_score"].iloc[0] == pytest.approx(0.5)
        assert out["has_ext_score"].iloc[0] == 0

    def test_string_amount_is_coerced(self):
        out = TransactionFeatureEngineer().transform(records_to_frame([{"amount": "1200.5"}]))
        assert out["amount_value"].iloc[0] == pytest.approx(1200.5)


class TestCalculateFraudScore:

    def test_risky_transaction_scores_high(self, risky_txn):
        # 0.30 amount + 0.20 category + 0.15 night
        assert calculate_fraud_score(risky_txn) == pytest.approx(0.65)

    def test_normal_transaction_scores_zero(self, normal_txn):
        assert calculate_fraud_score(normal_txn) == 0.0

    def test_amount_bands(self):
        assert calculate_fraud_score({"amount": 600}) == pytest.approx(0.05)
        assert calculate_fraud_score({"amount": 1500}) == pytest.approx(0.15)
        assert calculate_fraud_score({"amount": 5001}) == pytest.approx(0.30)

    def test_credit_ratio_bands(self):
        assert calculate_fraud_score({"amount": 10, "creditRatio": 0.4}) == pytest.approx(0.1)
        assert calculate_fraud_score({"amount": 10, "creditRatio": 0.8}) == pytest.approx(0.2)

    def test_low_ext_scores_add_risk(self):
        txn = {"amount": 10, "extScore1": 0.1, "extScore2": 0.2, "extScore3": 0.15}
        assert calculate_fraud_score(txn) == pytest.approx(0.25)

    def test_score_capped_at_one(self):
        txn = {
            "amount": 9000, "category": "gift_cards", "time": "2025-01-10T01:00:00Z",
            "creditRatio": 0.9, "extScore1": 0.1, "extScore2": 0.1, "extScore3": 0.1,
        }
        assert calculate_fraud_score(txn) == 1.0

    def test_jitter_stays_within_band(self, risky_txn):
        rng = np.random.default_rng(0)
        for _ in range(20):
            score = calculate_fraud_score(risky_txn, jitter=0.15, rng=rng)
            assert 0.65 <= score < 0.80 + 1e-9


class TestRiskLevel:

    @pytest.mark.parametrize("score,level", [
        (0.0, "Low"), (0.29, "Low"), (0.3, "Medium"), (0.59, "Medium"), (0.6, "High"), (1.0, "High"),
    ])
    def test_thresholds(self, score, level):
        assert get_risk_level(score) == level


class TestExplainTransaction:

    def test_lists_every_triggered_rule(self, risky_txn):
        text = explain_transaction(risky_txn, 0.65)
        assert "Very high transaction amount ($6,200)" in text
        assert 'Transaction category "electronics"' in text
        assert "Transaction occurred at 3:00 AM" in text
        assert text.endswith(".")

    def test_elevated_amount(self):
        text = explain_transaction({"amount": 1500}, 0.15)
        assert "Elevated transaction amount ($1,500) warrants additional scrutiny" in text

    def test_reported_ext_scores(self):
        txn = {"amount": 10, "extScore1": 0.1, "extScore2": 0.2, "extScore3": 0.15}
        text = explain_transaction(txn, 0.25)
        assert "Low external credit scores (avg: 15%)" in text

    def test_normal_transaction(self, normal_txn):
        assert explain_transaction(normal_txn, 0.0) == (
            "Transaction appears normal with no significant risk indicators."
        )

    def test_no_rule_but_high_score(self):
        text = explain_transaction({"amount": 10}, 0.7)
        assert text.startswith("Multiple minor risk indicators")

    def test_format_amount(self):
        assert format_amount(5500) == "5,500"
        assert format_amount(1234.5) == "1,234.5"


class TestAnalyzeTransactions:

    def test_output_fields(self, risky_txn, normal_txn):
        result = analyze_transactions([risky_txn, normal_txn])
        first = result["transactions"][0]
        assert first["id"] == "TXN-00001"
        assert first["merchant"] == "Unknown Merchant"
        assert first["riskLevel"] == "High"
        assert first["flagged"] is True
        assert result["transactions"][1]["flagged"] is False

    def test_summary(self, risky_txn, normal_txn):
        summary = analyze_transactions([risky_txn, normal_txn])["summary"]
        assert summary["totalTransactions"] == 2
        assert summary["fraudCount"] == 1
        assert summary["genuineCount"] == 1
        assert summary["highRiskCount"] == 1
        assert summary["lowRiskCount"] == 1
        assert summary["avgFraudScore"] == pytest.approx(0.325)

    def test_missing_id_is_generated(self):
        out = analyze_transactions([{"amount": 10}])["transactions"][0]
        assert out["id"].startswith("TXN-")
        assert len(out["id"]) == len("TXN-") + 9

    def test_batch_is_capped(self):
        batch = [{"id": str(i), "amount": 10} for i in range(60)]
        result = analyze_transactions(batch)
        assert len(result["transactions"]) == 50
        assert result["summary"]["totalTransactions"] == 50

    def test_non_dict_items_skipped(self, normal_txn):
        result = analyze_transactions([normal_txn, "garbage", 42])
        assert len(result["transactions"]) == 1

    def test_skipped_items_are_logged(self, normal_txn):
        messages = []
        sink_id = logger.add(messages.append, level="WARNING", format="{message}")
        try:
            analyze_transactions([normal_txn, "garbage", 42])
        finally:
            logger.remove(sink_id)
        assert any("Skipped 2 non-object transaction entries" in m for m in messages)

    def test_empty_batch(self):
        result = analyze_transactions([])
        assert result["transactions"] == []
        assert result["summary"]["totalTransactions"] == 0
        assert result["summary"]["avgFraudScore"] == 0

    def test_summarize_empty(self):
        assert summarize([])["fraudCount"] == 0
