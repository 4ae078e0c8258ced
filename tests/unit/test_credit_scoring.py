"""
Unit tests for the credit scorer.
"""

import pytest

from fraudguard.scoring.credit import (
    calculate_credit_score,
    get_feature_importance,
    get_risk_group,
    home_credit_applicant,
    score_applicants,
    score_distribution,
    score_home_credit_applicants,
    summarize_factors,
)


@pytest.fixture
def strong_applicant():
    return {
        "id": "APP-1", "income": 120000, "loanAmount": 20000, "employmentLength": 12,
        "creditHistory": 760, "debtToIncome": 0.1, "ageOfCredit": 20,
    }


@pytest.fixture
def weak_applicant():
    return {
        "id": "APP-2", "income": 20000, "loanAmount": 100000, "employmentLength": 0,
        "creditHistory": 500, "debtToIncome": 0.6, "ageOfCredit": 0,
    }


@pytest.fixture
def middling_applicant():
    # 500 + 40 + 25 + 10 + 30 + 0 + 9
    return {
        "id": "APP-3", "income": 55000, "loanAmount": 150000, "employmentLength": 2,
        "creditHistory": 640, "debtToIncome": 0.4, "ageOfCredit": 3,
    }


class TestCalculateCreditScore:

    def test_clamped_to_max(self, strong_applicant):
        assert calculate_credit_score(strong_applicant) == 850

    def test_weak_profile(self, weak_applicant):
        # 500 + 0 - 30 + 0 - 50 - 50 + 0
        assert calculate_credit_score(weak_applicant) == 370

    def test_middling_profile(self, middling_applicant):
        assert calculate_credit_score(middling_applicant) == 614

    def test_empty_applicant(self):
        # income 0 → loan/income 1 (+50), history -50, DTI 0 (+60)
        assert calculate_credit_score({}) == 560

    def test_whole_scores_are_ints(self, middling_applicant):
        assert isinstance(calculate_credit_score(middling_applicant), int)

    def test_never_below_floor(self):
        applicant = {"income": 1000, "loanAmount": 900000, "creditHistory": 300, "debtToIncome": 0.9}
        assert calculate_credit_score(applicant) >= 300


class TestRiskGroup:

    @pytest.mark.parametrize("score,group", [
        (850, "Prime"), (700, "Prime"), (699, "Near-prime"), (600, "Near-prime"), (599, "Subprime"),
    ])
    def test_thresholds(self, score, group):
        assert get_risk_group(score) == group


class TestFeatureImportance:

    def test_sorted_by_weight(self, strong_applicant):
        names = [f["feature"] for f in get_feature_importance(strong_applicant)]
        assert names == [
            "Credit History", "Annual Income", "Debt-to-Income", "Loan Amount", "Employment Length",
        ]

    def test_importance_values(self, strong_applicant):
        values = [f["importance"] for f in get_feature_importance(strong_applicant)]
        assert values == pytest.approx([20, 18, 18, 15, 12])

    def test_strong_profile_all_positive(self, strong_applicant):
        assert {f["impact"] for f in get_feature_importance(strong_applicant)} == {"positive"}

    def test_zero_income_marks_loan_negative(self):
        loan = next(f for f in get_feature_importance({"loanAmount": 100}) if f["feature"] == "Loan Amount")
        assert loan["impact"] == "negative"

    def test_summary_strong(self, strong_applicant):
        text = summarize_factors(get_feature_importance(strong_applicant))
        assert text == "Strong factors: Credit History, Annual Income, Debt-to-Income"

    def test_summary_weak(self, weak_applicant):
        text = summarize_factors(get_feature_importance(weak_applicant))
        assert text == "Areas of concern: Credit History, Annual Income, Debt-to-Income"

    def test_summary_neutral(self):
        applicant = {"income": 40000, "creditHistory": 620, "debtToIncome": 0.4}
        assert summarize_factors(get_feature_importance(applicant)) == "Standard credit profile."


class TestScoreApplicants:

    def test_fields_added(self, strong_applicant, weak_applicant):
        scored = score_applicants([strong_applicant, weak_applicant])
        assert scored[0]["id"] == "APP-1"
        assert scored[0]["riskGroup"] == "Prime"
        assert scored[0]["approved"] is True
        assert scored[1]["approved"] is False
        assert len(scored[1]["featureImportance"]) == 5

    def test_approval_cutoff(self, middling_applicant):
        # 614 is Near-prime but below the 620 approval cutoff
        scored = score_applicants([middling_applicant])[0]
        assert scored["riskGroup"] == "Near-prime"
        assert scored["approved"] is False

    def test_capped_batch(self, middling_applicant):
        assert len(score_applicants([middling_applicant] * 75)) == 50

    def test_distribution(self, strong_applicant, weak_applicant, middling_applicant):
        dist = score_distribution(score_applicants([strong_applicant, weak_applicant, middling_applicant]))
        assert dist["prime"] == 1
        assert dist["nearPrime"] == 1
        assert dist["subprime"] == 1
        assert dist["avgScore"] == pytest.approx((850 + 370 + 614) / 3)
        assert dist["approvalRate"] == pytest.approx(100 / 3)

    def test_empty_distribution(self):
        assert score_distribution([]) == {
            "prime": 0, "nearPrime": 0, "subprime": 0, "avgScore": 0, "approvalRate": 0,
        }


# ------------------------------------------------------------------ #
# Home Credit portfolio                                                #
# ------------------------------------------------------------------ #

@pytest.fixture
def stored_application():
    return {
        "SK_ID_CURR": 100001, "TARGET": 0, "AMT_INCOME_TOTAL": 100000, "AMT_CREDIT": 600000,
        "EMPLOYED_YEARS": 4, "ANNUITY_INCOME_RATIO": 0.2, "CREDIT_INCOME_RATIO": 6.0,
        "EXT_SOURCE_1": 0.5, "EXT_SOURCE_2": 0.8, "EXT_SOURCE_3": 0.6, "AGE_YEARS": 41,
        "CODE_GENDER": "F", "NAME_INCOME_TYPE": "Working",
    }


class TestHomeCreditScoring:

    def test_applicant_mapping(self, stored_application):
        applicant = home_credit_applicant(stored_application)
        assert applicant["id"] == "HC-100001"
        assert applicant["loanAmount"] == 600000
        assert applicant["debtToIncome"] == 0.2
        # 300 + 0.8 * 550
        assert applicant["creditHistory"] == 740
        assert applicant["gender"] == "F"
        assert applicant["occupation"] == "N/A"

    def test_bureau_driven_score(self, stored_application):
        # 550 + 50 + 80 + 60 + 20 - 20 - 50 (loan/income 6 > 5)
        scored = score_home_credit_applicants([stored_application])[0]
        assert scored["creditScore"] == 690
        assert isinstance(scored["creditScore"], int)
        assert scored["riskGroup"] == "Near-prime"
        assert scored["approved"] is True

    def test_missing_fields_take_defaults(self):
        # 550 + 3 * 50 + 15 - 30, loan/income 2
        scored = score_home_credit_applicants([{"SK_ID_CURR": 2}])[0]
        assert scored["creditScore"] == 685
        assert scored["income"] == 100000
        assert scored["loanAmount"] == 200000
        assert scored["employmentLength"] == 3
        assert scored["debtToIncome"] == pytest.approx(0.3)
        assert scored["creditHistory"] == 650
        assert scored["creditIncomeRatio"] == pytest.approx(2.0)

    def test_clamped_to_floor(self):
        app = {
            "SK_ID_CURR": 3, "AMT_INCOME_TOTAL": 10000, "AMT_CREDIT": 100000,
            "ANNUITY_INCOME_RATIO": 5, "EXT_SOURCE_1": 0.01, "EXT_SOURCE_2": 0.01,
            "EXT_SOURCE_3": 0.01,
        }
        scored = score_home_credit_applicants([app])[0]
        assert scored["creditScore"] == 300
        assert scored["riskGroup"] == "Subprime"
        assert scored["approved"] is False

    def test_approval_at_600(self):
        # 550 + 3 * 50 + 15 - 100 * 1.15
        app = {"SK_ID_CURR": 4, "ANNUITY_INCOME_RATIO": 1.15}
        scored = score_home_credit_applicants([app])[0]
        assert scored["creditScore"] == 600
        assert scored["approved"] is True

    def test_feature_importance(self, stored_application):
        importance = score_home_credit_applicants([stored_application])[0]["featureImportance"]
        assert [(f["feature"], f["importance"], f["impact"]) for f in importance] == [
            ("EXT_SOURCE_2", 80, "positive"),
            ("EXT_SOURCE_3", 60, "positive"),
            ("Employment Years", 40, "positive"),
            ("Debt-to-Income", 20, "positive"),
            ("Credit-to-Income Ratio", 120, "negative"),
        ]

    def test_generated_portfolio(self, applications):
        scored = score_home_credit_applicants(applications)
        assert len(scored) == len(applications)
        assert all(300 <= a["creditScore"] <= 850 for a in scored)
        assert all(a["approved"] == (a["creditScore"] >= 600) for a in scored)

    def test_empty_portfolio(self):
        assert score_home_credit_applicants([]) == []
