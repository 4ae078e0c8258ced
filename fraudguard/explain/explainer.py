"""
Explainer — FraudGuard
Main interface for the explainability layer.
Produces natural-language explanations for fraud scores, default risk and
credit scores: LLM-written when a text generator is configured, rule-based
templates otherwise.
"""

from dataclasses import dataclass

from loguru import logger

from fraudguard.explain.llm import TextGenerationError, TextGenerator
from fraudguard.explain.prompts import (
    CREDIT_MAX_TOKENS,
    DEFAULT_RISK_MAX_TOKENS,
    FRAUD_MAX_TOKENS,
    build_credit_prompt,
    build_default_risk_prompt,
    build_fraud_prompt,
)
from fraudguard.scoring.credit import HOME_CREDIT_DEFAULTS
from fraudguard.scoring.fraud import explain_transaction

DEFAULT_RISK_FALLBACK = (
    "Unable to generate AI explanation at this time. The risk assessment is based on "
    "credit-to-income ratio, employment stability, external credit scores, and historical "
    "patterns from the Home Credit dataset."
)


@dataclass
class Explanation:
    """Explanation text plus where it came from."""
    text:   str
    source: str          # "llm", "rules" or "fallback"


def _float(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# ------------------------------------------------------------------ #
# Rule-based templates                                                 #
# ------------------------------------------------------------------ #

def explain_default_risk_rules(app: dict) -> str:
    """Short default-risk explanation of a Home Credit application."""
    ext2   = _float(app.get("EXT_SOURCE_2"))
    ratio  = _float(app.get("CREDIT_INCOME_RATIO"))
    years  = _float(app.get("EMPLOYED_YEARS"))
    parts  = []

    if ext2 < 0.3:
        parts.append(
            f"Very low external credit score (EXT_SOURCE_2: {ext2:.3f}) indicates significant "
            f"credit risk and limited positive credit history."
        )
    elif ext2 < 0.5:
        parts.append(
            f"Below average external credit score (EXT_SOURCE_2: {ext2:.3f}) suggests moderate "
            f"credit concerns."
        )
    else:
        parts.append(
            f"Good external credit score (EXT_SOURCE_2: {ext2:.3f}) indicates solid credit history."
        )

    if ratio > 10:
        parts.append(
            f"Extremely high credit-to-income ratio ({ratio:.1f}x) significantly exceeds safe "
            f"lending limits."
        )
    elif ratio > 5:
        parts.append(f"High credit-to-income ratio ({ratio:.1f}x) exceeds typical debt capacity.")
    else:
        parts.append(f"Conservative credit-to-income ratio ({ratio:.1f}x) within safe limits.")

    if years < 1:
        parts.append(
            f"Very short employment history ({years:.1f} years) indicates income instability risk."
        )
    elif years > 5:
        parts.append(f"Stable employment history ({years:.1f} years) is a positive factor.")

    if app.get("TARGET") == 1:
        parts.append(
            "This applicant has a recorded default in the dataset, confirming the risk assessment."
        )

    return " ".join(parts)


def explain_application_risk(record: dict) -> str:
    """
    Detailed risk narrative for a reviewed application.

    Expects the camelCase fields produced by the portfolio review
    (extSource1..3, creditIncomeRatio, annuityIncomeRatio, employedYears, ageYears).
    """
    ext1, ext2, ext3 = record["extSource1"], record["extSource2"], record["extSource3"]
    ratio   = record["creditIncomeRatio"]
    annuity = record["annuityIncomeRatio"]
    years   = record["employedYears"]
    age     = record["ageYears"]
    parts   = []

    if ext2 < 0.3:
        parts.append(
            f"Very low external credit score (EXT_SOURCE_2: {ext2:.3f}) indicates significant "
            f"credit risk and limited positive credit history"
        )
    elif ext2 < 0.5:
        parts.append(
            f"Below average external credit score (EXT_SOURCE_2: {ext2:.3f}) suggests moderate "
            f"credit concerns"
        )
    if ext1 < 0.3:
        parts.append(
            f"Low EXT_SOURCE_1 score ({ext1:.3f}) indicates potential issues with primary credit "
            f"bureau data"
        )
    if ext3 < 0.3:
        parts.append(
            f"Low EXT_SOURCE_3 score ({ext3:.3f}) reflects concerns from supplementary credit "
            f"assessment"
        )

    if ratio > 10:
        parts.append(
            f"Extremely high credit-to-income ratio ({ratio:.1f}x) significantly exceeds safe "
            f"lending limits and indicates severe overextension"
        )
    elif ratio > 5:
        parts.append(
            f"High credit-to-income ratio ({ratio:.1f}x) exceeds typical debt capacity thresholds"
        )

    if annuity > 0.5:
        parts.append(
            f"Annuity payment consumes {annuity * 100:.0f}% of income, leaving limited capacity "
            f"for financial emergencies"
        )
    elif annuity > 0.35:
        parts.append(
            f"Annuity burden of {annuity * 100:.0f}% of income is above recommended 35% threshold"
        )

    if years < 1:
        parts.append(
            f"Very short employment history ({years:.1f} years) indicates income instability risk"
        )
    elif years < 2:
        parts.append(
            f"Limited employment tenure ({years:.1f} years) may affect repayment stability"
        )

    if age < 25:
        parts.append(
            f"Young applicant age ({age:g} years) typically correlates with higher default "
            f"probability"
        )

    # Positive factors
    if ext2 > 0.7:
        parts.append(
            f"Strong external credit score (EXT_SOURCE_2: {ext2:.3f}) indicates solid credit history"
        )
    if years > 10:
        parts.append(f"Long-term employment stability ({years:.0f} years) is a positive factor")
    if ratio < 3:
        parts.append(f"Conservative credit-to-income ratio ({ratio:.1f}x) within safe limits")

    if not parts:
        return (
            "Standard risk profile with balanced factors across all assessment criteria. "
            "No major risk indicators detected."
        )
    return ". ".join(parts) + "."


def explain_credit_profile(
    credit_score:      float,
    ext_source_2:      float,
    employment_length: float,
    debt_to_income:    float,
    loan_amount:       float,
    income:            float,
) -> str:
    """Long-form credit narrative: tier, bureau score, tenure, DTI, loan/income, verdict."""
    parts = []

    if credit_score >= 750:
        parts.append(
            f"Excellent credit profile with a score of {credit_score}. Applicant qualifies as "
            f"Prime tier with strong lending credentials."
        )
    elif credit_score >= 700:
        parts.append(
            f"Good credit score of {credit_score} places applicant in Prime tier. Strong "
            f"financial history indicates low default risk."
        )
    elif credit_score >= 600:
        parts.append(
            f"Fair credit score of {credit_score} places applicant in Near-prime tier. "
            f"Moderate risk with caution recommended."
        )
    else:
        parts.append(
            f"Low credit score of {credit_score} indicates Subprime tier. High default risk - "
            f"approval not recommended."
        )

    if ext_source_2 > 0.7:
        parts.append(
            "Strong external credit bureau evaluation (EXT_SOURCE_2) demonstrates excellent "
            "creditworthiness from third-party sources."
        )
    elif ext_source_2 > 0.5:
        parts.append(
            "Moderate external credit bureau score indicates acceptable credit history from "
            "third-party sources."
        )
    elif ext_source_2 < 0.3:
        parts.append(
            "Weak external credit bureau evaluation indicates credit challenges or limited "
            "credit history, increasing risk assessment."
        )

    if employment_length > 5:
        parts.append(
            f"Stable employment history of {employment_length:.1f} years demonstrates income "
            f"reliability and reduced unemployment risk."
        )
    elif employment_length > 2:
        parts.append(
            f"Moderate employment tenure of {employment_length:.1f} years shows reasonable job "
            f"stability."
        )
    elif employment_length > 0:
        parts.append(
            f"Short employment history of {employment_length:.1f} years is a risk factor - less "
            f"time to demonstrate consistent income."
        )

    dti_pct = f"{debt_to_income * 100:.1f}"
    if debt_to_income < 0.25:
        parts.append(
            f"Excellent debt-to-income ratio of {dti_pct}% indicates strong repayment capacity "
            f"with manageable obligations."
        )
    elif debt_to_income < 0.4:
        parts.append(
            f"Acceptable debt-to-income ratio of {dti_pct}% suggests moderate financial "
            f"obligations with reasonable repayment capability."
        )
    elif debt_to_income < 0.5:
        parts.append(
            f"High debt-to-income ratio of {dti_pct}% indicates limited capacity to take on "
            f"additional credit obligations."
        )
    else:
        parts.append(
            f"Very high debt-to-income ratio of {dti_pct}% significantly limits borrowing "
            f"capacity and increases default risk."
        )

    lti = loan_amount / income if income > 0 else 1.0
    lti_pct = f"{lti * 100:.1f}"
    if lti < 2:
        parts.append(
            f"Favorable loan-to-income ratio of {lti_pct}% indicates the credit amount is "
            f"conservative relative to income."
        )
    elif lti < 4:
        parts.append(
            f"Moderate loan-to-income ratio of {lti_pct}% is within acceptable lending guidelines."
        )
    elif lti < 6:
        parts.append(
            f"High loan-to-income ratio of {lti_pct}% suggests the credit request is substantial "
            f"relative to income, increasing risk."
        )
    else:
        parts.append(
            f"Excessive loan-to-income ratio of {lti_pct}% indicates the credit amount far exceeds "
            f"recommended thresholds - high default risk."
        )

    if credit_score >= 700:
        parts.append(
            "Overall Assessment: Strong financial profile supports loan approval with "
            "competitive terms."
        )
    elif credit_score >= 600:
        parts.append(
            "Overall Assessment: Moderate risk profile - conditional approval recommended with "
            "higher interest rates or lower credit limits."
        )
    else:
        parts.append(
            "Overall Assessment: Weak financial metrics recommend loan denial or alternative "
            "products like secured credit."
        )

    return " ".join(parts)


def explain_scored_applicant(applicant: dict) -> str:
    """
    explain_credit_profile over a scored applicant record.

    Missing or zero fields take HOME_CREDIT_DEFAULTS (income 100000, loan
    200000, 3 years employed, DTI 0.3, external score 0.5).
    """
    def field(name: str, *aliases: str) -> float:
        default = HOME_CREDIT_DEFAULTS[name]
        for key in (name, *aliases):
            if key in applicant:
                return _float(applicant[key], default) or default
        return default

    return explain_credit_profile(
        credit_score      = applicant["creditScore"],
        ext_source_2      = field("extSource2", "EXT_SOURCE_2"),
        employment_length = field("employmentLength"),
        debt_to_income    = field("debtToIncome"),
        loan_amount       = field("loanAmount"),
        income            = field("income"),
    )


# ------------------------------------------------------------------ #
# LLM-backed explanations                                            #
# ------------------------------------------------------------------ #

async def explain_fraud(
    transaction: dict,
    fraud_score: float,
    risk_level:  str,
    generator:   TextGenerator | None,
) -> Explanation:
    """
    Explain a scored transaction.

    Without a generator the rule-based transaction explanation is returned.

    Raises
    ------
    TextGenerationError if the generator fails.
    """
    if generator is None:
        return Explanation(text=explain_transaction(transaction, fraud_score), source="rules")

    prompt = build_fraud_prompt(transaction, fraud_score, risk_level)
    logger.debug(f"Fraud explanation prompt: {len(prompt)} chars")
    text = await generator.generate(prompt, max_tokens=FRAUD_MAX_TOKENS)
    return Explanation(text=text, source="llm")


async def explain_default_risk(application: dict, generator: TextGenerator | None) -> Explanation:
    """
    Explain the default risk of a Home Credit application. Never raises:
    generation failures degrade to a fixed fallback message.
    """
    if generator is None:
        return Explanation(text=explain_default_risk_rules(application), source="rules")

    try:
        text = await generator.generate(
            build_default_risk_prompt(application), max_tokens=DEFAULT_RISK_MAX_TOKENS
        )
        return Explanation(text=text, source="llm")
    except TextGenerationError as e:
        logger.error(f"Explanation error: {e}")
        return Explanation(text=DEFAULT_RISK_FALLBACK, source="fallback")


async def explain_credit(
    applicant:    dict,
    credit_score: float,
    risk_group:   str,
    generator:    TextGenerator,
) -> Explanation:
    """LLM-written 2–3 sentence credit explanation. Raises TextGenerationError on failure."""
    text = await generator.generate(
        build_credit_prompt(applicant, credit_score, risk_group), max_tokens=CREDIT_MAX_TOKENS
    )
    return Explanation(text=text, source="llm")
