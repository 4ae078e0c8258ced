"""
Prompt Builders — FraudGuard
Prompt templates for LLM-written explanations.
"""

import json

from fraudguard.scoring.fraud import format_amount

FRAUD_MAX_TOKENS        = 300
DEFAULT_RISK_MAX_TOKENS = 350
CREDIT_MAX_TOKENS       = 150


def _num(value, fmt: str) -> str:
    """Format a numeric value, or 'N/A' when missing / non-numeric."""
    try:
        return format(float(value), fmt)
    except (TypeError, ValueError):
        return "N/A"


def _scaled(value, factor: float):
    try:
        return float(value) * factor
    except (TypeError, ValueError):
        return None


def _money(value) -> str:
    try:
        return format_amount(float(value))
    except (TypeError, ValueError):
        return "N/A"


def build_fraud_prompt(transaction: dict, fraud_score: float, risk_level: str) -> str:
    return (
        "You are an expert fraud detection analyst. Provide a detailed explanation for why "
        "this transaction has been flagged.\n\n"
        "Transaction Details:\n"
        f"{json.dumps(transaction, indent=2, default=str)}\n\n"
        f"Fraud Score: {fraud_score * 100:.1f}%\n"
        f"Risk Level: {risk_level}\n\n"
        "Provide:\n"
        "1. A clear explanation of the risk factors identified\n"
        "2. Specific patterns that triggered the alert\n"
        "3. Recommended actions for the fraud team\n\n"
        "Keep your response concise but informative (max 200 words)."
    )


def build_default_risk_prompt(app: dict) -> str:
    annuity_pct = _num(_scaled(app.get("ANNUITY_INCOME_RATIO"), 100), ".1f")
    defaulted = "Yes (Defaulted)" if app.get("TARGET") == 1 else "No (Did not default)"

    return (
        "You are an expert credit risk analyst using Explainable AI (XAI) techniques. "
        "Analyze this loan application from the Home Credit Default Risk dataset and explain "
        "why it has been flagged with its current risk level.\n\n"
        "Application Details:\n"
        f"- Application ID: {app.get('SK_ID_CURR')}\n"
        f"- Contract Type: {app.get('NAME_CONTRACT_TYPE')}\n"
        f"- Gender: {app.get('CODE_GENDER')}\n"
        f"- Age: {app.get('AGE_YEARS')} years\n"
        f"- Income: ${_money(app.get('AMT_INCOME_TOTAL'))}\n"
        f"- Credit Amount: ${_money(app.get('AMT_CREDIT'))}\n"
        f"- Annuity: ${_money(app.get('AMT_ANNUITY'))}\n"
        f"- Credit/Income Ratio: {app.get('CREDIT_INCOME_RATIO')}x\n"
        f"- Annuity/Income Ratio: {annuity_pct}%\n"
        f"- Employment: {app.get('EMPLOYED_YEARS')} years ({app.get('NAME_INCOME_TYPE')})\n"
        f"- Occupation: {app.get('OCCUPATION_TYPE')}\n"
        f"- Education: {app.get('NAME_EDUCATION_TYPE')}\n"
        f"- Family Status: {app.get('NAME_FAMILY_STATUS')}\n"
        f"- Children: {app.get('CNT_CHILDREN')}\n"
        f"- Owns Car: {app.get('FLAG_OWN_CAR')}\n"
        f"- Owns Realty: {app.get('FLAG_OWN_REALTY')}\n"
        f"- External Score 1: {_num(app.get('EXT_SOURCE_1'), '.3f')}\n"
        f"- External Score 2: {_num(app.get('EXT_SOURCE_2'), '.3f')}\n"
        f"- External Score 3: {_num(app.get('EXT_SOURCE_3'), '.3f')}\n"
        f"- Risk Score: {app.get('RISK_SCORE')}%\n"
        f"- Risk Level: {app.get('RISK_LEVEL')}\n"
        f"- Target (Default): {defaulted}\n\n"
        "Provide an XAI-style explanation that includes:\n"
        "1. The top 3 risk factors contributing to this assessment\n"
        "2. How each factor impacts the default probability (positive or negative)\n"
        "3. A brief recommendation for the credit decision\n\n"
        "Keep your response concise (max 200 words) and professional."
    )


def build_credit_prompt(applicant: dict, credit_score: float, risk_group: str) -> str:
    try:
        dti_pct = f"{float(applicant.get('debtToIncome') or 0) * 100:.1f}"
    except (TypeError, ValueError):
        dti_pct = "0.0"

    def field(name: str) -> str:
        return str(applicant.get(name) or "Not provided")

    return (
        "You are a credit scoring AI expert. Provide a brief 2-3 sentence explanation for "
        "this credit assessment.\n\n"
        "Applicant Profile:\n"
        f"- Income: ${field('income')}\n"
        f"- Loan Amount Requested: ${field('loanAmount')}\n"
        f"- Employment Length: {field('employmentLength')} years\n"
        f"- Credit History Score: {field('creditHistory')}\n"
        f"- Debt-to-Income Ratio: {dti_pct}%\n"
        f"- Predicted Credit Score: {credit_score}\n"
        f"- Risk Group: {risk_group}\n\n"
        "Explain the key factors influencing this score in plain language."
    )
