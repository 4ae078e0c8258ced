"""
Pydantic Schemas — FraudGuard Serving Layer
Request and response models for all API endpoints.

Input records are deliberately open: the dashboard posts whatever columns a
dataset carries, and every scored record echoes them back.
"""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ------------------------------------------------------------------ #
# Requests                                                             #
# ------------------------------------------------------------------ #

class AnalyzeFraudRequest(BaseModel):
    """
    Batch of transactions to score. Anything other than a list of
    records yields an empty analysis, not a validation error.
    """
    transactions: Any = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "transactions": [
                    {"id": "TXN-00001", "amount": 6200.0, "category": "electronics",
                     "time": "2025-01-10T03:15:00Z", "merchant": "Unknown Merchant"},
                ]
            }
        }
    }


class CreditScoreRequest(BaseModel):
    applicants:           list[dict[str, Any]]
    generate_explanations: bool = Field(False, alias="generateExplanations")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "applicants": [
                    {"id": "APP-00001", "income": 85000, "loanAmount": 25000,
                     "employmentLength": 6, "creditHistory": 720, "debtToIncome": 0.22,
                     "ageOfCredit": 9, "numAccounts": 4},
                ],
                "generateExplanations": False,
            }
        },
    )


class ExplainFraudRequest(BaseModel):
    transaction: dict[str, Any]
    fraud_score: float = Field(..., alias="fraudScore", ge=0.0, le=1.0)
    risk_level:  str   = Field(..., alias="riskLevel")

    model_config = ConfigDict(populate_by_name=True)


class ExplainDefaultRiskRequest(BaseModel):
    application: dict[str, Any]


class LoadKaggleRequest(BaseModel):
    sample_size: int = Field(100, alias="sampleSize", ge=1, le=5000)
    seed:        Optional[int] = Field(None, description="Seed for reproducible samples")

    model_config = ConfigDict(populate_by_name=True)


# ------------------------------------------------------------------ #
# Responses                                                            #
# ------------------------------------------------------------------ #

class FraudSummary(BaseModel):
    totalTransactions: int
    fraudCount:        int
    genuineCount:      int
    avgFraudScore:     float
    highRiskCount:     int
    mediumRiskCount:   int
    lowRiskCount:      int


class AnalyzedTransaction(BaseModel):
    """Input record echoed back with scoring fields."""
    id:          Union[str, int]
    fraudScore:  float = Field(..., ge=0.0, le=1.0)
    riskLevel:   Literal["Low", "Medium", "High"]
    explanation: str
    flagged:     bool

    model_config = ConfigDict(extra="allow")


class AnalyzeFraudResponse(BaseModel):
    transactions: list[AnalyzedTransaction]
    summary:      FraudSummary
    error:        Optional[str] = None


class FeatureImpact(BaseModel):
    feature:    str
    importance: float
    impact:     Literal["positive", "negative", "neutral"]


class ScoredApplicant(BaseModel):
    creditScore:         Union[int, float] = Field(..., ge=300, le=850)
    riskGroup:           Literal["Prime", "Near-prime", "Subprime"]
    featureImportance:   list[FeatureImpact]
    explanation:         str
    detailedExplanation: str
    approved:            bool

    model_config = ConfigDict(extra="allow")


class CreditDistribution(BaseModel):
    prime:        int
    nearPrime:    int
    subprime:     int
    avgScore:     float
    approvalRate: float


class CreditScoreResponse(BaseModel):
    applicants:   list[ScoredApplicant]
    distribution: CreditDistribution


class HomeCreditScoredApplicant(BaseModel):
    """Stored application mapped to applicant fields, scored and explained."""
    id:                str
    skIdCurr:          Optional[int]
    creditScore:       int = Field(..., ge=300, le=850)
    riskGroup:         Literal["Prime", "Near-prime", "Subprime"]
    featureImportance: list[FeatureImpact]
    explanation:       str
    approved:          bool

    model_config = ConfigDict(extra="allow")


class HomeCreditScoreResponse(BaseModel):
    applicants:   list[HomeCreditScoredApplicant]
    distribution: CreditDistribution


class ExplanationResponse(BaseModel):
    explanation: str
    source:      str = Field("rules", description="'llm', 'rules' or 'fallback'")


class ErrorResponse(BaseModel):
    error: str


class KaggleLoadResponse(BaseModel):
    applications:  int
    bureauRecords: int
    previousApps:  int
    loadedAt:      Optional[str]
    stats:         Optional[dict]


class KaggleDataResponse(BaseModel):
    dataLoaded:      bool
    dataSource:      Optional[str]
    recordCount:     int
    loadedAt:        Optional[str]
    applications:    list[dict]
    bureauRecords:   list[dict]
    previousApps:    list[dict]
    analysisResults: Optional[dict]
    stats:           Optional[dict]
    datasetStats:      dict
    featureImportance: list[dict]


class PortfolioResponse(BaseModel):
    transactions: list[dict]
    summary:      FraudSummary


class SimulationResponse(BaseModel):
    running:          bool
    mode:             str
    kaggleAvailable:  bool
    stats:            dict
    transactions:     list[dict]
    fraudRateHistory: list[dict]


class HealthResponse(BaseModel):
    """API health check response."""
    status:         str  = Field(..., description="'healthy' or 'degraded'")
    store_ok:       bool
    data_loaded:    bool
    record_count:   int
    llm_configured: bool
    version:        str  = "1.0.0"
