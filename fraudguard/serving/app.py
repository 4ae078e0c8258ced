"""
FastAPI Application — FraudGuard
Scoring:        POST /api/analyze-fraud, POST /api/credit-score
Explanations:   POST /api/explain-fraud, POST /api/explain-default-risk
Home Credit:    /api/kaggle/*, GET /api/insights, GET /api/forecast
Demo:           GET /api/samples/*, /api/simulation/*
System:         GET /health
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Literal, Optional

import numpy as np
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from fraudguard.analytics.insights import (
    analyze_portfolio,
    compute_forecast,
    compute_insights,
    dataset_summary,
)
from fraudguard.config import LOG_LEVEL, configure_logging
from fraudguard.data.home_credit import (
    DATASET_STATS,
    FEATURE_IMPORTANCE,
    generate_sample_applicants,
    generate_sample_transactions,
    load_sample_dataset,
)
from fraudguard.data.store import DataStore, get_store
from fraudguard.explain.explainer import (
    DEFAULT_RISK_FALLBACK,
    explain_credit,
    explain_default_risk,
    explain_default_risk_rules,
    explain_fraud,
    explain_scored_applicant,
)
from fraudguard.explain.llm import TextGenerator, get_text_generator
from fraudguard.scoring.credit import (
    score_applicants,
    score_distribution,
    score_home_credit_applicants,
)
from fraudguard.scoring.fraud import analyze_transactions, empty_summary
from fraudguard.serving.schemas import (
    AnalyzeFraudRequest,
    AnalyzeFraudResponse,
    CreditScoreRequest,
    CreditScoreResponse,
    ErrorResponse,
    ExplainDefaultRiskRequest,
    ExplainFraudRequest,
    ExplanationResponse,
    HealthResponse,
    HomeCreditScoreResponse,
    KaggleDataResponse,
    KaggleLoadResponse,
    LoadKaggleRequest,
    PortfolioResponse,
    SimulationResponse,
)
from fraudguard.simulation.engine import SimulationEngine

ANALYSIS_ERROR = "Analysis encountered an issue. Please try again."

# Single simulator per process, created on first use
_simulation: SimulationEngine | None = None


def get_simulation(store: DataStore = Depends(get_store)) -> SimulationEngine:
    global _simulation
    if _simulation is None:
        _simulation = SimulationEngine(store)
    return _simulation


# ------------------------------------------------------------------ #
# Lifespan (startup/shutdown)                                          #
# ------------------------------------------------------------------ #

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and restore the stored dataset before serving."""
    configure_logging(LOG_LEVEL)
    logger.info("🚀 FraudGuard API starting up...")
    store = get_store()
    if store.data_loaded:
        logger.info(f"Home Credit sample ready — {store.record_count} applications")
    get_text_generator()

    yield   # --- app is running ---

    if _simulation is not None:
        await _simulation.stop()
    logger.info("FraudGuard API shutting down.")


# ------------------------------------------------------------------ #
# App                                                                  #
# ------------------------------------------------------------------ #

app = FastAPI(
    title       = "FraudGuard — Fraud Detection & Credit Scoring API",
    description = "Rule-based fraud and credit scoring over Home Credit style data, "
                  "with optional LLM explanations",
    version     = "1.0.0",
    lifespan    = lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins  = ["*"],
    allow_methods  = ["*"],
    allow_headers  = ["*"],
)


# ------------------------------------------------------------------ #
# Scoring                                                              #
# ------------------------------------------------------------------ #

@app.post(
    "/api/analyze-fraud",
    response_model = AnalyzeFraudResponse,
    response_model_exclude_none = True,
    summary        = "Score a batch of transactions for fraud",
    tags           = ["Scoring"],
)
async def analyze_fraud(request: Optional[AnalyzeFraudRequest] = None):
    """
    Score up to FRAUDGUARD_MAX_ROWS transactions.

    Never fails the request: a missing or malformed batch yields an empty
    analysis, and unexpected errors are reported in the `error` field.
    """
    transactions = request.transactions if request is not None else None
    if not isinstance(transactions, list):
        return {"transactions": [], "summary": empty_summary()}

    try:
        return analyze_transactions(transactions)
    except Exception as e:
        logger.error(f"Fraud analysis error: {e}")
        return {"transactions": [], "summary": empty_summary(), "error": ANALYSIS_ERROR}


@app.post(
    "/api/credit-score",
    response_model = CreditScoreResponse,
    responses      = {500: {"model": ErrorResponse}},
    summary        = "Score loan applicants",
    tags           = ["Scoring"],
)
async def credit_score(
    request:   CreditScoreRequest,
    generator: Optional[TextGenerator] = Depends(get_text_generator),
):
    """
    Credit score, risk group, feature importance and approval per applicant.

    With `generateExplanations` and a configured text generator, the short
    explanation is LLM-written; otherwise it is the top-factor summary.
    Any failure, generation included, fails the whole batch with a 500.
    """
    try:
        scored = score_applicants(request.applicants)
        for applicant in scored:
            if request.generate_explanations and generator is not None:
                result = await explain_credit(
                    applicant, applicant["creditScore"], applicant["riskGroup"], generator
                )
                applicant["explanation"] = result.text
            applicant["detailedExplanation"] = explain_scored_applicant(applicant)

        return {"applicants": scored, "distribution": score_distribution(scored)}
    except Exception as e:
        logger.error(f"Credit scoring error: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to score applicants"})


# ------------------------------------------------------------------ #
# Explanations                                                         #
# ------------------------------------------------------------------ #

@app.post(
    "/api/explain-fraud",
    response_model = ExplanationResponse,
    responses      = {500: {"model": ErrorResponse}},
    summary        = "Explain a transaction's fraud score",
    tags           = ["Explainability"],
)
async def explain_fraud_route(
    request:   ExplainFraudRequest,
    generator: Optional[TextGenerator] = Depends(get_text_generator),
):
    try:
        result = await explain_fraud(
            request.transaction, request.fraud_score, request.risk_level, generator
        )
        return ExplanationResponse(explanation=result.text, source=result.source)
    except Exception as e:
        logger.error(f"Explanation error: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to generate explanation"})


@app.post(
    "/api/explain-default-risk",
    response_model = ExplanationResponse,
    summary        = "Explain a Home Credit application's default risk",
    tags           = ["Explainability"],
)
async def explain_default_risk_route(
    request:   ExplainDefaultRiskRequest,
    generator: Optional[TextGenerator] = Depends(get_text_generator),
) -> ExplanationResponse:
    """Always answers 200; generation failures return a fixed fallback text."""
    try:
        result = await explain_default_risk(request.application, generator)
        return ExplanationResponse(explanation=result.text, source=result.source)
    except Exception as e:
        logger.error(f"Explanation error: {e}")
        return ExplanationResponse(explanation=DEFAULT_RISK_FALLBACK, source="fallback")


# ------------------------------------------------------------------ #
# Home Credit data                                                     #
# ------------------------------------------------------------------ #

@app.post(
    "/api/kaggle/load",
    response_model = KaggleLoadResponse,
    summary        = "Generate and store a Home Credit sample",
    tags           = ["Home Credit"],
)
async def kaggle_load(
    request: Optional[LoadKaggleRequest] = None,
    store:   DataStore = Depends(get_store),
) -> KaggleLoadResponse:
    request = request or LoadKaggleRequest()
    rng = np.random.default_rng(request.seed)
    applications, bureau, previous = load_sample_dataset(request.sample_size, rng=rng)
    store.set_kaggle_data(applications, bureau, previous)

    return KaggleLoadResponse(
        applications  = len(applications),
        bureauRecords = len(bureau),
        previousApps  = len(previous),
        loadedAt      = store.loaded_at.isoformat() if store.loaded_at else None,
        stats         = dataset_summary(applications),
    )


@app.get(
    "/api/kaggle/data",
    response_model = KaggleDataResponse,
    summary        = "Stored Home Credit sample",
    tags           = ["Home Credit"],
)
async def kaggle_data(store: DataStore = Depends(get_store)) -> KaggleDataResponse:
    return KaggleDataResponse(
        dataLoaded        = store.data_loaded,
        dataSource        = store.data_source,
        recordCount       = store.record_count,
        stats             = dataset_summary(store.applications),
        datasetStats      = DATASET_STATS,
        featureImportance = FEATURE_IMPORTANCE,
        **store.snapshot(),
    )


@app.delete(
    "/api/kaggle/data",
    summary = "Clear the stored Home Credit sample",
    tags    = ["Home Credit"],
)
async def kaggle_clear(store: DataStore = Depends(get_store)):
    store.clear_data()
    logger.info("Stored Home Credit sample cleared")
    return {"cleared": True}


@app.post(
    "/api/kaggle/analyze",
    response_model = PortfolioResponse,
    summary        = "Review the stored applications as scored records",
    tags           = ["Home Credit"],
)
async def kaggle_analyze(store: DataStore = Depends(get_store)):
    result  = analyze_portfolio(store.applications)
    summary = result["summary"]
    if summary["totalTransactions"]:
        store.set_analysis_results({
            "analyzedCount": summary["totalTransactions"],
            "highRisk":      summary["highRiskCount"],
            "mediumRisk":    summary["mediumRiskCount"],
            "lowRisk":       summary["lowRiskCount"],
            "timestamp":     datetime.now(timezone.utc).isoformat(),
        })
    return result


@app.post(
    "/api/kaggle/credit-score",
    response_model = HomeCreditScoreResponse,
    summary        = "Credit-score the stored applications from bureau features",
    tags           = ["Home Credit"],
)
async def kaggle_credit_score(store: DataStore = Depends(get_store)):
    """
    Score every stored application from EXT_SOURCE_1..3, employment, DTI and
    loan/income; approval at 600. No data loaded yields an empty result.
    """
    scored = score_home_credit_applicants(store.applications)
    for applicant in scored:
        applicant["explanation"] = explain_scored_applicant(applicant)
    return {"applicants": scored, "distribution": score_distribution(scored)}


@app.get(
    "/api/kaggle/explain/{sk_id}",
    response_model = ExplanationResponse,
    summary        = "Rule-based default-risk explanation for a stored application",
    tags           = ["Home Credit"],
)
async def kaggle_explain(sk_id: int, store: DataStore = Depends(get_store)) -> ExplanationResponse:
    application = store.find_application(sk_id)
    if application is None:
        raise HTTPException(
            status_code = 404,
            detail      = f"No application found with SK_ID_CURR={sk_id}. "
                          f"Call POST /api/kaggle/load first.",
        )
    return ExplanationResponse(explanation=explain_default_risk_rules(application), source="rules")


@app.get("/api/insights", summary="Default-risk insights over the stored sample", tags=["Analytics"])
async def insights(store: DataStore = Depends(get_store)):
    result = compute_insights(store.applications)
    if result is None:
        raise HTTPException(status_code=404, detail="No Home Credit data loaded")
    return result


@app.get("/api/forecast", summary="Risk forecast over the stored sample", tags=["Analytics"])
async def forecast(store: DataStore = Depends(get_store)):
    result = compute_forecast(store.applications)
    if result is None:
        raise HTTPException(status_code=404, detail="No Home Credit data loaded")
    return result


# ------------------------------------------------------------------ #
# Demo inputs                                                          #
# ------------------------------------------------------------------ #

@app.get("/api/samples/transactions", summary="Demo card transactions", tags=["Demo"])
async def sample_transactions(
    count: int = Query(20, ge=1, le=500),
    seed:  Optional[int] = None,
):
    return {"transactions": generate_sample_transactions(count, rng=np.random.default_rng(seed))}


@app.get("/api/samples/applicants", summary="Demo loan applicants", tags=["Demo"])
async def sample_applicants(
    count: int = Query(20, ge=1, le=500),
    seed:  Optional[int] = None,
):
    return {"applicants": generate_sample_applicants(count, rng=np.random.default_rng(seed))}


# ------------------------------------------------------------------ #
# Simulation                                                           #
# ------------------------------------------------------------------ #

@app.get(
    "/api/simulation",
    response_model = SimulationResponse,
    summary        = "Simulation state",
    tags           = ["Simulation"],
)
async def simulation_state(engine: SimulationEngine = Depends(get_simulation)):
    return engine.snapshot()


@app.post("/api/simulation/start", response_model=SimulationResponse, tags=["Simulation"])
async def simulation_start(
    mode:   Optional[Literal["random", "kaggle"]] = None,
    engine: SimulationEngine = Depends(get_simulation),
):
    await engine.start(mode)
    return engine.snapshot()


@app.post("/api/simulation/stop", response_model=SimulationResponse, tags=["Simulation"])
async def simulation_stop(engine: SimulationEngine = Depends(get_simulation)):
    await engine.stop()
    return engine.snapshot()


@app.post("/api/simulation/reset", response_model=SimulationResponse, tags=["Simulation"])
async def simulation_reset(engine: SimulationEngine = Depends(get_simulation)):
    await engine.reset()
    return engine.snapshot()


@app.post("/api/simulation/tick", response_model=SimulationResponse, tags=["Simulation"])
async def simulation_tick(engine: SimulationEngine = Depends(get_simulation)):
    """Advance the simulation by one transaction."""
    engine.tick()
    return engine.snapshot()


# ------------------------------------------------------------------ #
# System                                                               #
# ------------------------------------------------------------------ #

@app.get(
    "/health",
    response_model = HealthResponse,
    summary        = "API health check",
    tags           = ["System"],
)
async def health(
    store:     DataStore = Depends(get_store),
    generator: Optional[TextGenerator] = Depends(get_text_generator),
) -> HealthResponse:
    """
    Check the health of all system components:
    - Snapshot store reachability
    - Loaded dataset
    - Whether LLM explanations are enabled
    """
    store_ok = store.ping()
    return HealthResponse(
        status         = "healthy" if store_ok else "degraded",
        store_ok       = store_ok,
        data_loaded    = store.data_loaded,
        record_count   = store.record_count,
        llm_configured = generator is not None,
    )


@app.get("/", include_in_schema=False)
async def root():
    return {
        "project": "FraudGuard",
        "docs":    "/docs",
        "health":  "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("fraudguard.serving.app:app", host="0.0.0.0", port=8000)
