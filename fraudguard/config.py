"""
Configuration — FraudGuard
Environment-driven settings (.env supported) and loguru setup.
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

REPO_ROOT = Path(__file__).parents[1]
DATA_DIR  = REPO_ROOT / "data"

# ------------------------------------------------------------------ #
# Scoring                                                              #
# ------------------------------------------------------------------ #

LOG_LEVEL    = os.getenv("FRAUDGUARD_LOG_LEVEL", "INFO")
MAX_ROWS     = int(os.getenv("FRAUDGUARD_MAX_ROWS", "50"))
# Demo-only random factor added on top of the fraud score (0 = deterministic)
FRAUD_JITTER = float(os.getenv("FRAUDGUARD_FRAUD_JITTER", "0.0"))

# ------------------------------------------------------------------ #
# Storage                                                              #
# ------------------------------------------------------------------ #

DATABASE_URL = os.getenv(
    "FRAUDGUARD_DATABASE_URL",
    f"sqlite:///{(DATA_DIR / 'fraudguard.db').as_posix()}",
)

# ------------------------------------------------------------------ #
# Text generation (OpenAI-compatible chat completions)                 #
# ------------------------------------------------------------------ #

LLM_API_KEY  = os.getenv("FRAUDGUARD_LLM_API_KEY")
LLM_BASE_URL = os.getenv("FRAUDGUARD_LLM_BASE_URL", "https://api.openai.com/v1")
LLM_MODEL    = os.getenv("FRAUDGUARD_LLM_MODEL", "gpt-4o-mini")
LLM_TIMEOUT  = float(os.getenv("FRAUDGUARD_LLM_TIMEOUT", "30"))

# ------------------------------------------------------------------ #
# Simulation                                                           #
# ------------------------------------------------------------------ #

SIM_INTERVAL = float(os.getenv("FRAUDGUARD_SIM_INTERVAL", "0.8"))


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Reset loguru sinks to a single stderr sink at the given level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    )
