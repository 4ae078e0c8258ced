"""
Shared fixtures. The environment is pinned before any fraudguard import so
the process-wide store is in-memory and LLM explanations are disabled.
"""

import os

os.environ["FRAUDGUARD_DATABASE_URL"] = "sqlite://"
os.environ["FRAUDGUARD_LLM_API_KEY"]  = ""
os.environ["FRAUDGUARD_FRAUD_JITTER"] = "0"

import numpy as np
import pytest

from fraudguard.data.home_credit import generate_applications, load_sample_dataset
from fraudguard.data.store import DataStore, get_engine
from fraudguard.explain.llm import TextGenerationError


class FakeGenerator:
    """Records prompts and answers with a canned reply."""

    def __init__(self, reply: str = "Generated explanation."):
        self.reply   = reply
        self.prompts = []

    async def generate(self, prompt: str, max_tokens: int) -> str:
        self.prompts.append((prompt, max_tokens))
        return self.reply


class FailingGenerator:
    async def generate(self, prompt: str, max_tokens: int) -> str:
        raise TextGenerationError("backend unavailable")


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def store():
    """Empty store on a private in-memory database."""
    return DataStore(get_engine("sqlite://"))


@pytest.fixture
def applications():
    return generate_applications(60, rng=np.random.default_rng(7))


@pytest.fixture
def loaded_store(store):
    apps, bureau, previous = load_sample_dataset(40, rng=np.random.default_rng(11))
    store.set_kaggle_data(apps, bureau, previous)
    return store


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def failing_generator():
    return FailingGenerator()
