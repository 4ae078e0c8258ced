"""
Text Generation Client — FraudGuard
Thin async client for an OpenAI-compatible chat completions endpoint,
behind a protocol so callers (and tests) can inject any generator.
"""

from functools import lru_cache
from typing import Protocol

import httpx
from loguru import logger

from fraudguard.config import LLM_API_KEY, LLM_BASE_URL, LLM_MODEL, LLM_TIMEOUT


class TextGenerationError(Exception):
    """Raised when the text generation backend fails or returns no text."""


class TextGenerator(Protocol):
    """Anything that can turn a prompt into prose."""

    async def generate(self, prompt: str, max_tokens: int) -> str:
        ...


class OpenAITextGenerator:
    """
    Chat-completions client.

    Usage
    -----
    gen  = OpenAITextGenerator(api_key="sk-...")
    text = await gen.generate("Explain ...", max_tokens=300)
    """

    def __init__(
        self,
        api_key:  str,
        base_url: str   = LLM_BASE_URL,
        model:    str   = LLM_MODEL,
        timeout:  float = LLM_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key  = api_key
        self._base_url = base_url.rstrip("/")
        self._model    = model
        self._timeout  = timeout
        self._transport = transport

    @property
    def model(self) -> str:
        return self._model

    async def generate(self, prompt: str, max_tokens: int) -> str:
        payload = {
            "model":      self._model,
            "messages":   [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post("/chat/completions", json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise TextGenerationError(
                f"Text generation failed with HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise TextGenerationError(f"Text generation request failed: {e}") from e

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise TextGenerationError("Malformed text generation response") from e

        if not text or not text.strip():
            raise TextGenerationError("Empty text generation response")

        logger.debug(f"Generated {len(text)} chars with {self._model}")
        return text.strip()


@lru_cache(maxsize=1)
def get_text_generator() -> TextGenerator | None:
    """Configured generator, or None when FRAUDGUARD_LLM_API_KEY is unset."""
    if not LLM_API_KEY:
        logger.info("No LLM API key configured — explanations fall back to rules.")
        return None
    logger.info(f"Text generation enabled | model={LLM_MODEL}")
    return OpenAITextGenerator(api_key=LLM_API_KEY)
