"""
Generative text provider.

OpenAITextGenerator talks to any OpenAI-compatible chat-completions
endpoint (Gemini's compatibility surface by default, OpenAI or a local
Ollama work the same way). Every failure leaves this module as a
ProviderError with a category; callers never string-match messages.

Classification order:
1. ProviderError passes through unchanged.
2. Structured exception types from the openai / httpx clients.
3. Keyword heuristics on the message text. Provider wording is not a
   stable contract, so these rules are pinned by tests in
   tests/test_provider.py and should only grow when a real message is
   seen in the wild.
"""
from __future__ import annotations

import asyncio
import logging
import re
from functools import lru_cache
from typing import Optional, Protocol

import httpx
import openai
from openai import AsyncOpenAI

from narrate.core.config import settings
from narrate.core.errors import ProviderError, ProviderErrorCategory

logger = logging.getLogger(__name__)

_PROBE_PROMPT = 'Respond with "API is working" if you can read this message.'
_PROBE_REPLY = "api is working"


class TextGenerator(Protocol):
    @property
    def configured(self) -> bool: ...

    async def generate_text(self, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

_RATE_RE = re.compile(r"quota|\brate|too many requests", re.IGNORECASE)
_NETWORK_RE = re.compile(r"network|fetch|connection|timed out|timeout", re.IGNORECASE)
_AUTH_RE = re.compile(r"auth|\bkey\b|api_?key|permission denied", re.IGNORECASE)


def classify_message(message: str) -> ProviderErrorCategory:
    """Last-resort keyword classification of a provider error message."""
    if _RATE_RE.search(message):
        return ProviderErrorCategory.RATE_LIMITED
    if _NETWORK_RE.search(message):
        return ProviderErrorCategory.NETWORK_ERROR
    if _AUTH_RE.search(message):
        return ProviderErrorCategory.AUTH_FAILED
    return ProviderErrorCategory.UNKNOWN


def classify_provider_error(exc: BaseException) -> ProviderErrorCategory:
    if isinstance(exc, ProviderError):
        return exc.category
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ProviderErrorCategory.AUTH_FAILED
    if isinstance(exc, openai.RateLimitError):
        return ProviderErrorCategory.RATE_LIMITED
    if isinstance(exc, (openai.APIConnectionError, httpx.TransportError, asyncio.TimeoutError)):
        return ProviderErrorCategory.NETWORK_ERROR
    return classify_message(str(exc))


# ---------------------------------------------------------------------------
# OpenAI-compatible client
# ---------------------------------------------------------------------------

class OpenAITextGenerator:
    """Single-shot prompt → text over chat completions."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        timeout: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            # Retries belong to the caller; the SDK must not add its own.
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    async def generate_text(self, prompt: str) -> str:
        if not self.configured:
            raise ProviderError(
                ProviderErrorCategory.MISSING_CREDENTIAL,
                detail="AI_API_KEY is not configured",
            )

        try:
            resp = await self._get_client().chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as exc:
            category = classify_provider_error(exc)
            logger.warning("Provider call failed [%s]: %s", category.value, exc)
            raise ProviderError(category, detail=str(exc)) from exc

        choices = getattr(resp, "choices", None) or []
        if not choices or choices[0].message is None:
            return ""
        return (choices[0].message.content or "").strip()


async def validate_provider(generator: TextGenerator) -> bool:
    """Live probe: True only if the provider answers the probe prompt sensibly."""
    if not generator.configured:
        return False
    try:
        text = await generator.generate_text(_PROBE_PROMPT)
    except ProviderError as exc:
        logger.info("Provider probe failed [%s]", exc.category.value)
        return False
    return _PROBE_REPLY in text.lower()


@lru_cache(maxsize=1)
def get_text_generator() -> TextGenerator:
    """FastAPI dependency: the process-wide generator built from settings."""
    return OpenAITextGenerator(
        settings.AI_API_KEY,
        model=settings.AI_MODEL,
        base_url=settings.AI_BASE_URL or None,
        temperature=settings.AI_TEMPERATURE,
        max_tokens=settings.AI_MAX_TOKENS,
        timeout=settings.AI_TIMEOUT_SECONDS,
    )
