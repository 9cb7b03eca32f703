"""Generative text clients (Gemini and OpenAI).

Security: API keys come from Settings (environment / .env) only.
When no key is configured for the selected provider, ``get_text_generator``
returns None and the provider gateway serves its deterministic fallback.
"""

import logging
from typing import Protocol

from google import genai as genai_sdk
from openai import AsyncOpenAI

from travelhelper.app.config import Settings, secret_value

logger = logging.getLogger(__name__)

# Generated replies longer than this are truncated
MAX_RESPONSE_CHARS = 20000


class TextGenerator(Protocol):
    """Protocol for generative text implementations."""

    model: str

    async def generate(self, prompt: str) -> str:
        """Generate text for a prompt.

        Args:
            prompt: Fully rendered prompt

        Returns:
            Raw model output (no structure guaranteed)
        """
        ...


def _clip(text: str) -> str:
    if len(text) > MAX_RESPONSE_CHARS:
        logger.warning(
            f"Generated text unexpectedly large ({len(text)} chars), "
            f"truncating to {MAX_RESPONSE_CHARS}"
        )
        return text[:MAX_RESPONSE_CHARS]
    return text


class GeminiTextGenerator:
    """Gemini-backed generator using the google-genai SDK."""

    def __init__(self, api_key: str, model: str = "gemini-1.5-flash", timeout_ms: int = 30000):
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key
            model: Model name
            timeout_ms: Per-request HTTP timeout in milliseconds
        """
        self._client = genai_sdk.Client(api_key=api_key, http_options={"timeout": timeout_ms})
        self.model = model

    async def generate(self, prompt: str) -> str:
        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
        )
        return _clip(response.text or "")


class OpenAITextGenerator:
    """OpenAI-backed generator using chat completions."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout_ms: int = 30000):
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout_ms / 1000)
        self.model = model

    async def generate(self, prompt: str) -> str:
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.7,
        )
        return _clip(response.choices[0].message.content or "")


def get_text_generator(settings: Settings) -> TextGenerator | None:
    """Factory for the configured generator.

    Returns:
        A generator for ``settings.llm_provider``, or None when its API key is missing
    """
    if settings.llm_provider == "openai":
        api_key = secret_value(settings.openai_api_key)
        if api_key:
            logger.info("Using OpenAI for generative text")
            return OpenAITextGenerator(
                api_key=api_key, model=settings.openai_model, timeout_ms=settings.llm_timeout_ms
            )
    else:
        api_key = secret_value(settings.gemini_api_key)
        if api_key:
            logger.info("Using Gemini for generative text")
            return GeminiTextGenerator(
                api_key=api_key, model=settings.gemini_model, timeout_ms=settings.llm_timeout_ms
            )

    logger.warning(
        f"No API key configured for {settings.llm_provider}, generative text will use fallbacks"
    )
    return None
