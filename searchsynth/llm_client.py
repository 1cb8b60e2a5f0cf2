"""Text-generation capability backed by OpenRouter's OpenAI-compatible API."""
from __future__ import annotations

import time
from typing import Any, Protocol

from searchsynth.config import settings
from searchsynth.services import logger as log_service


class TextGenerator(Protocol):
    async def generate(self, prompt: str, *, caller: str = "generator") -> str:
        ...


class OpenRouterTextGenerator:
    """Single-prompt text generation through the OpenAI SDK."""

    def __init__(self, openai_client: Any, model: str, *, max_tokens: int = 4096):
        self._client = openai_client
        self.model = model
        self.max_tokens = max_tokens

    @staticmethod
    def _temperature_for_model(model: str) -> float:
        # Some OpenAI GPT-5-compatible gateways reject low temperatures.
        lowered = (model or "").lower()
        if "gpt-5" in lowered:
            return 1
        return 0.2

    @staticmethod
    def _extract_text(response: Any) -> str:
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        message = getattr(choices[0], "message", None)
        text = getattr(message, "content", None)
        return text if isinstance(text, str) else ""

    async def generate(self, prompt: str, *, caller: str = "generator") -> str:
        t0 = time.monotonic()
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.max_tokens,
                temperature=self._temperature_for_model(self.model),
            )
        except Exception as e:
            log_service.log_llm_call(
                model=self.model,
                caller=caller,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(e),
            )
            raise

        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=self.model,
            caller=caller,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return self._extract_text(response)


def get_model() -> str:
    """Get the active OpenRouter model id."""
    return settings.generation_model


def get_client() -> OpenRouterTextGenerator:
    """Build a generator over the OpenAI-compatible SDK."""
    from openai import AsyncOpenAI

    base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    openai_client = AsyncOpenAI(
        api_key=settings.openrouter_api_key,
        base_url=base_url,
        timeout=settings.llm_timeout_seconds,
        max_retries=0,
    )
    return OpenRouterTextGenerator(openai_client, get_model())


_client: OpenRouterTextGenerator | None = None


def client() -> OpenRouterTextGenerator:
    """Get or create the text generator."""
    global _client
    if _client is None:
        _client = get_client()
    return _client
