"""LLM client used to phrase SEO recommendations (OpenAI primary, Gemini fallback)."""

import asyncio
import hashlib
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Optional

import google.generativeai as genai
import openai

from seo_analyzer.exceptions import RecommendationProviderError
from seo_analyzer.utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


@dataclass
class UsageStats:
    """Token usage across the lifetime of one client."""
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_requests: int = 0
    failed_requests: int = 0

    def add_usage(self, input_tokens: int, output_tokens: int) -> None:
        self.total_input_tokens += input_tokens
        self.total_output_tokens += output_tokens
        self.total_requests += 1


class ResponseCache:
    """In-memory TTL cache of generated advice, keyed by model and prompt.

    Only generated text is cached; fetched pages never are.
    """

    def __init__(self, max_size: int = 1000, ttl_hours: float = 24):
        self._cache: dict[str, tuple[float, str]] = {}
        self._max_size = max_size
        self._ttl_seconds = ttl_hours * 3600

    @staticmethod
    def _make_key(prompt: str, model: str, **kwargs: Any) -> str:
        raw = f"{model}:{prompt}:{json.dumps(kwargs, sort_keys=True)}"
        return hashlib.sha256(raw.encode()).hexdigest()

    def get(self, prompt: str, model: str, **kwargs: Any) -> Optional[str]:
        key = self._make_key(prompt, model, **kwargs)
        entry = self._cache.get(key)
        if entry is None:
            return None
        ts, value = entry
        if time.time() - ts >= self._ttl_seconds:
            del self._cache[key]
            return None
        return value

    def set(self, prompt: str, model: str, value: str, **kwargs: Any) -> None:
        if len(self._cache) >= self._max_size:
            oldest_key = min(self._cache, key=lambda k: self._cache[k][0])
            del self._cache[oldest_key]
        self._cache[self._make_key(prompt, model, **kwargs)] = (time.time(), value)

    def __len__(self) -> int:
        return len(self._cache)


class LLMClient:
    """Async text-generation client with OpenAI primary and Gemini fallback.

    Usage::

        client = LLMClient()
        text = await client.generate_text("Rewrite this title for 'blue widgets'")

    Raises :class:`RecommendationProviderError` when no provider is configured
    or every configured provider fails.
    """

    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        gemini_api_key: Optional[str] = None,
        openai_model: str = "gpt-4o-mini",
        gemini_model: str = "gemini-2.0-flash",
        max_tokens: int = 150,
        temperature: float = 0.7,
        timeout: float = 30,
        openai_rpm: int = 60,
        gemini_rpm: int = 15,
        cache_enabled: bool = True,
        cache_ttl_hours: float = 24,
        cache_max_size: int = 1000,
    ):
        self._openai_key = openai_api_key or os.getenv("OPENAI_API_KEY", "")
        self._gemini_key = gemini_api_key or os.getenv("GEMINI_API_KEY", "")

        self._openai_model = openai_model
        self._gemini_model = gemini_model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout

        self._openai_client: Optional[openai.AsyncOpenAI] = None
        if self._openai_key:
            self._openai_client = openai.AsyncOpenAI(
                api_key=self._openai_key, timeout=timeout
            )
        if self._gemini_key:
            genai.configure(api_key=self._gemini_key)

        self._openai_limiter = RateLimiter(openai_rpm, name="openai")
        self._gemini_limiter = RateLimiter(gemini_rpm, name="gemini")

        self._cache_enabled = cache_enabled
        self._cache = ResponseCache(max_size=cache_max_size, ttl_hours=cache_ttl_hours)
        self.usage = UsageStats()

    @property
    def is_configured(self) -> bool:
        return bool(self._openai_client or self._gemini_key)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str = "You are a helpful SEO assistant.",
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        use_cache: bool = True,
    ) -> str:
        """Generate text, falling back to Gemini when OpenAI fails."""
        max_tokens = max_tokens or self._max_tokens
        temperature = temperature if temperature is not None else self._temperature
        use_cache = use_cache and self._cache_enabled

        if use_cache:
            cached = self._cache.get(prompt, "any", system=system_prompt, temp=temperature)
            if cached is not None:
                logger.debug("Cache hit for prompt (len=%d)", len(prompt))
                return cached

        if not self.is_configured:
            raise RecommendationProviderError(
                "No LLM provider configured. Set OPENAI_API_KEY or GEMINI_API_KEY."
            )

        errors: list[str] = []
        calls = []
        if self._openai_client:
            calls.append(("OpenAI", self._call_openai))
        if self._gemini_key:
            calls.append(("Gemini", self._call_gemini))

        for name, call in calls:
            try:
                result = await asyncio.wait_for(
                    call(prompt, system_prompt, max_tokens, temperature),
                    timeout=self._timeout,
                )
            except Exception as exc:
                self.usage.failed_requests += 1
                logger.warning("%s call failed: %s", name, exc)
                errors.append(f"{name}: {exc}")
                continue
            if use_cache:
                self._cache.set(prompt, "any", result, system=system_prompt, temp=temperature)
            return result

        raise RecommendationProviderError("; ".join(errors))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _call_openai(
        self, prompt: str, system_prompt: str,
        max_tokens: int, temperature: float
    ) -> str:
        await self._openai_limiter.acquire()
        response = await self._openai_client.chat.completions.create(
            model=self._openai_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        content = response.choices[0].message.content or ""
        usage = response.usage
        if usage:
            self.usage.add_usage(usage.prompt_tokens, usage.completion_tokens)
            logger.info(
                "OpenAI call: %d in / %d out tokens",
                usage.prompt_tokens, usage.completion_tokens,
            )
        return content.strip()

    async def _call_gemini(
        self, prompt: str, system_prompt: str,
        max_tokens: int, temperature: float
    ) -> str:
        await self._gemini_limiter.acquire()
        model = genai.GenerativeModel(
            model_name=self._gemini_model,
            system_instruction=system_prompt,
            generation_config=genai.types.GenerationConfig(
                max_output_tokens=max_tokens,
                temperature=temperature,
            ),
        )
        # The Gemini SDK call is synchronous
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(None, model.generate_content, prompt)
        text = response.text or ""
        self.usage.total_requests += 1
        logger.info("Gemini call completed (len=%d)", len(text))
        return text.strip()

    def get_usage_summary(self) -> dict[str, Any]:
        """Return a summary of token usage."""
        return {
            "total_requests": self.usage.total_requests,
            "failed_requests": self.usage.failed_requests,
            "total_input_tokens": self.usage.total_input_tokens,
            "total_output_tokens": self.usage.total_output_tokens,
            "cached_responses": len(self._cache),
        }
