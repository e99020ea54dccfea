"""LLM client for SEO suggestions: OpenAI primary, Google Gemini fallback.

Providers are tried in order (OpenAI, then Gemini) until one answers.
Answers are cached per prompt, each provider has its own requests-per-minute
window, and token usage is tallied per provider for the end-of-run summary.
"""

import asyncio
import hashlib
import json
import logging
import os
import time
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

import google.generativeai as genai
import openai

logger = logging.getLogger(__name__)

# USD per 1K tokens (input, output); unknown models are counted at zero cost.
_PRICING: dict[str, tuple[float, float]] = {
    "gpt-4o-mini": (0.00015, 0.0006),
    "gpt-4o": (0.0025, 0.01),
}


def extract_json_object(text: str) -> Any:
    """Decode the JSON object embedded in *text*.

    Everything before the first ``{`` and after the last ``}`` is dropped,
    which removes markdown fences and chatty preambles. Raises ``ValueError``
    when no object can be decoded.
    """
    start = text.find("{")
    if start == -1:
        raise ValueError("No JSON object start found in LLM response")
    end = text.rfind("}")
    if end < start:
        raise ValueError("No JSON object end found in LLM response")
    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError as exc:
        raise ValueError(f"LLM returned invalid JSON: {exc}") from exc


@dataclass
class TokenUsage:
    """Requests, tokens and estimated cost, per provider."""
    requests: dict[str, int] = field(default_factory=dict)
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    cache_hits: int = 0

    def record(self, provider: str, model: str, input_tokens: int = 0, output_tokens: int = 0) -> float:
        """Count one answered request; return its estimated cost."""
        in_price, out_price = _PRICING.get(model, (0.0, 0.0))
        cost = input_tokens / 1000 * in_price + output_tokens / 1000 * out_price
        self.requests[provider] = self.requests.get(provider, 0) + 1
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens
        self.cost_usd += cost
        return cost

    @property
    def total_requests(self) -> int:
        return sum(self.requests.values())


class PromptCache:
    """LRU cache of LLM answers with a time-to-live.

    Pages of one site often share titles and descriptions, so identical
    prompts recur within a run.
    """

    def __init__(self, max_size: int = 1000, ttl_hours: float = 24):
        self._entries: "OrderedDict[str, tuple[float, str]]" = OrderedDict()
        self._max_size = max_size
        self._ttl = ttl_hours * 3600

    @staticmethod
    def key(prompt: str, **settings: Any) -> str:
        raw = json.dumps({"prompt": prompt, **settings}, sort_keys=True, default=str)
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, answer = entry
        if time.monotonic() - stored_at >= self._ttl:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return answer

    def put(self, key: str, answer: str) -> None:
        self._entries[key] = (time.monotonic(), answer)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_size:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)


class MinuteWindow:
    """At most *rpm* acquisitions in any sliding 60-second window."""

    def __init__(self, rpm: int):
        self._rpm = max(1, rpm)
        self._stamps: deque[float] = deque()
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        async with self._lock:
            now = time.monotonic()
            while self._stamps and now - self._stamps[0] >= 60.0:
                self._stamps.popleft()
            if len(self._stamps) >= self._rpm:
                delay = 60.0 - (now - self._stamps[0])
                logger.debug("Rate limit reached; waiting %.1fs", delay)
                await asyncio.sleep(delay)
                self._stamps.popleft()
            self._stamps.append(time.monotonic())


_Call = Callable[[str, str, int, float, bool], Awaitable[str]]


class LLMClient:
    """Async text/JSON generation over OpenAI with a Gemini fallback.

    Usage::

        client = LLMClient()
        data = await client.generate_json('Return {"optimizedTitle": "..."}')
    """

    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        gemini_api_key: Optional[str] = None,
        openai_model: str = "gpt-4o-mini",
        gemini_model: str = "gemini-2.0-flash",
        max_tokens: int = 2048,
        temperature: float = 0.7,
        timeout: int = 60,
        openai_rpm: int = 60,
        gemini_rpm: int = 15,
        cache_enabled: bool = True,
        cache_ttl_hours: float = 24,
        cache_max_size: int = 1000,
    ):
        openai_key = openai_api_key or os.getenv("OPENAI_API_KEY", "")
        gemini_key = gemini_api_key or os.getenv("GEMINI_API_KEY", "")
        self._openai_model = openai_model
        self._gemini_model = gemini_model
        self._max_tokens = max_tokens
        self._temperature = temperature

        # (name, model, call, rate window) in fallback order
        self._providers: list[tuple[str, str, _Call, MinuteWindow]] = []
        if openai_key:
            self._openai = openai.AsyncOpenAI(api_key=openai_key, timeout=timeout)
            self._providers.append(("openai", openai_model, self._call_openai, MinuteWindow(openai_rpm)))
        if gemini_key:
            genai.configure(api_key=gemini_key)
            self._providers.append(("gemini", gemini_model, self._call_gemini, MinuteWindow(gemini_rpm)))

        self._cache = PromptCache(cache_max_size, cache_ttl_hours) if cache_enabled else None
        self.usage = TokenUsage()

    @property
    def is_configured(self) -> bool:
        return bool(self._providers)

    @property
    def providers(self) -> list[str]:
        return [name for name, _, _, _ in self._providers]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str = "You are a helpful SEO assistant.",
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False,
        use_cache: bool = True,
    ) -> str:
        """Answer *prompt* with the first provider that succeeds.

        Raises ``RuntimeError`` when no provider is configured and re-raises
        the last provider error when all of them fail.
        """
        if not self._providers:
            raise RuntimeError("No LLM provider configured. Set OPENAI_API_KEY or GEMINI_API_KEY.")
        max_tokens = max_tokens or self._max_tokens
        temperature = self._temperature if temperature is None else temperature

        cache_key = None
        if use_cache and self._cache is not None:
            cache_key = PromptCache.key(
                prompt, system=system_prompt, temperature=temperature,
                max_tokens=max_tokens, json=json_mode,
            )
            cached = self._cache.get(cache_key)
            if cached is not None:
                self.usage.cache_hits += 1
                return cached

        last_error: Optional[Exception] = None
        for name, model, call, window in self._providers:
            await window.acquire()
            try:
                answer = await call(prompt, system_prompt, max_tokens, temperature, json_mode)
            except Exception as exc:
                logger.warning("%s request failed (%s): %s", name, model, exc)
                last_error = exc
                continue
            if cache_key is not None:
                self._cache.put(cache_key, answer)
            return answer
        raise last_error

    async def generate_json(
        self,
        prompt: str,
        system_prompt: str = "You are an SEO expert. Respond ONLY with a valid JSON object.",
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Any:
        """Like :meth:`generate_text` in JSON mode, decoded.

        Raises ``ValueError`` when the answer holds no decodable object.
        """
        raw = await self.generate_text(
            prompt,
            system_prompt=system_prompt,
            max_tokens=max_tokens,
            temperature=temperature,
            json_mode=True,
        )
        try:
            return extract_json_object(raw)
        except ValueError:
            logger.debug("Undecodable LLM answer: %s", raw[:500])
            raise

    def get_usage_summary(self) -> dict[str, Any]:
        return {
            "total_requests": self.usage.total_requests,
            "requests_by_provider": dict(self.usage.requests),
            "total_input_tokens": self.usage.input_tokens,
            "total_output_tokens": self.usage.output_tokens,
            "total_cost_usd": round(self.usage.cost_usd, 6),
            "cache_hits": self.usage.cache_hits,
        }

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    async def _call_openai(
        self, prompt: str, system_prompt: str, max_tokens: int, temperature: float, json_mode: bool,
    ) -> str:
        extra: dict[str, Any] = {"response_format": {"type": "json_object"}} if json_mode else {}
        response = await self._openai.chat.completions.create(
            model=self._openai_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
            **extra,
        )
        usage = response.usage
        cost = self.usage.record(
            "openai", self._openai_model,
            usage.prompt_tokens if usage else 0,
            usage.completion_tokens if usage else 0,
        )
        logger.debug("OpenAI answered ($%.6f)", cost)
        return (response.choices[0].message.content or "").strip()

    async def _call_gemini(
        self, prompt: str, system_prompt: str, max_tokens: int, temperature: float, json_mode: bool,
    ) -> str:
        generation_config = genai.types.GenerationConfig(
            max_output_tokens=max_tokens,
            temperature=temperature,
            response_mime_type="application/json" if json_mode else "text/plain",
        )
        model = genai.GenerativeModel(
            model_name=self._gemini_model,
            system_instruction=system_prompt,
            generation_config=generation_config,
        )
        # google-generativeai's generate_content blocks
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(None, model.generate_content, prompt)
        metadata = getattr(response, "usage_metadata", None)
        self.usage.record(
            "gemini", self._gemini_model,
            getattr(metadata, "prompt_token_count", 0) or 0,
            getattr(metadata, "candidates_token_count", 0) or 0,
        )
        return (response.text or "").strip()
