"""Tests for the LLM client helpers that need no network access."""

from unittest.mock import AsyncMock

import pytest

from seo_analyzer.integrations.llm_client import (
    LLMClient,
    PromptCache,
    TokenUsage,
    extract_json_object,
)


@pytest.fixture()
def offline_client(monkeypatch):
    """LLMClient with no provider keys in the environment."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    return LLMClient()


def _fallback_client(monkeypatch, openai_answer, gemini_answer):
    """Client with both providers configured and their calls mocked."""
    monkeypatch.setattr(LLMClient, "_call_openai", openai_answer)
    monkeypatch.setattr(LLMClient, "_call_gemini", gemini_answer)
    monkeypatch.setattr("seo_analyzer.integrations.llm_client.genai.configure", lambda **kw: None)
    return LLMClient(openai_api_key="sk-test", gemini_api_key="gm-test")


class TestExtractJsonObject:

    def test_plain_object(self):
        assert extract_json_object('{"optimizedTitle": "T"}') == {"optimizedTitle": "T"}

    def test_markdown_fence_and_preamble(self):
        text = 'Sure! Here it is:\n```json\n{"suggestions": ["a", "b"]}\n```'
        assert extract_json_object(text) == {"suggestions": ["a", "b"]}

    @pytest.mark.parametrize("text", ["", "no json here", "} {", '{"a": }'])
    def test_invalid_raises_value_error(self, text):
        with pytest.raises(ValueError):
            extract_json_object(text)


class TestPromptCache:

    def test_key_depends_on_settings(self):
        assert PromptCache.key("p", temperature=0.7) != PromptCache.key("p", temperature=0.2)
        assert PromptCache.key("p", temperature=0.7) == PromptCache.key("p", temperature=0.7)

    def test_put_and_get(self):
        cache = PromptCache()
        cache.put("k", "answer")
        assert cache.get("k") == "answer"
        assert cache.get("other") is None

    def test_evicts_least_recently_used(self):
        cache = PromptCache(max_size=2)
        cache.put("a", "1")
        cache.put("b", "2")
        cache.get("a")
        cache.put("c", "3")
        assert len(cache) == 2
        assert cache.get("b") is None
        assert cache.get("a") == "1"

    def test_zero_ttl_expires_immediately(self):
        cache = PromptCache(ttl_hours=0)
        cache.put("k", "v")
        assert cache.get("k") is None


class TestTokenUsage:

    def test_record_accumulates(self):
        usage = TokenUsage()
        usage.record("openai", "gpt-4o-mini", 1000, 1000)
        usage.record("gemini", "gemini-2.0-flash", 500, 0)
        assert usage.total_requests == 2
        assert usage.requests == {"openai": 1, "gemini": 1}
        assert usage.input_tokens == 1500
        assert usage.cost_usd == pytest.approx(0.00075)


class TestLLMClient:

    def test_not_configured_without_keys(self, offline_client):
        assert not offline_client.is_configured
        assert offline_client.providers == []

    @pytest.mark.asyncio
    async def test_generate_without_provider_raises(self, offline_client):
        with pytest.raises(RuntimeError):
            await offline_client.generate_text("hello")

    @pytest.mark.asyncio
    async def test_generate_json_decodes_response(self, offline_client):
        offline_client.generate_text = AsyncMock(return_value='```json\n{"x": 1}\n```')
        assert await offline_client.generate_json("prompt") == {"x": 1}
        assert offline_client.generate_text.await_args.kwargs["json_mode"] is True

    @pytest.mark.asyncio
    async def test_generate_json_invalid_raises_value_error(self, offline_client):
        offline_client.generate_text = AsyncMock(return_value="I cannot help with that.")
        with pytest.raises(ValueError):
            await offline_client.generate_json("prompt")

    @pytest.mark.asyncio
    async def test_falls_back_to_gemini(self, monkeypatch):
        openai_call = AsyncMock(side_effect=RuntimeError("rate limited"))
        gemini_call = AsyncMock(return_value="from gemini")
        client = _fallback_client(monkeypatch, openai_call, gemini_call)
        assert client.providers == ["openai", "gemini"]
        assert await client.generate_text("hello") == "from gemini"
        openai_call.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_all_providers_fail(self, monkeypatch):
        client = _fallback_client(
            monkeypatch,
            AsyncMock(side_effect=RuntimeError("openai down")),
            AsyncMock(side_effect=RuntimeError("gemini down")),
        )
        with pytest.raises(RuntimeError, match="gemini down"):
            await client.generate_text("hello")

    @pytest.mark.asyncio
    async def test_repeated_prompt_served_from_cache(self, monkeypatch):
        openai_call = AsyncMock(return_value="answer")
        client = _fallback_client(monkeypatch, openai_call, AsyncMock())
        assert await client.generate_text("same prompt") == "answer"
        assert await client.generate_text("same prompt") == "answer"
        openai_call.assert_awaited_once()
        assert client.get_usage_summary()["cache_hits"] == 1

    def test_usage_summary_keys(self, offline_client):
        summary = offline_client.get_usage_summary()
        assert summary["total_requests"] == 0
        assert summary["total_cost_usd"] == 0
