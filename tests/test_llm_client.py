"""Tests for the LLM client (providers mocked)."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError

from brand_audit.integrations.llm_client import LLMClient, strip_code_fences
from brand_audit.modules.reporting.ai_tips import AITipsResponse


@pytest.fixture()
def no_env_keys(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)


def _tips_payload(count=4):
    tip = {
        "category": "seo_onpage",
        "priority": "medium",
        "title": "Lengthen titles",
        "description": "Several titles are too short.",
        "impact": "Better CTR.",
        "implementation": "Rewrite the titles.",
        "estimated_effort": "quick_win",
    }
    return {"tips": [tip] * count, "summary_insight": "Solid basics, weak AI signals."}


class TestStripCodeFences:

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_text_untouched(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestProviderSelection:

    @pytest.mark.asyncio
    async def test_no_provider_configured(self, no_env_keys):
        client = LLMClient()
        assert client.is_configured is False
        with pytest.raises(RuntimeError, match="No LLM provider"):
            await client.generate_text("hello")

    @pytest.mark.asyncio
    async def test_falls_back_to_gemini(self, no_env_keys):
        with patch("brand_audit.integrations.llm_client.genai.configure"):
            client = LLMClient(openai_api_key="sk-test", gemini_api_key="gm-test")
        with patch.object(client, "_call_openai", AsyncMock(side_effect=RuntimeError("down"))), \
             patch.object(client, "_call_gemini", AsyncMock(return_value="from gemini")) as gemini:
            assert await client.generate_text("hello") == "from gemini"
        gemini.assert_awaited_once()

    def test_budget_guard(self, no_env_keys):
        client = LLMClient(max_monthly_budget=1.0)
        client.usage.monthly_cost_usd = 1.5
        with pytest.raises(RuntimeError, match="budget"):
            client._check_budget()

    def test_usage_accounting(self, no_env_keys):
        client = LLMClient()
        cost = client.usage.add_usage(1000, 1000)
        assert cost == pytest.approx(0.00075)
        assert client.get_usage_summary()["total_requests"] == 1


class TestStructuredGeneration:

    @pytest.mark.asyncio
    async def test_validates_against_schema(self, no_env_keys):
        client = LLMClient()
        raw = "```json\n" + json.dumps(_tips_payload()) + "\n```"
        with patch.object(client, "generate_text", AsyncMock(return_value=raw)) as gen:
            result = await client.generate_structured("prompt", AITipsResponse, temperature=0.3)

        assert isinstance(result, AITipsResponse)
        assert len(result.tips) == 4
        kwargs = gen.call_args.kwargs
        assert kwargs["temperature"] == 0.3
        assert kwargs["json_mode"] is True
        assert "summary_insight" in kwargs["prompt"]

    @pytest.mark.asyncio
    async def test_too_few_tips_rejected(self, no_env_keys):
        client = LLMClient()
        raw = json.dumps(_tips_payload(count=3))
        with patch.object(client, "generate_text", AsyncMock(return_value=raw)):
            with pytest.raises(ValidationError):
                await client.generate_structured("prompt", AITipsResponse)

    @pytest.mark.asyncio
    async def test_invalid_json_rejected(self, no_env_keys):
        client = LLMClient()
        with patch.object(client, "generate_text", AsyncMock(return_value="not json")):
            with pytest.raises(ValueError, match="invalid JSON"):
                await client.generate_structured("prompt", AITipsResponse)
