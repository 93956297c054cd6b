"""
Unit tests for competitor industry classification.
"""

import json

import pytest

from competitor_monitor.components.industry_detector import (
    CLASSIFICATION_MAX_TOKENS,
    IndustryDetector,
    build_classification_prompt,
    get_industry_hint_from_url,
)
from competitor_monitor.components.llm_client import LLMResponse
from competitor_monitor.errors import LLMUnavailableError
from competitor_monitor.models.industry import Industry


def classification(industry, confidence=0.9, reasoning="Menu with burgers"):
    content = json.dumps(
        {"industry": industry, "confidence": confidence, "reasoning": reasoning}
    )
    return LLMResponse(content=content, provider="local", model="llama3", response_time=0.2)


class TestUrlHints:
    """Test cases for URL keyword hints."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://burgerbarn.example.com", Industry.RESTAURANT_FOOD),
            ("https://www.ubereats.com/store/x", Industry.RESTAURANT_FOOD),
            ("https://gadget-shop.example.com", Industry.RETAIL_ECOMMERCE),
            ("https://www.walgreens.com", Industry.HEALTHCARE_PHARMACY),
            ("https://smith-legal.example.com", Industry.PROFESSIONAL_SERVICES),
            ("https://example.com", None),
        ],
    )
    def test_hints(self, url, expected):
        assert get_industry_hint_from_url(url) is expected

    def test_prompt_includes_preview_and_industries(self):
        prompt = build_classification_prompt("https://example.com", "<h1>Hi</h1>" * 1000)

        assert "URL: https://example.com" in prompt
        assert "Website Content Preview:" in prompt
        assert "- retail_ecommerce:" in prompt
        assert "Based on the URL and content" in prompt

    def test_prompt_without_content(self):
        prompt = build_classification_prompt("https://example.com")

        assert "Website Content Preview" not in prompt
        assert "Based on the URL," in prompt


class TestIndustryDetector:
    """Test cases for IndustryDetector."""

    @pytest.mark.asyncio
    async def test_url_match_with_business_skips_llm(self, mock_llm_router):
        detector = IndustryDetector(mock_llm_router)

        result = await detector.classify_industry(
            "https://pizza.example.com", business_industry="restaurant_food"
        )

        assert result.label == "restaurant_food"
        assert result.confidence == 0.85
        assert result.matches_business_industry is True
        mock_llm_router.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_llm_classification(self, mock_llm_router):
        mock_llm_router.complete.return_value = classification("retail_ecommerce", 0.8)
        detector = IndustryDetector(mock_llm_router)

        result = await detector.classify_industry(
            "https://example.com", "<p>Add to cart</p>", business_industry="restaurant_food"
        )

        assert result.label == "retail_ecommerce"
        assert result.confidence == 0.8
        assert result.matches_business_industry is False
        assert mock_llm_router.complete.await_args.kwargs["max_tokens"] == CLASSIFICATION_MAX_TOKENS

    @pytest.mark.asyncio
    async def test_fenced_answer_and_bad_confidence(self, mock_llm_router):
        mock_llm_router.complete.return_value = LLMResponse(
            content='```json\n{"industry": "professional_services", "confidence": 7}\n```',
            provider="local",
            model="llama3",
            response_time=0.1,
        )

        result = await IndustryDetector(mock_llm_router).classify_industry("https://example.com")

        assert result.label == "professional_services"
        assert result.confidence == 0.5
        assert result.reasoning == "AI classification"

    @pytest.mark.asyncio
    async def test_unknown_label_falls_back_to_url_hint(self, mock_llm_router):
        mock_llm_router.complete.return_value = classification("aerospace")

        result = await IndustryDetector(mock_llm_router).classify_industry(
            "https://gadget-shop.example.com"
        )

        assert result.label == "retail_ecommerce"
        assert result.confidence == 0.65

    @pytest.mark.asyncio
    async def test_llm_unavailable_uses_business_industry(self, mock_llm_router):
        mock_llm_router.complete.side_effect = LLMUnavailableError("All LLM providers failed")

        result = await IndustryDetector(mock_llm_router).classify_industry(
            "https://example.com", business_industry="healthcare_pharmacy"
        )

        assert result.label == "healthcare_pharmacy"
        assert result.confidence == 0.5
        assert result.matches_business_industry is True

    @pytest.mark.asyncio
    async def test_everything_failed_uses_default(self, mock_llm_router):
        mock_llm_router.complete.side_effect = LLMUnavailableError("All LLM providers failed")

        result = await IndustryDetector(mock_llm_router).classify_industry("https://example.com")

        assert result.label == "restaurant_food"
        assert result.confidence == 0.3
        result.validate()
