"""
Industry classification for competitor websites.

A quick URL pattern match runs first; when it agrees with the owner's
business industry no LLM call is made. Otherwise the LLM classifies the
site from its URL and a content preview, with URL and business-industry
fallbacks when it cannot.
"""

import json
import logging
import re
from typing import Optional

from ..models.industry import (
    DEFAULT_INDUSTRY,
    INDUSTRY_DESCRIPTIONS,
    Industry,
    IndustryDetectionResult,
)
from .extraction_engine import strip_markdown_fences
from .llm_client import LLMRouter

logger = logging.getLogger(__name__)

CONTENT_PREVIEW_CHARS = 3000
CLASSIFICATION_MAX_TOKENS = 150
CLASSIFICATION_TEMPERATURE = 0.1

SYSTEM_PROMPT = (
    "You are an expert at classifying businesses into industry categories. "
    "Return only valid JSON."
)

# Ordered: the first industry with a matching keyword wins
URL_PATTERNS = [
    (
        Industry.RESTAURANT_FOOD,
        ["restaurant", "menu", "food", "pizza", "burger", "cafe", "dining",
         "delivery", "eats", "kitchen"],
        re.compile(
            r"\b(doordash|ubereats|grubhub|postmates|domino|chipotle|subway|"
            r"mcdon|wendys|tacobell)\b"
        ),
    ),
    (
        Industry.RETAIL_ECOMMERCE,
        ["shop", "store", "buy", "cart", "retail", "market"],
        re.compile(r"\b(amazon|ebay|etsy|walmart|target)\b"),
    ),
    (
        Industry.HEALTHCARE_PHARMACY,
        ["health", "medical", "pharmacy", "clinic", "doctor", "hospital"],
        re.compile(r"\b(cvs|walgreens|rite)\b"),
    ),
    (
        Industry.PROFESSIONAL_SERVICES,
        ["consulting", "law", "legal", "accounting", "attorney", "cpa", "advisory"],
        None,
    ),
]


def get_industry_hint_from_url(url: str) -> Optional[Industry]:
    """Guess an industry from keywords in the URL."""
    lower_url = url.lower()

    for industry, keywords, brands in URL_PATTERNS:
        if any(keyword in lower_url for keyword in keywords):
            return industry
        if brands is not None and brands.search(lower_url):
            return industry

    return None


def build_classification_prompt(url: str, html: Optional[str] = None) -> str:
    industries = "\n".join(
        f"- {industry.value}: {description}"
        for industry, description in INDUSTRY_DESCRIPTIONS.items()
    )
    has_content = bool(html)
    preview = (
        f"\nWebsite Content Preview:\n{html[:CONTENT_PREVIEW_CHARS]}\n" if has_content else ""
    )
    basis = "URL and content" if has_content else "URL"

    return (
        "Analyze this website and determine its industry category.\n\n"
        f"URL: {url}\n"
        f"{preview}\n"
        f"Available Industries:\n{industries}\n\n"
        f"Based on the {basis}, determine which industry this website belongs to.\n\n"
        "Return ONLY a valid JSON object (no markdown, no explanation) with this "
        "exact structure:\n"
        "{\n"
        '  "industry": "exact_industry_key_from_list",\n'
        '  "confidence": 0.95,\n'
        '  "reasoning": "brief explanation (max 100 chars)"\n'
        "}\n\n"
        "Rules:\n"
        "- Use exact industry keys from the list above\n"
        "- Confidence should be 0.0 to 1.0\n"
        "- Be conservative with confidence if unsure\n"
        "- Reasoning should be concise and specific"
    )


class IndustryDetector:
    """Classifies competitor websites with URL hints and an LLM."""

    def __init__(self, llm_router: LLMRouter):
        self.llm_router = llm_router

    async def classify_industry(
        self,
        url: str,
        html: Optional[str] = None,
        business_industry: Optional[str] = None,
    ) -> IndustryDetectionResult:
        """
        Classify a website into one of the supported industries.

        Args:
            url: Website URL
            html: Rendered page markup, if already fetched
            business_industry: The owner's own industry label

        Returns:
            Detection result; never raises
        """
        url_hint = get_industry_hint_from_url(url)
        business = Industry.from_value(business_industry)

        if url_hint is not None and url_hint == business:
            return IndustryDetectionResult(
                label=url_hint.value,
                confidence=0.85,
                reasoning="URL patterns match your business industry",
                matches_business_industry=True,
            )

        try:
            return await self._classify_with_llm(url, html, business)
        except Exception as e:
            logger.error(f"Industry detection failed: {e}")

        if url_hint is not None:
            return IndustryDetectionResult(
                label=url_hint.value,
                confidence=0.65,
                reasoning="URL pattern matching (AI detection failed)",
                matches_business_industry=business == url_hint,
            )

        if business is not None:
            return IndustryDetectionResult(
                label=business.value,
                confidence=0.5,
                reasoning="Using your business industry (detection unavailable)",
                matches_business_industry=True,
            )

        logger.warning("All detection methods failed, using default industry")
        return IndustryDetectionResult(
            label=DEFAULT_INDUSTRY.value,
            confidence=0.3,
            reasoning="Default industry (detection unavailable)",
            matches_business_industry=False,
        )

    async def _classify_with_llm(
        self, url: str, html: Optional[str], business: Optional[Industry]
    ) -> IndustryDetectionResult:
        response = await self.llm_router.complete(
            build_classification_prompt(url, html),
            max_tokens=CLASSIFICATION_MAX_TOKENS,
            temperature=CLASSIFICATION_TEMPERATURE,
            system_prompt=SYSTEM_PROMPT,
        )

        result = json.loads(strip_markdown_fences(response.content))
        if not isinstance(result, dict):
            raise ValueError("Classification answer must be a JSON object")

        detected = Industry.from_value(result.get("industry"))
        if detected is None:
            raise ValueError(f"Invalid industry detected: {result.get('industry')}")

        try:
            confidence = float(result.get("confidence"))
        except (TypeError, ValueError):
            confidence = -1.0
        if not 0.0 <= confidence <= 1.0:
            logger.warning(
                f"Invalid confidence: {result.get('confidence')}, defaulting to 0.5"
            )
            confidence = 0.5

        matches = business == detected if business is not None else False
        if business is not None and not matches:
            logger.warning(
                f"Competitor {url} appears to be {detected.value} but the business "
                f"is {business.value}"
            )

        reasoning = result.get("reasoning") or "AI classification"
        logger.info(f"Industry detected: {detected.value} ({confidence}) - {reasoning}")

        return IndustryDetectionResult(
            label=detected.value,
            confidence=confidence,
            reasoning=str(reasoning),
            matches_business_industry=matches,
        )
