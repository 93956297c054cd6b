"""
Structured data extraction from rendered pages.

Extraction results are cached under both the raw content hash and the hash
of a normalized form of the page, so cosmetic re-renders of the same page
skip the LLM entirely. When the LLM is unavailable or returns unusable
output, a regex pass over the visible text provides a best-effort result.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.orm import sessionmaker

from ..db.repositories import ExtractionCacheRepository
from ..errors import CircuitOpenError, LLMUnavailableError
from ..models.config import ExtractionConfig
from ..models.extraction import ExtractedData, PriceEntry, Promotion
from ..utils.error_handling import (
    CircuitBreaker,
    ErrorSeverity,
    get_degradation_manager,
)
from ..utils.hashing import extract_text_from_html, hash_content, normalize_content
from .llm_client import LLMRouter
from .prompt_manager import PromptManager

logger = logging.getLogger(__name__)

COMPONENT_NAME = "extraction_engine"

_PRICE_PATTERN = re.compile(r"\$\d+\.?\d{0,2}|EUR\s*\d+\.?\d{0,2}", re.IGNORECASE)
_PROMOTION_PATTERN = re.compile(
    r"(off|discount|sale|free|save|coupon)[:\s]*([^.\n]{10,100})", re.IGNORECASE
)
_FENCE_PATTERN = re.compile(r"```(?:json)?\n?", re.IGNORECASE)


@dataclass
class ExtractionStats:
    """Counters for extraction paths taken since startup."""

    cache_hits: int = 0
    llm_extractions: int = 0
    fallback_extractions: int = 0
    cache_entries: int = 0


def strip_markdown_fences(text: str) -> str:
    """Remove markdown code fences around a JSON answer."""
    return _FENCE_PATTERN.sub("", text).strip()


def regex_fallback(text: str) -> ExtractedData:
    """Best-effort extraction of prices and promotions with regular expressions."""
    prices = [
        PriceEntry(item="unknown", price=match.group(0))
        for match in _PRICE_PATTERN.finditer(text)
    ]
    promotions = [
        Promotion(title="Promotion", description=match.group(0))
        for match in _PROMOTION_PATTERN.finditer(text)
    ]
    return ExtractedData(prices=prices, promotions=promotions, menu_items=[])


def parse_extraction_response(content: str) -> ExtractedData:
    """Parse an LLM answer into ExtractedData.

    Raises:
        ValueError: If the answer is empty, not JSON, or not the expected shape
    """
    cleaned = strip_markdown_fences(content or "")
    if not cleaned:
        raise ValueError("Empty response from LLM")

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ValueError(f"LLM returned invalid JSON: {e}") from e

    return ExtractedData.from_dict(payload)


class ExtractionEngine:
    """Cache-first LLM extraction with a regex fallback."""

    def __init__(
        self,
        session_factory: sessionmaker,
        llm_router: LLMRouter,
        prompt_manager: Optional[PromptManager] = None,
        config: Optional[ExtractionConfig] = None,
    ):
        self.session_factory = session_factory
        self.llm_router = llm_router
        self.config = config or ExtractionConfig()
        self.prompt_manager = prompt_manager or PromptManager(
            self.config.prompts_directory
        )
        self.degradation_manager = get_degradation_manager()
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=self.config.circuit_failure_threshold,
            recovery_timeout=self.config.circuit_recovery_seconds,
            expected_exception=LLMUnavailableError,
            name="llm_extraction",
        )
        self._guarded_complete = self.circuit_breaker(self.llm_router.complete)
        self.stats = ExtractionStats()

    async def extract(self, html: str, industry: Optional[str] = None) -> ExtractedData:
        """
        Extract structured data from page HTML.

        Args:
            html: Rendered page markup
            industry: Industry label used to pick the extraction prompt

        Returns:
            Extracted records; never raises for LLM or parse failures
        """
        content_hash = hash_content(html)
        normalized_hash = hash_content(normalize_content(html))

        cached = self._cache_get(content_hash)
        if cached is not None:
            self.stats.cache_hits += 1
            logger.debug(f"Extraction cache hit for hash {content_hash[:12]}")
            self._cache_put(normalized_hash, cached)
            return cached

        cached = self._cache_get(normalized_hash)
        if cached is not None:
            self.stats.cache_hits += 1
            logger.debug(f"Extraction cache hit for normalized hash {normalized_hash[:12]}")
            self._cache_put(content_hash, cached)
            return cached

        try:
            extracted = await self._extract_with_llm(html, industry)
        except CircuitOpenError as e:
            self.degradation_manager.degrade_component(
                COMPONENT_NAME,
                reason=str(e),
                fallback_behavior="regex extraction",
                severity=ErrorSeverity.MEDIUM,
            )
            return self._fallback(html)
        except (LLMUnavailableError, ValueError) as e:
            logger.error(f"LLM extraction failed: {e}")
            return self._fallback(html)

        if self.degradation_manager.is_degraded(COMPONENT_NAME):
            self.degradation_manager.restore_component(COMPONENT_NAME)

        self._cache_put(content_hash, extracted)
        self._cache_put(normalized_hash, extracted)

        self.stats.llm_extractions += 1
        logger.info(
            f"Extracted: {len(extracted.prices)} prices, "
            f"{len(extracted.promotions)} promotions, "
            f"{len(extracted.menu_items)} menu items"
        )
        return extracted

    async def _extract_with_llm(self, html: str, industry: Optional[str]) -> ExtractedData:
        truncated = html[: self.config.max_content_chars]
        prompt = self.prompt_manager.build_extraction_prompt(
            truncated, industry or self.config.default_industry
        )

        response = await self._guarded_complete(
            prompt,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )

        try:
            return parse_extraction_response(response.content)
        except ValueError:
            logger.error(f"Failed to parse LLM response: {response.content[:200]!r}")
            raise

    def _fallback(self, html: str) -> ExtractedData:
        logger.info("Using fallback extraction (regex)")
        self.stats.fallback_extractions += 1
        return regex_fallback(extract_text_from_html(html))

    def _cache_get(self, content_hash: str) -> Optional[ExtractedData]:
        try:
            with self.session_factory() as session:
                payload = ExtractionCacheRepository(session).get(content_hash)
            if payload is None:
                return None
            return ExtractedData.from_dict(payload)
        except Exception as e:
            logger.error(f"Cache lookup failed: {e}")
            return None

    def _cache_put(self, content_hash: str, data: ExtractedData) -> None:
        try:
            with self.session_factory.begin() as session:
                ExtractionCacheRepository(session).put(
                    content_hash=content_hash, extracted_data=data.to_dict()
                )
        except Exception as e:
            # Caching failures never block extraction
            logger.error(f"Cache save failed: {e}")

    def get_stats(self) -> ExtractionStats:
        """Get extraction counters and the current cache size."""
        try:
            with self.session_factory() as session:
                self.stats.cache_entries = ExtractionCacheRepository(session).count()
        except Exception as e:
            logger.error(f"Failed to count cache entries: {e}")

        return ExtractionStats(
            cache_hits=self.stats.cache_hits,
            llm_extractions=self.stats.llm_extractions,
            fallback_extractions=self.stats.fallback_extractions,
            cache_entries=self.stats.cache_entries,
        )

    def get_status(self) -> Dict[str, Any]:
        """Circuit and degradation state for health reporting."""
        return {
            "circuit_state": self.circuit_breaker.state.value,
            "degraded": self.degradation_manager.is_degraded(COMPONENT_NAME),
        }
