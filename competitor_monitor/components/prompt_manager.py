"""
Prompt management for extraction templates.

Each supported industry has a built-in extraction prompt. A file named
``extraction_<industry>.txt`` in the prompts directory replaces the
built-in prompt for that industry.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from ..models.industry import DEFAULT_INDUSTRY, Industry

logger = logging.getLogger(__name__)

_OUTPUT_SCHEMA = """Extract and return ONLY valid JSON (no markdown, no explanation) with the following structure:
{
  "prices": [{"item": "...", "price": "...", "currency": "USD", "category": "..."}],
  "promotions": [{"title": "...", "description": "...", "discount": "...", "valid_until": "..."}],
  "menu_items": [{"name": "...", "category": "...", "price": "...", "description": "..."}]
}"""

_CONTENT_HEADER = "HTML Content to Extract From:\n"


def _build_prompt(audience: str, rules: List[str]) -> str:
    numbered = "\n".join(f"{i}. {rule}" for i, rule in enumerate(rules, start=1))
    return (
        f"You are an expert at extracting structured data from {audience} websites.\n\n"
        f"{_OUTPUT_SCHEMA}\n\n"
        f"Rules:\n{numbered}\n\n"
        f"{_CONTENT_HEADER}"
    )


_COMMON_RULES = [
    "If a section is empty, use an empty array",
    "Return ONLY the JSON object, nothing else",
    "Do not include null values",
]

BUILTIN_PROMPTS: Dict[Industry, str] = {
    Industry.RESTAURANT_FOOD: _build_prompt(
        "restaurant and food service",
        [
            "Extract ALL menu items, prices, and promotions visible on the page",
            "Keep prices exactly as shown (including currency symbols)",
            "For promotions, extract discount percentages, descriptions, and validity dates",
            "For menu items, extract name, category (appetizers, entrees, desserts, etc.), "
            "price, and description",
        ]
        + _COMMON_RULES,
    ),
    Industry.RETAIL_ECOMMERCE: _build_prompt(
        "retail and e-commerce",
        [
            "Extract ALL product prices, sale prices, and promotional offers visible on the page",
            "Keep prices exactly as shown (including currency symbols and strike-through "
            "original prices)",
            "For promotions, extract discount codes, percentage off, BOGO deals, and validity dates",
            "For products, extract name, category, current price, and brief description",
        ]
        + _COMMON_RULES,
    ),
    Industry.HEALTHCARE_PHARMACY: _build_prompt(
        "healthcare and pharmacy",
        [
            "Extract service prices, consultation fees, and publicly available pricing "
            "information ONLY",
            "DO NOT extract personal health information or patient-specific data",
            "Keep prices exactly as shown (including currency symbols)",
            "For promotions, extract health packages, wellness program discounts, and "
            "validity dates",
            "For services, extract name, category (consultation, lab tests, procedures, etc.), "
            "price, and description",
        ]
        + _COMMON_RULES,
    ),
    Industry.PROFESSIONAL_SERVICES: _build_prompt(
        "professional services",
        [
            "Extract ALL service packages, hourly rates, and consultation fees visible on the page",
            "Keep prices exactly as shown (including currency symbols and rate structures "
            'like "per hour")',
            "For promotions, extract introductory offers, package discounts, and validity dates",
            "For services, extract name, category (consulting, legal, accounting, etc.), "
            "pricing structure, and description",
        ]
        + _COMMON_RULES,
    ),
}


class PromptManager:
    """Manager for per-industry extraction prompts."""

    def __init__(self, prompts_directory: str = "prompts"):
        self.prompts_directory = Path(prompts_directory)
        self._templates: Dict[Industry, str] = {}
        self._ensure_prompts_directory()

    def _ensure_prompts_directory(self) -> None:
        """Check the prompts directory, if one was configured."""
        if not self.prompts_directory.exists():
            logger.debug(
                f"Prompts directory {self.prompts_directory} does not exist, "
                "using built-in prompts"
            )
            return

        if not self.prompts_directory.is_dir():
            raise ValueError(
                f"Prompts path {self.prompts_directory} is not a directory"
            )

    @staticmethod
    def template_filename(industry: Industry) -> str:
        return f"extraction_{industry.value}.txt"

    def get_extraction_prompt(self, industry: Optional[str] = None) -> str:
        """Get the extraction prompt for an industry.

        Unknown or missing industries use the default industry's prompt.
        """
        resolved = Industry.from_value(industry) or DEFAULT_INDUSTRY

        if resolved in self._templates:
            return self._templates[resolved]

        template = self._load_override(resolved) or BUILTIN_PROMPTS[resolved]
        self._templates[resolved] = template
        return template

    def build_extraction_prompt(self, content: str, industry: Optional[str] = None) -> str:
        """Prompt text followed by the page content."""
        return self.get_extraction_prompt(industry) + content

    def _load_override(self, industry: Industry) -> Optional[str]:
        full_path = self.prompts_directory / self.template_filename(industry)
        if not full_path.is_file():
            return None

        try:
            with open(full_path, "r", encoding="utf-8") as f:
                template_content = f.read().strip()
        except OSError as e:
            logger.error(f"Failed to read prompt template {full_path}: {e}")
            return None

        if not template_content:
            logger.warning(f"Prompt template is empty, using built-in: {full_path}")
            return None

        logger.info(f"Loaded prompt template: {full_path.name}")
        # Page content is appended directly after the template
        return template_content + "\n\n"

    def get_available_templates(self) -> List[str]:
        """Get list of override template files."""
        if not self.prompts_directory.exists():
            return []

        return sorted(
            str(file_path.relative_to(self.prompts_directory))
            for file_path in self.prompts_directory.glob("extraction_*.txt")
        )

    def clear_cache(self) -> None:
        """Clear the template cache."""
        self._templates.clear()
        logger.info("Prompt template cache cleared")
