"""
Industry classification models.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class Industry(Enum):
    """Supported competitor industries."""

    RESTAURANT_FOOD = "restaurant_food"
    RETAIL_ECOMMERCE = "retail_ecommerce"
    HEALTHCARE_PHARMACY = "healthcare_pharmacy"
    PROFESSIONAL_SERVICES = "professional_services"

    @classmethod
    def from_value(cls, value: Optional[str]) -> Optional["Industry"]:
        """Return the matching industry, or None for unknown labels."""
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


DEFAULT_INDUSTRY = Industry.RESTAURANT_FOOD

INDUSTRY_DESCRIPTIONS: Dict[Industry, str] = {
    Industry.RESTAURANT_FOOD: "Restaurants, cafes, catering, and food delivery services",
    Industry.RETAIL_ECOMMERCE: "Online stores, retail shops, and e-commerce businesses",
    Industry.HEALTHCARE_PHARMACY: "Healthcare providers, pharmacies, and medical services",
    Industry.PROFESSIONAL_SERVICES: "Consulting, legal, accounting, and professional service firms",
}


@dataclass
class IndustryDetectionResult:
    """Result of classifying a competitor website into an industry."""

    label: str
    confidence: float
    reasoning: str = ""
    matches_business_industry: bool = False

    def validate(self) -> bool:
        """Validate detection result data."""
        if Industry.from_value(self.label) is None:
            raise ValueError(f"Unknown industry label: {self.label}")

        if not isinstance(self.confidence, (int, float)):
            raise ValueError("confidence must be a number")

        if not (0.0 <= self.confidence <= 1.0):
            raise ValueError("confidence must be between 0.0 and 1.0")

        return True


def get_effective_industry(
    override: Optional[str],
    detected: Optional[str],
    business_industry: Optional[str] = None,
) -> str:
    """Pick the industry used for prompt targeting.

    A manual override wins, then the detected label, then the business
    industry, then the default.
    """
    for candidate in (override, detected, business_industry):
        if Industry.from_value(candidate) is not None:
            return candidate
    return DEFAULT_INDUSTRY.value
