"""
Change detection and alert models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class AlertType(Enum):
    """Kinds of alerts raised by change detection."""

    PRICE_CHANGE = "price_change"
    NEW_PROMOTION = "new_promotion"
    MENU_CHANGE = "menu_change"


class DetectionOutcome(Enum):
    """How a detection pass classified the latest snapshot."""

    FIRST_CRAWL = "first_crawl"
    NO_CHANGE = "no_change"
    CHANGED = "changed"


@dataclass
class AlertDraft:
    """An alert ready to be inserted, keyed by its dedupe hash."""

    alert_type: AlertType
    message: str
    details: Dict[str, Any]
    dedupe_key: str

    def validate(self) -> bool:
        """Validate alert draft data."""
        if not isinstance(self.alert_type, AlertType):
            raise ValueError("alert_type must be an AlertType enum")

        if not isinstance(self.message, str) or not self.message.strip():
            raise ValueError("message cannot be empty")

        if not isinstance(self.details, dict):
            raise ValueError("details must be a dictionary")

        if len(self.dedupe_key) != 64:
            raise ValueError("dedupe_key must be a SHA-256 hex digest")

        return True


@dataclass
class CreatedAlert:
    """An alert row that was actually inserted."""

    id: int
    target_id: int
    alert_type: AlertType
    message: str
    details: Dict[str, Any]
    dedupe_key: str
    created_at: Optional[datetime] = None


@dataclass
class ChangeDetectionResult:
    """Result of comparing the current snapshot with the previous one."""

    outcome: DetectionOutcome
    change_types: List[AlertType] = field(default_factory=list)
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    alerts: List[CreatedAlert] = field(default_factory=list)
    suppressed: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.change_types)
