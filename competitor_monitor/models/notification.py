"""
Notification collaborator models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class EnqueueResult:
    """Result of asking the email channel to queue an alert."""

    success: bool
    reason: Optional[str] = None
    queue_id: Optional[int] = None
    scheduled_for: Optional[datetime] = None


@dataclass
class PushPayload:
    """Payload handed to the push channel."""

    title: str
    body: str
    url: str = "/dashboard/alerts"
    tag: Optional[str] = None

    def validate(self) -> bool:
        """Validate push payload data."""
        if not self.title.strip():
            raise ValueError("title cannot be empty")

        if len(self.title) > 200:
            raise ValueError("title too long (max 200 characters)")

        if not self.body.strip():
            raise ValueError("body cannot be empty")

        if not self.url.startswith(("/", "http://", "https://")):
            raise ValueError("url must be a path or an absolute http(s) URL")

        return True


@dataclass
class PushResult:
    """Counts returned by the push channel."""

    sent: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
