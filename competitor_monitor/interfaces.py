"""
Protocol interfaces for the Competitor Monitor system.

This module defines the protocol interfaces that establish component
boundaries and enable dependency injection throughout the application.
"""

from typing import TYPE_CHECKING, Optional, Protocol, Tuple

from .models.alert import ChangeDetectionResult, CreatedAlert
from .models.extraction import ExtractedData
from .models.industry import IndustryDetectionResult
from .models.job import CrawlJob
from .models.notification import EnqueueResult, PushPayload, PushResult

if TYPE_CHECKING:
    from datetime import datetime, timedelta

    from .components.fetcher import FetchOptions


class IRateLimiter(Protocol):
    """Protocol for per-domain request budgeting."""

    def try_acquire(self, domain: str) -> bool:
        """Count a request against the domain; False when over budget."""
        ...


class IFetcher(Protocol):
    """Protocol for rendering a URL into page markup."""

    async def fetch(self, url: str, options: Optional["FetchOptions"] = None) -> str:
        """Fetch a page and return its HTML."""
        ...

    async def close(self) -> None:
        """Release browser resources."""
        ...


class IExtractionEngine(Protocol):
    """Protocol for converting markup into structured records."""

    async def extract(self, html: str, industry: Optional[str] = None) -> ExtractedData:
        """Extract prices, promotions and menu items from HTML."""
        ...


class IIndustryClassifier(Protocol):
    """Protocol for classifying a website into an industry."""

    async def classify_industry(
        self,
        url: str,
        html: Optional[str] = None,
        business_industry: Optional[str] = None,
    ) -> IndustryDetectionResult:
        """Classify a website and report confidence."""
        ...


class IChangeDetector(Protocol):
    """Protocol for diffing snapshots and raising alerts."""

    def detect(
        self, target_id: int, current_data: ExtractedData, current_hash: str
    ) -> ChangeDetectionResult:
        """Compare the current snapshot with the previous distinct one."""
        ...

    def record_and_detect(
        self,
        target_id: int,
        current_data: ExtractedData,
        current_hash: str,
        observed_at: Optional["datetime"] = None,
    ) -> Tuple[int, ChangeDetectionResult]:
        """Append a snapshot and compare it in one transaction."""
        ...


class IJobQueue(Protocol):
    """Protocol for the durable crawl queue."""

    def claim_next(self) -> Optional[CrawlJob]:
        """Atomically claim and remove the next eligible job."""
        ...

    def enqueue(
        self,
        target_id: int,
        url: str,
        priority: int = 0,
        attempt: int = 0,
        max_attempts: int = 3,
        not_before: Optional["datetime"] = None,
    ) -> int:
        """Add a job to the queue."""
        ...

    def reschedule(
        self, job: CrawlJob, delay: "timedelta", priority: Optional[int] = None
    ) -> bool:
        """Re-enqueue a failed job, or drop it once attempts are exhausted."""
        ...


class INotificationEnqueuer(Protocol):
    """Protocol for the email notification channel."""

    def enqueue_alert_notification(self, alert_id: int) -> EnqueueResult:
        """Queue an email for an alert without waiting for delivery."""
        ...


class IPushSender(Protocol):
    """Protocol for the push notification channel."""

    def send_push(self, target_user_id: str, payload: PushPayload) -> PushResult:
        """Send a push notification to all of a user's subscriptions."""
        ...


class IAlertDispatcher(Protocol):
    """Protocol for fire-and-forget alert fan-out."""

    def dispatch(self, alert: CreatedAlert, owner_id: Optional[str] = None) -> None:
        """Trigger notifications for a created alert without blocking."""
        ...
