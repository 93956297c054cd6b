"""
Crawl job models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class JobErrorCode(Enum):
    """Failure taxonomy surfaced per processed job."""

    TARGET_NOT_FOUND = "TARGET_NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    FETCH_FAILED = "FETCH_FAILED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    SNAPSHOT_OR_ALERT_FAILED = "SNAPSHOT_OR_ALERT_FAILED"
    UNKNOWN = "UNKNOWN"

    @property
    def retryable(self) -> bool:
        return self is not JobErrorCode.TARGET_NOT_FOUND


@dataclass
class CrawlJob:
    """A queued request to crawl one target."""

    id: int
    target_id: int
    url: str
    priority: int
    attempt: int
    max_attempts: int
    scheduled_for: datetime

    def validate(self) -> bool:
        """Validate crawl job data."""
        if not self.url or not self.url.strip():
            raise ValueError("url cannot be empty")

        if self.attempt < 0:
            raise ValueError("attempt cannot be negative")

        if self.max_attempts <= 0:
            raise ValueError("max_attempts must be positive")

        if not isinstance(self.scheduled_for, datetime):
            raise ValueError("scheduled_for must be a datetime object")

        return True

    @property
    def is_exhausted(self) -> bool:
        """True when another attempt would reach the attempt ceiling."""
        return self.attempt + 1 >= self.max_attempts


@dataclass
class ProcessResult:
    """Outcome of processing one crawl job."""

    job_id: int
    target_id: int
    success: bool
    error_code: Optional[JobErrorCode] = None
    error_message: Optional[str] = None
    snapshot_id: Optional[int] = None
    change_types: List[str] = field(default_factory=list)
    alerts_created: int = 0
    rescheduled: bool = False

    def validate(self) -> bool:
        """Validate process result data."""
        if not self.success and self.error_code is None:
            raise ValueError("error_code should be provided when success is False")

        if self.success and self.error_code is not None:
            raise ValueError("error_code must be None when success is True")

        return True


@dataclass
class BatchResult:
    """Summary of one batch driver invocation."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    duration_seconds: float = 0.0
    stopped_early: bool = False
    results: List[ProcessResult] = field(default_factory=list)

    def record(self, result: ProcessResult) -> None:
        self.results.append(result)
        self.processed += 1
        if result.success:
            self.succeeded += 1
        else:
            self.failed += 1


@dataclass
class QueueStats:
    """Snapshot of crawl queue health."""

    pending: int
    max_attempt_failed: int
    average_attempt: float
    oldest_job: Optional[datetime]

