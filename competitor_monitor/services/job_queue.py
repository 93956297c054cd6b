"""
Durable crawl job queue.

Claiming a job deletes its row in the same transaction that locked it, so
a job is handed to at most one worker. A worker that dies after claiming
loses the job; the scheduler re-enqueues the target on its next pass.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

from ..db.base import utcnow
from ..db.models import CrawlQueueEntry
from ..db.repositories import CrawlQueueRepository
from ..models.job import CrawlJob, QueueStats
from ..utils.error_handling import ErrorCategory, ErrorSeverity, get_error_tracker
from ..utils.logging import get_logger

logger = get_logger("job.queue")


def _to_job(entry: CrawlQueueEntry) -> CrawlJob:
    return CrawlJob(
        id=entry.id,
        target_id=entry.target_id,
        url=entry.url,
        priority=entry.priority,
        attempt=entry.attempt,
        max_attempts=entry.max_attempts,
        scheduled_for=entry.scheduled_for,
    )


class JobQueue:
    """Priority-ordered crawl queue backed by the database."""

    def __init__(
        self,
        session_factory: sessionmaker,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize job queue.

        Args:
            session_factory: SQLAlchemy session factory
            clock: Source of the current UTC time
        """
        self.session_factory = session_factory
        self.clock = clock
        self.error_tracker = get_error_tracker()

    def claim_next(self) -> Optional[CrawlJob]:
        """
        Atomically claim and remove the next eligible job.

        Highest priority first, then earliest ``scheduled_for``. Rows locked
        by a concurrent claim are skipped.
        """
        with self.session_factory.begin() as session:
            entry = CrawlQueueRepository(session).claim_next(now=self.clock())
            if entry is None:
                return None
            job = _to_job(entry)

        logger.debug(
            "Claimed job",
            extra={"job_id": job.id, "target_id": job.target_id, "attempt": job.attempt},
        )
        return job

    def enqueue(
        self,
        target_id: int,
        url: str,
        priority: int = 0,
        attempt: int = 0,
        max_attempts: int = 3,
        not_before: Optional[datetime] = None,
    ) -> int:
        """Add a job to the queue. Returns the new job id."""
        scheduled_for = not_before or self.clock()

        with self.session_factory.begin() as session:
            entry = CrawlQueueRepository(session).add(
                target_id=target_id,
                url=url,
                priority=priority,
                attempt=attempt,
                max_attempts=max_attempts,
                scheduled_for=scheduled_for,
            )
            job_id = entry.id

        logger.debug(
            "Enqueued job",
            extra={
                "job_id": job_id,
                "target_id": target_id,
                "priority": priority,
                "attempt": attempt,
                "scheduled_for": scheduled_for,
            },
        )
        return job_id

    def reschedule(
        self, job: CrawlJob, delay: timedelta, priority: Optional[int] = None
    ) -> bool:
        """
        Re-enqueue a failed job with its attempt count incremented.

        Args:
            job: The job that failed
            delay: Time to wait before the next attempt
            priority: New priority, or None to keep the job's priority

        Returns:
            True if re-enqueued, False if attempts are exhausted and the
            job was dropped
        """
        if job.is_exhausted:
            message = (
                f"Job {job.id} for target {job.target_id} dropped after "
                f"{job.attempt + 1} attempts"
            )
            logger.error(
                message,
                extra={
                    "job_id": job.id,
                    "target_id": job.target_id,
                    "max_attempts": job.max_attempts,
                },
            )
            self.error_tracker.record_error(
                component="job.queue",
                category=ErrorCategory.SYSTEM,
                severity=ErrorSeverity.HIGH,
                message=message,
                context={"job_id": job.id, "target_id": job.target_id, "url": job.url},
            )
            return False

        self.enqueue(
            target_id=job.target_id,
            url=job.url,
            priority=job.priority if priority is None else priority,
            attempt=job.attempt + 1,
            max_attempts=job.max_attempts,
            not_before=self.clock() + delay,
        )
        logger.info(
            f"Rescheduled target {job.target_id} in {delay}",
            extra={"job_id": job.id, "target_id": job.target_id, "attempt": job.attempt + 1},
        )
        return True

    def get_stats(self) -> QueueStats:
        """Get queue statistics."""
        with self.session_factory() as session:
            pending, exhausted, average_attempt, oldest = CrawlQueueRepository(
                session
            ).stats()

        return QueueStats(
            pending=pending,
            max_attempt_failed=exhausted,
            average_attempt=average_attempt,
            oldest_job=oldest,
        )

    def is_queued(self, target_id: int) -> bool:
        """True if the target already has a queued job."""
        with self.session_factory() as session:
            return CrawlQueueRepository(session).has_entry_for_target(target_id)
