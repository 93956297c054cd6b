"""
Recurring crawl scheduling.

Finds active targets whose last crawl is older than their crawl frequency
and that have no queued job, and enqueues them. First crawls jump the
queue.
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.orm import sessionmaker

from ..db.base import utcnow
from ..db.models import MonitoredTarget
from ..db.repositories import CrawlQueueRepository, TargetRepository
from ..models.config import CrawlerConfig
from ..utils.logging import get_logger

logger = get_logger("scheduler")

FIRST_CRAWL_PRIORITY = 100
DEFAULT_PRIORITY = 0


class CrawlScheduler:
    """Enqueues crawl jobs for targets that are due."""

    def __init__(
        self,
        session_factory: sessionmaker,
        config: Optional[CrawlerConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.config = config or CrawlerConfig()
        self.clock = clock

    def _is_due(self, target: MonitoredTarget, now: datetime) -> bool:
        if target.last_crawled_at is None:
            return True
        frequency = target.crawl_frequency_minutes or self.config.default_recrawl_minutes
        return target.last_crawled_at + timedelta(minutes=frequency) < now

    def due_targets(self, targets: List[MonitoredTarget], now: datetime) -> List[MonitoredTarget]:
        """Due targets, never-crawled first, then oldest crawl first."""
        due = [target for target in targets if self._is_due(target, now)]
        due.sort(
            key=lambda t: (t.last_crawled_at is not None, t.last_crawled_at or now, t.id)
        )
        return due

    def enqueue_due_targets(self, limit: int = 100) -> int:
        """
        Enqueue every due, unqueued, active target.

        Args:
            limit: Maximum number of jobs to enqueue in one pass

        Returns:
            Number of jobs enqueued
        """
        now = self.clock()
        enqueued = 0

        with self.session_factory.begin() as session:
            candidates = TargetRepository(session).list_unqueued_active()
            due = self.due_targets(candidates, now)[: max(0, limit)]
            logger.info(f"Found {len(due)} targets due for crawling")

            queue = CrawlQueueRepository(session)
            for target in due:
                priority = (
                    FIRST_CRAWL_PRIORITY if target.last_crawled_at is None else DEFAULT_PRIORITY
                )
                queue.add(
                    target_id=target.id,
                    url=target.url,
                    priority=priority,
                    attempt=0,
                    max_attempts=self.config.max_attempts,
                    scheduled_for=now,
                )
                enqueued += 1
                logger.debug(
                    f"Enqueued target {target.id} ({target.url}) - priority: {priority}",
                    extra={"target_id": target.id, "priority": priority},
                )

        logger.info(f"Scheduler complete: enqueued {enqueued}", extra={"enqueued": enqueued})
        return enqueued
