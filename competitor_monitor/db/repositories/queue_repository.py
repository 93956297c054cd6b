"""
Repository for the crawl queue: enqueue, atomic claim and statistics.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models import CrawlQueueEntry


class CrawlQueueRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(
        self,
        *,
        target_id: int,
        url: str,
        priority: int,
        attempt: int,
        max_attempts: int,
        scheduled_for: datetime,
    ) -> CrawlQueueEntry:
        entry = CrawlQueueEntry(
            target_id=target_id,
            url=url,
            priority=priority,
            attempt=attempt,
            max_attempts=max_attempts,
            scheduled_for=scheduled_for,
        )
        self._session.add(entry)
        self._session.flush()
        return entry

    def claim_next(self, *, now: datetime) -> CrawlQueueEntry | None:
        """
        Lock and delete the next eligible row.

        Rows locked by another transaction are skipped rather than waited
        on; the delete becomes durable when the caller commits.
        """
        stmt = (
            select(CrawlQueueEntry)
            .where(
                CrawlQueueEntry.scheduled_for <= now,
                CrawlQueueEntry.attempt < CrawlQueueEntry.max_attempts,
            )
            .order_by(
                CrawlQueueEntry.priority.desc(),
                CrawlQueueEntry.scheduled_for.asc(),
                CrawlQueueEntry.id.asc(),
            )
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        entry = self._session.scalars(stmt).first()
        if entry is None:
            return None

        self._session.delete(entry)
        self._session.flush()
        return entry

    def has_entry_for_target(self, target_id: int) -> bool:
        stmt = select(func.count()).select_from(CrawlQueueEntry).where(
            CrawlQueueEntry.target_id == target_id
        )
        return self._session.scalar(stmt) > 0

    def stats(self) -> tuple[int, int, float, datetime | None]:
        """Return (pending, at_max_attempts, average_attempt, oldest_scheduled)."""
        pending_stmt = select(
            func.count(CrawlQueueEntry.id),
            func.avg(CrawlQueueEntry.attempt),
            func.min(CrawlQueueEntry.scheduled_for),
        ).where(CrawlQueueEntry.attempt < CrawlQueueEntry.max_attempts)
        pending, average_attempt, oldest = self._session.execute(pending_stmt).one()

        exhausted_stmt = select(func.count(CrawlQueueEntry.id)).where(
            CrawlQueueEntry.attempt >= CrawlQueueEntry.max_attempts
        )
        exhausted = self._session.scalar(exhausted_stmt) or 0

        return int(pending or 0), int(exhausted), float(average_attempt or 0.0), oldest
