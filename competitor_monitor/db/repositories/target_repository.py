"""
Repository for monitored target lookups and post-crawl updates.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Select, exists, select
from sqlalchemy.orm import Session

from ..models import CrawlQueueEntry, MonitoredTarget


class TargetRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_target(
        self,
        *,
        url: str,
        name: str | None = None,
        owner_id: str | None = None,
        crawl_frequency_minutes: int | None = None,
        industry_override: str | None = None,
    ) -> MonitoredTarget:
        target = MonitoredTarget(
            url=url,
            name=name,
            owner_id=owner_id,
            crawl_frequency_minutes=crawl_frequency_minutes,
            industry_override=industry_override,
            is_active=True,
        )
        self._session.add(target)
        self._session.flush()
        return target

    def get_target(self, target_id: int) -> MonitoredTarget | None:
        return self._session.get(MonitoredTarget, target_id)

    def get_target_for_update(self, target_id: int) -> MonitoredTarget | None:
        stmt = (
            select(MonitoredTarget)
            .where(MonitoredTarget.id == target_id)
            .with_for_update()
        )
        return self._session.scalars(stmt).first()

    def list_unqueued_active(self) -> list[MonitoredTarget]:
        queued = exists().where(CrawlQueueEntry.target_id == MonitoredTarget.id)
        stmt: Select[tuple[MonitoredTarget]] = select(MonitoredTarget).where(
            MonitoredTarget.is_active.is_(True),
            ~queued,
        )
        return list(self._session.scalars(stmt).all())

    def mark_crawled(self, *, target_id: int, crawled_at: datetime) -> bool:
        target = self.get_target(target_id)
        if target is None:
            return False
        target.last_crawled_at = crawled_at
        return True

    def mark_alerted(self, *, target_id: int, alerted_at: datetime) -> bool:
        target = self.get_target(target_id)
        if target is None:
            return False
        target.last_alert_at = alerted_at
        return True

    def update_industry(
        self,
        *,
        target_id: int,
        label: str,
        confidence: float,
    ) -> bool:
        target = self.get_target(target_id)
        if target is None:
            return False
        target.industry_label = label
        target.industry_confidence = confidence
        return True
