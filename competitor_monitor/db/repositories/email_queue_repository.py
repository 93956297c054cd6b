"""
Repository for the outbound alert email queue.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..base import utcnow
from ..models import EmailQueueEntry, EmailQueueStatus
from ..upsert import insert_or_ignore


class EmailQueueRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def enqueue_once(
        self,
        *,
        alert_id: int,
        to_email: str,
        template_name: str,
        template_data: dict[str, Any],
        scheduled_for: datetime,
    ) -> int | None:
        """Return the queue id, or None when the alert is already queued."""
        return insert_or_ignore(
            self._session,
            EmailQueueEntry,
            {
                "alert_id": alert_id,
                "to_email": to_email,
                "template_name": template_name,
                "template_data": template_data,
                "status": EmailQueueStatus.PENDING,
                "scheduled_for": scheduled_for,
                "attempts": 0,
                "created_at": utcnow(),
            },
            conflict_columns=["alert_id"],
            returning=EmailQueueEntry.id,
        )

    def get_by_alert(self, alert_id: int) -> EmailQueueEntry | None:
        stmt = select(EmailQueueEntry).where(EmailQueueEntry.alert_id == alert_id)
        return self._session.scalars(stmt).first()
