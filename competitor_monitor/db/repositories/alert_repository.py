"""
Repository for deduplicated alert rows.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..base import utcnow
from ..models import Alert
from ..upsert import insert_or_ignore


class AlertRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def insert_if_new(
        self,
        *,
        target_id: int,
        alert_type: str,
        message: str,
        details: dict[str, Any],
        dedupe_key: str,
    ) -> int | None:
        """Return the new alert id, or None when the dedupe key already exists."""
        return insert_or_ignore(
            self._session,
            Alert,
            {
                "target_id": target_id,
                "alert_type": alert_type,
                "message": message,
                "details": details,
                "dedupe_key": dedupe_key,
                "is_read": False,
                "created_at": utcnow(),
            },
            conflict_columns=["target_id", "dedupe_key"],
            returning=Alert.id,
        )

    def get_alert(self, alert_id: int) -> Alert | None:
        return self._session.get(Alert, alert_id)

    def list_for_target(self, target_id: int, *, limit: int = 50) -> list[Alert]:
        stmt = (
            select(Alert)
            .where(Alert.target_id == target_id)
            .order_by(Alert.created_at.desc(), Alert.id.desc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())
