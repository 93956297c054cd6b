"""
Repository for the append-only snapshot log.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..base import utcnow
from ..models import Snapshot


class SnapshotRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def append(
        self,
        *,
        target_id: int,
        extracted_data: dict[str, Any],
        content_hash: str,
        observed_at: datetime | None = None,
    ) -> Snapshot:
        snapshot = Snapshot(
            target_id=target_id,
            extracted_data=extracted_data,
            content_hash=content_hash,
            observed_at=observed_at or utcnow(),
        )
        self._session.add(snapshot)
        self._session.flush()
        return snapshot

    def latest(self, *, target_id: int, limit: int = 2) -> list[Snapshot]:
        stmt = (
            select(Snapshot)
            .where(Snapshot.target_id == target_id)
            .order_by(Snapshot.observed_at.desc(), Snapshot.id.desc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())
