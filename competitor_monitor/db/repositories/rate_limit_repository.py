"""
Repository for per-domain rate limit windows.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..models import RateLimitWindow
from ..upsert import insert_or_ignore


class RateLimitRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def open_window(self, *, domain: str, now: datetime) -> bool:
        """Create a window counting this request; False if one already exists."""
        return insert_or_ignore(
            self._session,
            RateLimitWindow,
            {"domain": domain, "request_count": 1, "window_start": now},
            conflict_columns=["domain"],
        )

    def get_for_update(self, domain: str) -> RateLimitWindow | None:
        stmt = (
            select(RateLimitWindow)
            .where(RateLimitWindow.domain == domain)
            .with_for_update()
        )
        return self._session.scalars(stmt).first()

    def get(self, domain: str) -> RateLimitWindow | None:
        return self._session.get(RateLimitWindow, domain)

    def delete(self, domain: str) -> int:
        result = self._session.execute(
            delete(RateLimitWindow).where(RateLimitWindow.domain == domain)
        )
        return result.rowcount
