"""
Repository for the content-addressed extraction cache.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models import ExtractionCacheEntry
from ..upsert import insert_or_ignore


class ExtractionCacheRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, content_hash: str) -> dict[str, Any] | None:
        entry = self._session.get(ExtractionCacheEntry, content_hash)
        return entry.extracted_data if entry is not None else None

    def put(self, *, content_hash: str, extracted_data: dict[str, Any]) -> bool:
        """Write once per key; returns False when the key already existed."""
        return insert_or_ignore(
            self._session,
            ExtractionCacheEntry,
            {"content_hash": content_hash, "extracted_data": extracted_data},
            conflict_columns=["content_hash"],
        )

    def count(self) -> int:
        return self._session.scalar(
            select(func.count()).select_from(ExtractionCacheEntry)
        ) or 0
