"""
db/models/extraction_cache.py

Content-addressed cache of structured extraction results.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base, JSONType, UTCDateTime, utcnow


class ExtractionCacheEntry(Base):
    __tablename__ = "extraction_cache"

    content_hash: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="SHA-256 of raw or normalized page content",
    )
    extracted_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
    )
