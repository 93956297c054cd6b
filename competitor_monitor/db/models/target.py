"""
db/models/target.py

Monitored competitor website.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base, TimestampMixin, UTCDateTime


class MonitoredTarget(Base, TimestampMixin):
    __tablename__ = "monitored_targets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    owner_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Recipient of push notifications for this target",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    crawl_frequency_minutes: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Overrides the default recrawl frequency when set",
    )
    last_crawled_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    last_alert_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    industry_label: Mapped[str | None] = mapped_column(String(64), nullable=True)
    industry_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    industry_override: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Manually chosen industry; wins over detection",
    )

    __table_args__ = (
        Index("ix_monitored_targets_active_crawled", "is_active", "last_crawled_at"),
    )
