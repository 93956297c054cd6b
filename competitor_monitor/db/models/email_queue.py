"""
db/models/email_queue.py

Outbound alert emails awaiting an external sender.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base, JSONType, UTCDateTime, utcnow


class EmailQueueStatus:
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class EmailQueueEntry(Base):
    __tablename__ = "email_queue"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    alert_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("alerts.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    to_email: Mapped[str] = mapped_column(String(320), nullable=False)
    template_name: Mapped[str] = mapped_column(String(64), nullable=False)
    template_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=EmailQueueStatus.PENDING,
    )
    scheduled_for: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
    )
