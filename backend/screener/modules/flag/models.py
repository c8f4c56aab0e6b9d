"""Flag record model.

A flag marks one comment or review as suspected toxic. It starts PENDING and
an admin moves it to APPROVED or REJECTED exactly once.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from screener.core.database import Base


class FlagStatus(str, Enum):
    """Review status of a flag record."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class FlagRecord(Base):
    """Suspected-toxic content awaiting or past admin review."""

    __tablename__ = "flag_records"
    __table_args__ = (
        UniqueConstraint("content_type", "content_id", name="uq_flag_records_content"),
        Index("ix_flag_records_status_created_at", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    content_type: Mapped[str] = mapped_column(String(20), nullable=False)
    content_id: Mapped[str] = mapped_column(String(64), nullable=False)
    author_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=FlagStatus.PENDING.value, index=True
    )

    # Resolution
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<FlagRecord(id={self.id}, content={self.content_type}:{self.content_id}, status={self.status})>"

    def is_pending(self) -> bool:
        return self.status == FlagStatus.PENDING.value
