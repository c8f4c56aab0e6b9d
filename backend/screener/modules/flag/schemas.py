"""Pydantic schemas for flag records."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from screener.modules.flag.models import FlagStatus
from screener.modules.moderation.schemas import ContentType


class FlagRecordResponse(BaseModel):
    """Flag record as returned to owners and admins."""
    id: uuid.UUID
    content_type: ContentType
    content_id: str
    author_id: str
    reason: str
    status: FlagStatus
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FlagListResponse(BaseModel):
    """Paginated flag list, newest first."""
    items: list[FlagRecordResponse]
    total: int
    page: int
    limit: int
    pages: int


class FlagFilters(BaseModel):
    status: Optional[FlagStatus] = None
    content_type: Optional[ContentType] = None
    author_id: Optional[str] = None
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)


class RejectRequest(BaseModel):
    """Optional rejection reason; the flag's own reason is kept when omitted."""
    reason: Optional[str] = Field(None, min_length=1, max_length=500)
