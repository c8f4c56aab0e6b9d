"""Pydantic schemas for content screening.

ContentRef is the boundary object handed over by the CRUD layer; the preview
schemas back POST /moderation/check.
"""

import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from screener.core.config import settings
from screener.modules.classifier.schemas import CategoryScore


class ContentType(str, Enum):
    """Kinds of user content that are screened."""
    COMMENT = "COMMENT"
    REVIEW = "REVIEW"


class ContentRef(BaseModel):
    """Reference to a submitted comment or review. Read-only to this service."""
    content_type: ContentType
    content_id: str = Field(..., min_length=1, max_length=64)
    author_id: str = Field(..., min_length=1, max_length=64)
    post_id: Optional[str] = Field(None, max_length=64)
    text: str

    class Config:
        frozen = True


class PreviewCheckRequest(BaseModel):
    """Text to screen before it is submitted."""
    content: str = Field(..., min_length=1, max_length=settings.MODERATION_MAX_TEXT_LENGTH)


class ClassificationInfo(BaseModel):
    sentiment_score: float
    categories: list[CategoryScore]


class PreviewCheckResponse(BaseModel):
    """Verdict for not-yet-submitted content."""
    is_toxic: bool
    reason: Optional[str] = None
    classification: ClassificationInfo


class SubmissionResponse(BaseModel):
    """Outcome of handing content to the moderation queue."""
    queued: bool
    job_id: Optional[uuid.UUID] = None
