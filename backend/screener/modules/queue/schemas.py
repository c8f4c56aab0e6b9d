"""Moderation job payloads and outcomes."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from screener.modules.moderation.schemas import ContentRef, ContentType


class JobOutcome(str, Enum):
    """Result of one processing attempt.

    FLAGGED, CLEARED, DEAD_LETTERED and DISCARDED are terminal; RETRYING
    means the job went back to the queue with a delay.
    """
    FLAGGED = "flagged"
    CLEARED = "cleared"
    DEAD_LETTERED = "dead_lettered"
    DISCARDED = "discarded"
    RETRYING = "retrying"

    @property
    def is_terminal(self) -> bool:
        return self is not JobOutcome.RETRYING


class ModerationJob(BaseModel):
    """Queue entity for one piece of content awaiting screening."""
    job_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    content_type: ContentType
    content_id: str
    author_id: str
    post_id: Optional[str] = None
    text: str
    enqueued_at: datetime = Field(default_factory=datetime.utcnow)
    attempt: int = Field(0, ge=0)

    @classmethod
    def from_content(cls, ref: ContentRef) -> "ModerationJob":
        return cls(
            content_type=ref.content_type,
            content_id=ref.content_id,
            author_id=ref.author_id,
            post_id=ref.post_id,
            text=ref.text,
        )

    @property
    def idempotency_key(self) -> str:
        """Per-content key; one flag and one in-flight job per key."""
        return f"{self.content_type.value}:{self.content_id}"

    def next_attempt(self) -> "ModerationJob":
        return self.model_copy(update={"attempt": self.attempt + 1})


class DeadLetter(BaseModel):
    """A job that exhausted its retries, held for inspection."""
    job: ModerationJob
    reason: str
    dead_lettered_at: datetime = Field(default_factory=datetime.utcnow)


class DeadLetterListResponse(BaseModel):
    items: list[DeadLetter]
    total: int


class RequeueResponse(BaseModel):
    requeued: int
