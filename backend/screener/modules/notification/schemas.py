"""Pydantic schemas for notification preferences and delivery payloads."""

import uuid
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from screener.modules.notification.models import NotificationEvent


class NotificationPreferenceResponse(BaseModel):
    user_id: str
    email_notification: bool

    class Config:
        from_attributes = True


class NotificationPreferenceUpdate(BaseModel):
    """Body of PUT /moderation/preferences."""
    email_notification: bool
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(None, max_length=100)


class EmailPayload(BaseModel):
    """Everything the delivery task needs; no database reads required."""
    log_id: uuid.UUID
    event: NotificationEvent
    recipient: str
    username: str
    content_type: str
    content_id: str
    reason: Optional[str] = None
    rejection_reason: Optional[str] = None
