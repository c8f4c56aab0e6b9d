"""Notification module for moderation emails."""

from screener.modules.notification.models import (
    NotificationEvent,
    NotificationLog,
    NotificationPreference,
    NotificationStatus,
)
from screener.modules.notification.schemas import EmailPayload

__all__ = [
    "NotificationEvent",
    "NotificationLog",
    "NotificationPreference",
    "NotificationStatus",
    "EmailPayload",
]
