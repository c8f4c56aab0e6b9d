"""Repositories for notification preferences and logs."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from screener.modules.notification.models import (
    NotificationLog,
    NotificationPreference,
    NotificationStatus,
)


class NotificationPreferenceRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str) -> Optional[NotificationPreference]:
        result = await self.session.execute(
            select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        user_id: str,
        email_notification: bool,
        email: Optional[str] = None,
        username: Optional[str] = None,
    ) -> NotificationPreference:
        """Create or update a user's preference. Omitted profile fields are kept."""
        preference = await self.get(user_id)
        if preference is None:
            preference = NotificationPreference(user_id=user_id)
            self.session.add(preference)

        preference.email_notification = email_notification
        if email is not None:
            preference.email = email
        if username is not None:
            preference.username = username

        await self.session.commit()
        await self.session.refresh(preference)
        return preference


class NotificationLogRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        user_id: str,
        event: str,
        status: NotificationStatus,
        flag_id: Optional[uuid.UUID] = None,
        recipient: Optional[str] = None,
        last_error: Optional[str] = None,
    ) -> NotificationLog:
        log = NotificationLog(
            user_id=user_id,
            event=event,
            status=status.value,
            flag_id=flag_id,
            recipient=recipient,
            last_error=last_error,
        )
        self.session.add(log)
        await self.session.commit()
        await self.session.refresh(log)
        return log

    async def get(self, log_id: uuid.UUID) -> Optional[NotificationLog]:
        result = await self.session.execute(
            select(NotificationLog).where(NotificationLog.id == log_id)
        )
        return result.scalar_one_or_none()

    async def record_attempt(
        self,
        log_id: uuid.UUID,
        status: NotificationStatus,
        error: Optional[str] = None,
    ) -> None:
        """Count one delivery attempt and store its outcome."""
        values = {
            "status": status.value,
            "attempts": NotificationLog.attempts + 1,
            "last_error": error,
        }
        if status == NotificationStatus.DELIVERED:
            values["delivered_at"] = datetime.utcnow()
        await self.session.execute(
            update(NotificationLog).where(NotificationLog.id == log_id).values(**values)
        )
        await self.session.commit()

    async def list_for_user(self, user_id: str, limit: int = 50) -> list[NotificationLog]:
        result = await self.session.execute(
            select(NotificationLog)
            .where(NotificationLog.user_id == user_id)
            .order_by(NotificationLog.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
