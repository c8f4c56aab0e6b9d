"""Notification dispatcher.

Tells a content owner about a moderation event when their preference allows
it. Dispatch failures are logged and counted; they never propagate to the
caller, so a flag transition is never rolled back by a mail problem.
"""

import logging
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from screener.core.logging import log_error
from screener.core.metrics import NOTIFICATIONS_TOTAL
from screener.modules.flag.schemas import FlagRecordResponse
from screener.modules.notification.models import (
    NotificationEvent,
    NotificationPreference,
    NotificationStatus,
)
from screener.modules.notification.repository import (
    NotificationLogRepository,
    NotificationPreferenceRepository,
)
from screener.modules.notification.schemas import EmailPayload
from screener.modules.notification.tasks import enqueue_email_delivery

logger = logging.getLogger(__name__)

EnqueueDelivery = Callable[[EmailPayload], object]


class NotificationDispatcher:
    """Decides whether to email an owner and queues the delivery."""

    def __init__(
        self,
        session: AsyncSession,
        enqueue_delivery: Optional[EnqueueDelivery] = None,
    ):
        self.session = session
        self.preferences = NotificationPreferenceRepository(session)
        self.logs = NotificationLogRepository(session)
        self.enqueue_delivery = enqueue_delivery or enqueue_email_delivery

    async def notify(
        self,
        user_id: str,
        event: NotificationEvent,
        flag: FlagRecordResponse,
    ) -> NotificationStatus:
        """Dispatch one notification.

        Returns:
            QUEUED when handed to the delivery task, SKIPPED when the owner
            opted out or has no address, FAILED when dispatch broke
        """
        try:
            return await self._notify(user_id, event, flag)
        except Exception as e:
            log_error(
                logger,
                "Notification dispatch failed",
                exception=e,
                user_id=user_id,
                event=event.value,
                flag_id=str(flag.id),
            )
            NOTIFICATIONS_TOTAL.labels(event=event.value, result=NotificationStatus.FAILED.value).inc()
            return NotificationStatus.FAILED

    async def _notify(
        self,
        user_id: str,
        event: NotificationEvent,
        flag: FlagRecordResponse,
    ) -> NotificationStatus:
        preference = await self.preferences.get(user_id)
        if not self._wants_email(preference):
            await self.logs.create(user_id, event.value, NotificationStatus.SKIPPED, flag_id=flag.id)
            NOTIFICATIONS_TOTAL.labels(event=event.value, result=NotificationStatus.SKIPPED.value).inc()
            logger.debug(
                "Notification skipped by preference",
                extra={"user_id": user_id, "event": event.value},
            )
            return NotificationStatus.SKIPPED

        log = await self.logs.create(
            user_id,
            event.value,
            NotificationStatus.QUEUED,
            flag_id=flag.id,
            recipient=preference.email,
        )
        payload = EmailPayload(
            log_id=log.id,
            event=event,
            recipient=preference.email,
            username=preference.username or "there",
            content_type=flag.content_type.value,
            content_id=flag.content_id,
            reason=flag.reason,
            rejection_reason=flag.rejection_reason,
        )

        try:
            self.enqueue_delivery(payload)
        except Exception as e:
            await self.logs.record_attempt(log.id, NotificationStatus.FAILED, error=str(e))
            raise

        NOTIFICATIONS_TOTAL.labels(event=event.value, result=NotificationStatus.QUEUED.value).inc()
        logger.info(
            "Notification queued",
            extra={"user_id": user_id, "event": event.value, "log_id": str(log.id)},
        )
        return NotificationStatus.QUEUED

    @staticmethod
    def _wants_email(preference: Optional[NotificationPreference]) -> bool:
        # No projected profile means no known address
        return bool(preference and preference.email_notification and preference.email)
