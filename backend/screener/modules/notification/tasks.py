"""Celery tasks for moderation email delivery.

The dispatcher writes a notification log row and hands the rendered payload
to `deliver_moderation_email`; retries use exponential backoff and the log
row records every attempt.
"""

import asyncio
import logging
import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from screener.core.celery_app import celery_app
from screener.core.database import async_session_maker, engine
from screener.core.metrics import NOTIFICATIONS_TOTAL
from screener.modules.notification.channels import ChannelDeliveryResult, EmailChannel
from screener.modules.notification.models import NotificationStatus
from screener.modules.notification.repository import NotificationLogRepository
from screener.modules.notification.schemas import EmailPayload
from screener.modules.notification.templates import render_email
from screener.modules.queue.retry import BaseTaskWithRetry

logger = logging.getLogger(__name__)


async def process_delivery(
    payload: EmailPayload,
    final_attempt: bool,
    channel: Optional[EmailChannel] = None,
    session_maker: async_sessionmaker[AsyncSession] = async_session_maker,
) -> ChannelDeliveryResult:
    """Send one email and record the attempt on its log row.

    A failed attempt leaves the row QUEUED unless it was the last one.
    """
    channel = channel or EmailChannel()
    subject, text_body, html_body = render_email(payload)
    result = await channel.deliver(payload.recipient, subject, text_body, html_body)

    if result.success:
        status = NotificationStatus.DELIVERED
    elif final_attempt:
        status = NotificationStatus.FAILED
    else:
        status = NotificationStatus.QUEUED

    async with session_maker() as session:
        await NotificationLogRepository(session).record_attempt(
            payload.log_id, status, error=result.error
        )

    if status != NotificationStatus.QUEUED:
        NOTIFICATIONS_TOTAL.labels(event=payload.event.value, result=status.value).inc()
    return result


async def _deliver(email: EmailPayload, final_attempt: bool) -> ChannelDeliveryResult:
    """Run one delivery on the task's own event loop.

    Pooled connections are bound to the loop that opened them, so the pool is
    emptied before `asyncio.run` closes this one.
    """
    try:
        return await process_delivery(email, final_attempt)
    finally:
        await engine.dispose()


@celery_app.task(
    name="notification.deliver_moderation_email",
    bind=True,
    base=BaseTaskWithRetry,
    retry_config_name="notification",
)
def deliver_moderation_email(self: BaseTaskWithRetry, payload: dict) -> dict:
    """Deliver a moderation email.

    Args:
        payload: EmailPayload as JSON-compatible dict

    Returns:
        dict with delivery status
    """
    email = EmailPayload.model_validate(payload)
    attempt = self.request.retries + 1
    final_attempt = not self.retry_config.should_retry(attempt)

    result = asyncio.run(_deliver(email, final_attempt))

    if not result.success:
        logger.warning(
            "Moderation email delivery failed",
            extra={
                "log_id": str(email.log_id),
                "attempt": attempt,
                "final_attempt": final_attempt,
                "error": result.error,
            },
        )
        if not final_attempt:
            self.retry_with_backoff(RuntimeError(result.error or "delivery failed"), attempt)
        return {"status": "failed", "log_id": str(email.log_id), "error": result.error}

    return {"status": "delivered", "log_id": str(email.log_id)}


def enqueue_email_delivery(payload: EmailPayload) -> uuid.UUID:
    """Hand a payload to the Celery delivery task."""
    deliver_moderation_email.apply_async(args=[payload.model_dump(mode="json")])
    return payload.log_id
