"""Moderation entry points used by the API and the CRUD layer."""

import logging
from typing import Optional

from screener.core.exceptions import QueueUnavailable
from screener.core.logging import log_error
from screener.core.metrics import MODERATION_ENQUEUE_FAILURES_TOTAL, MODERATION_JOBS_ENQUEUED_TOTAL
from screener.modules.classifier.client import ClassifierClient, get_classifier_client
from screener.modules.moderation.decision import DecisionPolicy, Verdict, decide
from screener.modules.moderation.schemas import ContentRef
from screener.modules.queue.broker import ModerationQueue, get_moderation_queue
from screener.modules.queue.schemas import ModerationJob

logger = logging.getLogger(__name__)


class ModerationService:
    """Synchronous preview checks and asynchronous submission screening."""

    def __init__(
        self,
        queue: Optional[ModerationQueue] = None,
        classifier: Optional[ClassifierClient] = None,
        policy: Optional[DecisionPolicy] = None,
    ):
        self.queue = queue or get_moderation_queue()
        self.classifier = classifier or get_classifier_client()
        self.policy = policy or DecisionPolicy.from_settings()

    async def preview_check(self, text: str) -> Verdict:
        """Screen text before it is submitted. Nothing is persisted.

        Raises:
            ValidationError: On empty or oversized text
            ServiceUnavailable: If the classifier cannot be reached
        """
        classification = await self.classifier.analyze(text)
        return decide(classification, self.policy)

    async def submit_content(self, ref: ContentRef) -> Optional[ModerationJob]:
        """Queue submitted content for screening.

        Never raises on broker failure: the content stays published and the
        failure is logged and counted.

        Returns:
            The queued job, or None if the broker was unavailable
        """
        job = ModerationJob.from_content(ref)
        try:
            await self.queue.enqueue(job)
        except QueueUnavailable as e:
            MODERATION_ENQUEUE_FAILURES_TOTAL.inc()
            log_error(
                logger,
                "Content published without moderation: queue unavailable",
                exception=e,
                content_type=ref.content_type.value,
                content_id=ref.content_id,
            )
            return None

        MODERATION_JOBS_ENQUEUED_TOTAL.labels(content_type=ref.content_type.value).inc()
        logger.info(
            "Moderation job enqueued",
            extra={"job_id": str(job.job_id), "content_key": job.idempotency_key},
        )
        return job


def get_moderation_service() -> ModerationService:
    """Dependency to get moderation service."""
    return ModerationService()
