"""Moderation worker pool.

Each job runs under the per-content lock:

    content still exists?  -> no: CLEARED
    classify               -> classifier outage: retry with backoff, then dead-letter
    decide                 -> not toxic: CLEARED
    create flag            -> FLAGGED, or DISCARDED when a flag already exists

Jobs are acknowledged only after their outcome is recorded. A job whose
outcome could not be written back is released to the ready list once the
broker answers again; a crashed worker leaves its jobs in flight for
`recover` on the next start.
"""

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from typing import Callable, Optional, Protocol

from screener.core.config import settings
from screener.core.exceptions import (
    AlreadyFlagged,
    QueueUnavailable,
    ServiceUnavailable,
    ValidationError,
)
from screener.core.logging import correlation_scope, log_error
from screener.core.metrics import (
    MODERATION_DEAD_LETTER_TOTAL,
    MODERATION_JOB_RETRIES_TOTAL,
    MODERATION_JOBS_PROCESSED_TOTAL,
    MODERATION_WORKERS_BUSY,
)
from screener.core.tracing import create_span
from screener.modules.classifier.schemas import ClassificationResult
from screener.modules.moderation.decision import DecisionPolicy, decide
from screener.modules.moderation.schemas import ContentType
from screener.modules.queue.broker import ModerationQueue
from screener.modules.queue.content import ContentLookup
from screener.modules.queue.retry import RetryConfig, moderation_retry_config
from screener.modules.queue.schemas import JobOutcome, ModerationJob

logger = logging.getLogger(__name__)

HELD_FOR_REVIEW_REASON = "Held for review: automated analysis unavailable"

BROKER_BACKOFF_SECONDS = 1.0


class Classifier(Protocol):
    async def analyze(self, text: str) -> ClassificationResult:
        ...


class FlagStore(Protocol):
    async def create_flag(
        self,
        content_type: ContentType,
        content_id: str,
        author_id: str,
        reason: str,
    ) -> object:
        ...


FlagStoreScope = Callable[[], AbstractAsyncContextManager[FlagStore]]


class ModerationWorker:
    """Processes one moderation job at a time."""

    def __init__(
        self,
        queue: ModerationQueue,
        classifier: Classifier,
        flag_store_scope: FlagStoreScope,
        content_lookup: ContentLookup,
        policy: Optional[DecisionPolicy] = None,
        retry_config: Optional[RetryConfig] = None,
        fail_open: Optional[bool] = None,
    ):
        self.queue = queue
        self.classifier = classifier
        self.flag_store_scope = flag_store_scope
        self.content_lookup = content_lookup
        self.policy = policy or DecisionPolicy.from_settings()
        self.retry_config = retry_config or moderation_retry_config()
        self.fail_open = settings.MODERATION_FAIL_OPEN if fail_open is None else fail_open

    async def handle(self, job: ModerationJob) -> JobOutcome:
        """Process, record the outcome and acknowledge a dequeued job.

        Raises:
            QueueUnavailable: If the outcome could not be written back to the
                broker; the pool then releases the job
        """
        MODERATION_WORKERS_BUSY.inc()
        try:
            with correlation_scope(str(job.job_id)), create_span(
                "moderation.process_job",
                attributes={
                    "job.id": str(job.job_id),
                    "job.attempt": job.attempt,
                    "content.type": job.content_type.value,
                },
            ):
                try:
                    outcome = await self.process(job)
                except QueueUnavailable:
                    raise
                except Exception as e:
                    log_error(
                        logger,
                        "Moderation job failed unexpectedly",
                        exception=e,
                        job_id=str(job.job_id),
                        content_key=job.idempotency_key,
                    )
                    outcome = await self._retry_or_dead_letter(job, f"{type(e).__name__}: {e}")

                await self.queue.ack(job)
                logger.info(
                    "Moderation job processed",
                    extra={
                        "job_id": str(job.job_id),
                        "content_key": job.idempotency_key,
                        "attempt": job.attempt + 1,
                        "outcome": outcome.value,
                    },
                )
        finally:
            MODERATION_WORKERS_BUSY.dec()

        MODERATION_JOBS_PROCESSED_TOTAL.labels(outcome=outcome.value).inc()
        return outcome

    async def process(self, job: ModerationJob) -> JobOutcome:
        async with self.queue.lock(job.idempotency_key):
            if not await self.content_lookup.exists(job.content_type, job.content_id):
                logger.info(
                    "Content deleted before moderation",
                    extra={"content_key": job.idempotency_key},
                )
                return JobOutcome.CLEARED

            try:
                classification = await self.classifier.analyze(job.text)
            except ValidationError as e:
                logger.warning(
                    "Content cannot be classified",
                    extra={"content_key": job.idempotency_key, "error": e.message},
                )
                return JobOutcome.CLEARED
            except ServiceUnavailable as e:
                return await self._retry_or_dead_letter(job, e.message)

            verdict = decide(classification, self.policy)
            if not verdict.is_toxic:
                return JobOutcome.CLEARED

            return await self._flag(job, verdict.reason)

    async def _flag(self, job: ModerationJob, reason: str) -> JobOutcome:
        async with self.flag_store_scope() as store:
            try:
                await store.create_flag(
                    content_type=job.content_type,
                    content_id=job.content_id,
                    author_id=job.author_id,
                    reason=reason,
                )
            except AlreadyFlagged:
                logger.debug(
                    "Duplicate flag discarded",
                    extra={"content_key": job.idempotency_key},
                )
                return JobOutcome.DISCARDED
        return JobOutcome.FLAGGED

    async def _retry_or_dead_letter(self, job: ModerationJob, error: str) -> JobOutcome:
        failed = job.next_attempt()

        if self.retry_config.should_retry(failed.attempt):
            delay = self.retry_config.calculate_delay(failed.attempt)
            await self.queue.schedule_retry(failed, delay)
            MODERATION_JOB_RETRIES_TOTAL.inc()
            logger.warning(
                "Moderation job scheduled for retry",
                extra={
                    "job_id": str(job.job_id),
                    "attempt": failed.attempt,
                    "delay_seconds": delay,
                    "error": error,
                },
            )
            return JobOutcome.RETRYING

        await self.queue.dead_letter(failed, error)
        MODERATION_DEAD_LETTER_TOTAL.inc()
        log_error(
            logger,
            "Moderation job dead-lettered",
            job_id=str(job.job_id),
            content_key=job.idempotency_key,
            attempts=failed.attempt,
            error=error,
            fail_open=self.fail_open,
        )

        if not self.fail_open:
            await self._flag(job, HELD_FOR_REVIEW_REASON)
        return JobOutcome.DEAD_LETTERED


class ModerationWorkerPool:
    """Runs `concurrency` workers plus a delayed-retry promoter."""

    def __init__(
        self,
        worker: ModerationWorker,
        queue: ModerationQueue,
        concurrency: Optional[int] = None,
        poll_timeout: Optional[float] = None,
        promote_interval: float = 0.5,
    ):
        self.worker = worker
        self.queue = queue
        self.concurrency = concurrency or settings.MODERATION_WORKER_CONCURRENCY
        self.poll_timeout = poll_timeout or settings.MODERATION_DEQUEUE_TIMEOUT_SECONDS
        self.promote_interval = promote_interval
        self._stopping = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks) and not self._stopping.is_set()

    async def start(self) -> None:
        await self.queue.recover()
        self._stopping.clear()
        self._tasks = [
            asyncio.create_task(self._run(index), name=f"moderation-worker-{index}")
            for index in range(self.concurrency)
        ]
        self._tasks.append(asyncio.create_task(self._promote_loop(), name="moderation-promoter"))
        logger.info("Moderation worker pool started", extra={"concurrency": self.concurrency})

    async def stop(self) -> None:
        """Let in-progress jobs finish, then stop all loops."""
        self._stopping.set()
        await asyncio.gather(*self._tasks)
        self._tasks = []
        logger.info("Moderation worker pool stopped")

    async def _run(self, index: int) -> None:
        while not self._stopping.is_set():
            try:
                job = await self.queue.dequeue(self.poll_timeout)
            except QueueUnavailable as e:
                logger.warning("Moderation queue unavailable", extra={"worker": index, "error": e.message})
                await asyncio.sleep(BROKER_BACKOFF_SECONDS)
                continue
            except Exception as e:
                log_error(logger, "Moderation dequeue failed", exception=e, worker=index)
                await asyncio.sleep(BROKER_BACKOFF_SECONDS)
                continue
            if job is None:
                continue

            try:
                await self.worker.handle(job)
            except Exception as e:
                log_error(
                    logger,
                    "Could not record moderation outcome; releasing job",
                    exception=e,
                    worker=index,
                    job_id=str(job.job_id),
                )
                await self._release(job, index)

    async def _release(self, job: ModerationJob, index: int) -> None:
        """Return `job` to the ready list, waiting out broker outages.

        Gives up only when the pool stops; `recover` then picks the job up.
        """
        while True:
            try:
                await self.queue.release(job)
                return
            except QueueUnavailable as e:
                if self._stopping.is_set():
                    return
                logger.warning(
                    "Could not release moderation job",
                    extra={"worker": index, "job_id": str(job.job_id), "error": e.message},
                )
                await asyncio.sleep(BROKER_BACKOFF_SECONDS)

    async def _promote_loop(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.queue.promote_due()
            except QueueUnavailable as e:
                logger.warning("Could not promote delayed jobs", extra={"error": e.message})
            await asyncio.sleep(self.promote_interval)
