"""Moderation queue brokers.

The Redis broker keeps jobs in plain lists so they survive worker restarts:

    <name>:ready        LPUSH on enqueue, BLMOVE'd to processing on dequeue
    <name>:processing   jobs handed to a worker and not yet acknowledged
    <name>:delayed      sorted set of retries scored by their due time
    <name>:dead         dead-letter list
    <name>:lock:<key>   per-content lock serializing jobs for one content item

The in-memory broker has the same surface and backs tests and
single-process development.
"""

import asyncio
import heapq
import json
import logging
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from screener.core.config import settings
from screener.core.exceptions import QueueUnavailable
from screener.modules.queue.schemas import DeadLetter, ModerationJob

logger = logging.getLogger(__name__)


class ModerationQueue(ABC):
    """Durable FIFO of moderation jobs with delayed retry and dead-letter."""

    @abstractmethod
    async def enqueue(self, job: ModerationJob) -> None:
        """Add a job to the ready list.

        Raises:
            QueueUnavailable: If the broker cannot be reached
        """

    @abstractmethod
    async def dequeue(self, timeout: float) -> Optional[ModerationJob]:
        """Take the oldest ready job, waiting up to `timeout` seconds."""

    @abstractmethod
    async def ack(self, job: ModerationJob) -> None:
        """Drop a dequeued job from the in-flight set."""

    @abstractmethod
    async def release(self, job: ModerationJob) -> None:
        """Return an unfinished in-flight job to the ready list.

        Raises:
            QueueUnavailable: If the broker cannot be reached; the job stays in flight
        """

    @abstractmethod
    async def schedule_retry(self, job: ModerationJob, delay: float) -> None:
        """Make `job` ready again after `delay` seconds."""

    @abstractmethod
    async def promote_due(self) -> int:
        """Move retries whose delay elapsed to the ready list."""

    @abstractmethod
    async def dead_letter(self, job: ModerationJob, reason: str) -> None:
        """Park a job that exhausted its retries."""

    @abstractmethod
    async def list_dead_letters(self, limit: int = 100) -> list[DeadLetter]:
        pass

    @abstractmethod
    async def requeue_dead_letters(self, limit: int = 100) -> int:
        """Move dead letters back to the ready list with a fresh attempt count."""

    @abstractmethod
    async def recover(self) -> int:
        """Return jobs left in flight by a crashed worker to the ready list."""

    @abstractmethod
    def lock(self, key: str):
        """Async context manager holding the per-content lock for `key`."""

    @abstractmethod
    async def depth(self) -> dict[str, int]:
        pass

    async def close(self) -> None:
        pass


class RedisModerationQueue(ModerationQueue):
    """Redis-backed broker."""

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        name: Optional[str] = None,
        lock_timeout: Optional[int] = None,
    ):
        self._redis = client or redis.from_url(settings.REDIS_URL, decode_responses=True)
        self._owns_client = client is None
        self.name = name or settings.MODERATION_QUEUE_NAME
        self.lock_timeout = lock_timeout or settings.MODERATION_LOCK_TIMEOUT_SECONDS
        # job_id -> raw payload as stored in the processing list
        self._inflight: dict[str, str] = {}

    @property
    def ready_key(self) -> str:
        return f"{self.name}:ready"

    @property
    def processing_key(self) -> str:
        return f"{self.name}:processing"

    @property
    def delayed_key(self) -> str:
        return f"{self.name}:delayed"

    @property
    def dead_key(self) -> str:
        return f"{self.name}:dead"

    def lock_key(self, key: str) -> str:
        return f"{self.name}:lock:{key}"

    async def enqueue(self, job: ModerationJob) -> None:
        try:
            await self._redis.lpush(self.ready_key, job.model_dump_json())
        except RedisError as e:
            raise QueueUnavailable(f"Could not enqueue job {job.job_id}: {e}") from e

    async def dequeue(self, timeout: float) -> Optional[ModerationJob]:
        try:
            raw = await self._redis.blmove(
                self.ready_key, self.processing_key, timeout, src="RIGHT", dest="LEFT"
            )
        except RedisError as e:
            raise QueueUnavailable(f"Could not dequeue: {e}") from e
        if raw is None:
            return None

        try:
            job = ModerationJob.model_validate_json(raw)
        except ValueError as e:
            logger.error(
                "Discarding unreadable moderation job",
                extra={"payload": raw[:200], "error": str(e)},
            )
            try:
                await self._redis.lrem(self.processing_key, 1, raw)
            except RedisError as e:
                raise QueueUnavailable(f"Could not discard unreadable job: {e}") from e
            return None

        self._inflight[str(job.job_id)] = raw
        return job

    async def ack(self, job: ModerationJob) -> None:
        raw = self._inflight.pop(str(job.job_id), None)
        if raw is None:
            return
        try:
            await self._redis.lrem(self.processing_key, 1, raw)
        except RedisError as e:
            raise QueueUnavailable(f"Could not acknowledge job {job.job_id}: {e}") from e

    async def release(self, job: ModerationJob) -> None:
        raw = self._inflight.get(str(job.job_id))
        if raw is None:
            return
        try:
            pipe = self._redis.pipeline(transaction=True)
            pipe.lrem(self.processing_key, 1, raw)
            # dequeue pops from the right, so this job is next
            pipe.rpush(self.ready_key, raw)
            await pipe.execute()
        except RedisError as e:
            raise QueueUnavailable(f"Could not release job {job.job_id}: {e}") from e
        del self._inflight[str(job.job_id)]

    async def schedule_retry(self, job: ModerationJob, delay: float) -> None:
        due = time.time() + delay
        try:
            await self._redis.zadd(self.delayed_key, {job.model_dump_json(): due})
        except RedisError as e:
            raise QueueUnavailable(f"Could not schedule retry for {job.job_id}: {e}") from e

    async def promote_due(self) -> int:
        try:
            due = await self._redis.zrangebyscore(self.delayed_key, "-inf", time.time())
            promoted = 0
            for raw in due:
                # ZREM succeeds for exactly one promoter when several workers race
                if await self._redis.zrem(self.delayed_key, raw):
                    await self._redis.lpush(self.ready_key, raw)
                    promoted += 1
        except RedisError as e:
            raise QueueUnavailable(f"Could not promote delayed jobs: {e}") from e
        return promoted

    async def dead_letter(self, job: ModerationJob, reason: str) -> None:
        entry = DeadLetter(job=job, reason=reason)
        try:
            await self._redis.lpush(self.dead_key, entry.model_dump_json())
        except RedisError as e:
            raise QueueUnavailable(f"Could not dead-letter job {job.job_id}: {e}") from e

    async def list_dead_letters(self, limit: int = 100) -> list[DeadLetter]:
        try:
            raws = await self._redis.lrange(self.dead_key, 0, limit - 1)
        except RedisError as e:
            raise QueueUnavailable(f"Could not read dead letters: {e}") from e
        return [DeadLetter.model_validate_json(raw) for raw in raws]

    async def requeue_dead_letters(self, limit: int = 100) -> int:
        requeued = 0
        try:
            for _ in range(limit):
                raw = await self._redis.rpop(self.dead_key)
                if raw is None:
                    break
                entry = DeadLetter.model_validate_json(raw)
                job = entry.job.model_copy(update={"attempt": 0})
                await self._redis.lpush(self.ready_key, job.model_dump_json())
                requeued += 1
        except RedisError as e:
            raise QueueUnavailable(f"Could not requeue dead letters: {e}") from e
        return requeued

    async def recover(self) -> int:
        recovered = 0
        try:
            while await self._redis.lmove(
                self.processing_key, self.ready_key, src="RIGHT", dest="RIGHT"
            ):
                recovered += 1
        except RedisError as e:
            raise QueueUnavailable(f"Could not recover in-flight jobs: {e}") from e
        if recovered:
            logger.warning("Recovered in-flight moderation jobs", extra={"count": recovered})
        return recovered

    def lock(self, key: str):
        return self._redis.lock(self.lock_key(key), timeout=self.lock_timeout)

    async def depth(self) -> dict[str, int]:
        try:
            pipe = self._redis.pipeline()
            pipe.llen(self.ready_key)
            pipe.llen(self.processing_key)
            pipe.zcard(self.delayed_key)
            pipe.llen(self.dead_key)
            ready, processing, delayed, dead = await pipe.execute()
        except RedisError as e:
            raise QueueUnavailable(f"Could not read queue depth: {e}") from e
        return {"ready": ready, "processing": processing, "delayed": delayed, "dead": dead}

    async def close(self) -> None:
        if self._owns_client:
            await self._redis.aclose()


class _KeyedLocks:
    """asyncio locks created on demand and dropped when nobody holds them."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class InMemoryModerationQueue(ModerationQueue):
    """Process-local broker. Jobs do not survive a restart."""

    def __init__(self):
        self._ready: asyncio.Queue[ModerationJob] = asyncio.Queue()
        self._processing: dict[str, ModerationJob] = {}
        self._delayed: list[tuple[float, int, ModerationJob]] = []
        self._dead: list[DeadLetter] = []
        self._locks = _KeyedLocks()
        self._seq = 0

    async def enqueue(self, job: ModerationJob) -> None:
        self._ready.put_nowait(job)

    async def dequeue(self, timeout: float) -> Optional[ModerationJob]:
        try:
            job = await asyncio.wait_for(self._ready.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None
        self._processing[str(job.job_id)] = job
        return job

    async def ack(self, job: ModerationJob) -> None:
        if self._processing.pop(str(job.job_id), None) is not None:
            self._ready.task_done()

    async def release(self, job: ModerationJob) -> None:
        held = self._processing.pop(str(job.job_id), None)
        if held is None:
            return
        self._ready.put_nowait(held)
        self._ready.task_done()

    async def schedule_retry(self, job: ModerationJob, delay: float) -> None:
        self._seq += 1
        heapq.heappush(self._delayed, (time.monotonic() + delay, self._seq, job))

    async def promote_due(self) -> int:
        now = time.monotonic()
        promoted = 0
        while self._delayed and self._delayed[0][0] <= now:
            _, _, job = heapq.heappop(self._delayed)
            self._ready.put_nowait(job)
            promoted += 1
        return promoted

    async def dead_letter(self, job: ModerationJob, reason: str) -> None:
        self._dead.insert(0, DeadLetter(job=job, reason=reason))

    async def list_dead_letters(self, limit: int = 100) -> list[DeadLetter]:
        return list(self._dead[:limit])

    async def requeue_dead_letters(self, limit: int = 100) -> int:
        requeued = 0
        while self._dead and requeued < limit:
            entry = self._dead.pop()
            self._ready.put_nowait(entry.job.model_copy(update={"attempt": 0}))
            requeued += 1
        return requeued

    async def recover(self) -> int:
        recovered = len(self._processing)
        for job in list(self._processing.values()):
            self._ready.task_done()
            self._ready.put_nowait(job)
        self._processing.clear()
        return recovered

    def lock(self, key: str):
        return self._locks.hold(key)

    async def depth(self) -> dict[str, int]:
        return {
            "ready": self._ready.qsize(),
            "processing": len(self._processing),
            "delayed": len(self._delayed),
            "dead": len(self._dead),
        }

    async def join(self) -> None:
        """Wait until every enqueued job has been acknowledged."""
        await self._ready.join()


_queue: Optional[ModerationQueue] = None


def get_moderation_queue() -> ModerationQueue:
    """Get or create the configured moderation queue."""
    global _queue
    if _queue is None:
        if settings.MODERATION_QUEUE_BACKEND == "memory":
            _queue = InMemoryModerationQueue()
        elif settings.MODERATION_QUEUE_BACKEND == "redis":
            _queue = RedisModerationQueue()
        else:
            raise ValueError(f"Unknown moderation queue backend: {settings.MODERATION_QUEUE_BACKEND}")
    return _queue
