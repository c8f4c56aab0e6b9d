"""Tests for the moderation queue brokers.

**Feature: content-screener, Property 6: Queue Hand-off and Recovery**
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from screener.core.exceptions import QueueUnavailable
from screener.modules.moderation.schemas import ContentType
from screener.modules.queue.broker import InMemoryModerationQueue, RedisModerationQueue
from screener.modules.queue.schemas import ModerationJob


def _job(content_id: str = "c1", attempt: int = 0) -> ModerationJob:
    return ModerationJob(
        content_type=ContentType.COMMENT,
        content_id=content_id,
        author_id="u1",
        text="hello",
        attempt=attempt,
    )


class TestInMemoryQueue:
    """**Feature: content-screener, Property 6: Queue Hand-off and Recovery**"""

    @pytest.mark.asyncio
    async def test_fifo_order(self) -> None:
        queue = InMemoryModerationQueue()
        jobs = [_job(f"c{i}") for i in range(3)]
        for job in jobs:
            await queue.enqueue(job)

        received = [await queue.dequeue(0.1) for _ in jobs]
        assert [j.job_id for j in received] == [j.job_id for j in jobs]

    @pytest.mark.asyncio
    async def test_dequeue_times_out_when_empty(self) -> None:
        assert await InMemoryModerationQueue().dequeue(0.01) is None

    @pytest.mark.asyncio
    async def test_unacked_jobs_recovered(self) -> None:
        queue = InMemoryModerationQueue()
        job = _job()
        await queue.enqueue(job)
        await queue.dequeue(0.1)
        assert (await queue.depth())["processing"] == 1

        assert await queue.recover() == 1
        depth = await queue.depth()
        assert depth["processing"] == 0
        assert depth["ready"] == 1
        assert (await queue.dequeue(0.1)).job_id == job.job_id

    @pytest.mark.asyncio
    async def test_released_job_is_redelivered(self) -> None:
        queue = InMemoryModerationQueue()
        job = _job()
        await queue.enqueue(job)
        received = await queue.dequeue(0.1)

        await queue.release(received)

        assert (await queue.depth())["processing"] == 0
        again = await queue.dequeue(0.1)
        assert again.job_id == job.job_id
        await queue.ack(again)
        await asyncio.wait_for(queue.join(), timeout=1.0)

    @pytest.mark.asyncio
    async def test_delayed_retry_promoted_when_due(self) -> None:
        queue = InMemoryModerationQueue()
        await queue.schedule_retry(_job(attempt=1), delay=0.0)
        await queue.schedule_retry(_job("later", attempt=1), delay=60.0)

        assert await queue.promote_due() == 1
        job = await queue.dequeue(0.1)
        assert job.content_id == "c1"
        assert job.attempt == 1
        assert (await queue.depth())["delayed"] == 1

    @pytest.mark.asyncio
    async def test_dead_letter_requeue_resets_attempts(self) -> None:
        queue = InMemoryModerationQueue()
        await queue.dead_letter(_job(attempt=5), "classifier down")

        letters = await queue.list_dead_letters()
        assert len(letters) == 1
        assert letters[0].reason == "classifier down"

        assert await queue.requeue_dead_letters() == 1
        job = await queue.dequeue(0.1)
        assert job.attempt == 0
        assert await queue.list_dead_letters() == []

    @pytest.mark.asyncio
    async def test_lock_serializes_same_key(self) -> None:
        queue = InMemoryModerationQueue()
        active = 0
        peak = 0

        async def critical() -> None:
            nonlocal active, peak
            async with queue.lock("COMMENT:c1"):
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1

        await asyncio.gather(*(critical() for _ in range(5)))
        assert peak == 1
        assert len(queue._locks) == 0

    @pytest.mark.asyncio
    async def test_lock_allows_different_keys(self) -> None:
        queue = InMemoryModerationQueue()
        entered = asyncio.Event()

        async def holder() -> None:
            async with queue.lock("COMMENT:a"):
                await asyncio.wait_for(entered.wait(), timeout=1.0)

        async def other() -> None:
            async with queue.lock("COMMENT:b"):
                entered.set()

        await asyncio.gather(holder(), other())


class TestRedisQueue:
    @pytest.mark.asyncio
    async def test_enqueue_failure_raises_queue_unavailable(self) -> None:
        client = MagicMock()
        client.lpush = AsyncMock(side_effect=RedisConnectionError("down"))
        queue = RedisModerationQueue(client=client, name="moderation", lock_timeout=30)

        with pytest.raises(QueueUnavailable):
            await queue.enqueue(_job())

    @pytest.mark.asyncio
    async def test_enqueue_pushes_serialized_job(self) -> None:
        client = MagicMock()
        client.lpush = AsyncMock(return_value=1)
        queue = RedisModerationQueue(client=client, name="moderation", lock_timeout=30)
        job = _job()

        await queue.enqueue(job)

        key, raw = client.lpush.await_args.args
        assert key == "moderation:ready"
        assert ModerationJob.model_validate_json(raw) == job

    @pytest.mark.asyncio
    async def test_dequeue_moves_to_processing_and_ack_removes(self) -> None:
        job = _job()
        raw = job.model_dump_json()
        client = MagicMock()
        client.blmove = AsyncMock(return_value=raw)
        client.lrem = AsyncMock(return_value=1)
        queue = RedisModerationQueue(client=client, name="moderation", lock_timeout=30)

        received = await queue.dequeue(1)
        assert received == job
        client.blmove.assert_awaited_once_with(
            "moderation:ready", "moderation:processing", 1, src="RIGHT", dest="LEFT"
        )

        await queue.ack(received)
        client.lrem.assert_awaited_once_with("moderation:processing", 1, raw)

    @pytest.mark.asyncio
    async def test_promote_only_moves_claimed_entries(self) -> None:
        client = MagicMock()
        client.zrangebyscore = AsyncMock(return_value=["a", "b"])
        # another worker already promoted "b"
        client.zrem = AsyncMock(side_effect=[1, 0])
        client.lpush = AsyncMock(return_value=1)
        queue = RedisModerationQueue(client=client, name="moderation", lock_timeout=30)

        assert await queue.promote_due() == 1
        client.lpush.assert_awaited_once_with("moderation:ready", "a")

    @pytest.mark.asyncio
    async def test_recover_moves_processing_back(self) -> None:
        client = MagicMock()
        client.lmove = AsyncMock(side_effect=["x", "y", None])
        queue = RedisModerationQueue(client=client, name="moderation", lock_timeout=30)

        assert await queue.recover() == 2

    def test_lock_key_layout(self) -> None:
        client = MagicMock()
        queue = RedisModerationQueue(client=client, name="moderation", lock_timeout=30)
        queue.lock("REVIEW:r9")
        client.lock.assert_called_once_with("moderation:lock:REVIEW:r9", timeout=30)

    @pytest.mark.asyncio
    async def test_unreadable_payload_discard_failure_raises_queue_unavailable(self) -> None:
        client = MagicMock()
        client.blmove = AsyncMock(return_value="not-json")
        client.lrem = AsyncMock(side_effect=RedisConnectionError("conn reset"))
        queue = RedisModerationQueue(client=client, name="moderation", lock_timeout=30)

        with pytest.raises(QueueUnavailable):
            await queue.dequeue(1)

    @pytest.mark.asyncio
    async def test_release_moves_job_back_to_ready_head(self) -> None:
        job = _job()
        raw = job.model_dump_json()
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[1, 1])
        client = MagicMock()
        client.blmove = AsyncMock(return_value=raw)
        client.pipeline = MagicMock(return_value=pipe)
        client.lrem = AsyncMock(return_value=1)
        queue = RedisModerationQueue(client=client, name="moderation", lock_timeout=30)

        received = await queue.dequeue(1)
        await queue.release(received)

        client.pipeline.assert_called_once_with(transaction=True)
        pipe.lrem.assert_called_once_with("moderation:processing", 1, raw)
        pipe.rpush.assert_called_once_with("moderation:ready", raw)
        # released jobs are no longer acknowledged by this worker
        await queue.ack(received)
        client.lrem.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_release_failure_keeps_job_in_flight(self) -> None:
        job = _job()
        raw = job.model_dump_json()
        pipe = MagicMock()
        pipe.execute = AsyncMock(side_effect=RedisConnectionError("conn reset"))
        client = MagicMock()
        client.blmove = AsyncMock(return_value=raw)
        client.pipeline = MagicMock(return_value=pipe)
        queue = RedisModerationQueue(client=client, name="moderation", lock_timeout=30)

        received = await queue.dequeue(1)
        with pytest.raises(QueueUnavailable):
            await queue.release(received)

        pipe.execute = AsyncMock(return_value=[1, 1])
        await queue.release(received)
        pipe.execute.assert_awaited_once()
