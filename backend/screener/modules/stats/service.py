"""Moderation statistics for the admin dashboard.

Summaries are cached in-process for STATS_CACHE_TTL_SECONDS; flag writes in
this process invalidate the cache, writes from the worker process show up
once the entry expires.
"""

import time
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from screener.core.config import settings
from screener.modules.flag.models import FlagStatus
from screener.modules.flag.repository import FlagRepository
from screener.modules.flag.schemas import FlagRecordResponse
from screener.modules.moderation.schemas import ContentType


class StatsSummary(BaseModel):
    """Totals by status and content type plus the most recent flags."""
    total: int
    by_status: dict[str, int]
    by_content_type: dict[str, int]
    recent_flagged: list[FlagRecordResponse]
    generated_at: datetime = Field(default_factory=datetime.utcnow)


class _SummaryCache:
    def __init__(self):
        self._value: Optional[StatsSummary] = None
        self._expires_at = 0.0

    def get(self) -> Optional[StatsSummary]:
        if self._value is not None and time.monotonic() < self._expires_at:
            return self._value
        return None

    def put(self, value: StatsSummary, ttl: float) -> None:
        self._value = value
        self._expires_at = time.monotonic() + ttl

    def clear(self) -> None:
        self._value = None
        self._expires_at = 0.0


_cache = _SummaryCache()


def invalidate_stats_cache() -> None:
    """Drop the cached summary after a flag is created or resolved."""
    _cache.clear()


class StatsAggregator:
    """Computes dashboard summaries from the flag store."""

    def __init__(
        self,
        session: AsyncSession,
        recent_limit: Optional[int] = None,
        cache_ttl: Optional[float] = None,
    ):
        self.repository = FlagRepository(session)
        self.recent_limit = recent_limit or settings.STATS_RECENT_LIMIT
        self.cache_ttl = settings.STATS_CACHE_TTL_SECONDS if cache_ttl is None else cache_ttl

    async def summary(self) -> StatsSummary:
        cached = _cache.get()
        if cached is not None:
            return cached

        by_status = await self.repository.count_by_status()
        by_type = {content_type.value: 0 for content_type in ContentType}
        by_type.update(await self.repository.count_by_content_type())
        recent = await self.repository.recent(self.recent_limit)

        summary = StatsSummary(
            total=sum(by_status.get(status.value, 0) for status in FlagStatus),
            by_status=by_status,
            by_content_type=by_type,
            recent_flagged=[FlagRecordResponse.model_validate(flag) for flag in recent],
        )
        if self.cache_ttl > 0:
            _cache.put(summary, self.cache_ttl)
        return summary
