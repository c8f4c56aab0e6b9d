"""Shared fixtures: a throwaway SQLite database per test."""

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from screener.core.database import Base
from screener.modules.flag import models as flag_models  # noqa: F401
from screener.modules.notification import models as notification_models  # noqa: F401
from screener.modules.stats.service import invalidate_stats_cache


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    """Session factory bound to a fresh SQLite file with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'screener.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    invalidate_stats_cache()
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    invalidate_stats_cache()
    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session
