"""Existence checks against the CRUD layer's content tables.

Content may be deleted between enqueue and processing; such jobs are
cleared without a flag.
"""

from typing import Optional, Protocol

from sqlalchemy import column, literal, select, table
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from screener.core.config import settings
from screener.core.database import async_session_maker
from screener.modules.moderation.schemas import ContentType


class ContentLookup(Protocol):
    async def exists(self, content_type: ContentType, content_id: str) -> bool:
        ...


class TableContentLookup:
    """Looks content up by primary key in the configured tables."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession] = async_session_maker,
        tables: Optional[dict[ContentType, str]] = None,
    ):
        self.session_maker = session_maker
        self.tables = tables or {
            ContentType.COMMENT: settings.MODERATION_COMMENT_TABLE,
            ContentType.REVIEW: settings.MODERATION_REVIEW_TABLE,
        }

    async def exists(self, content_type: ContentType, content_id: str) -> bool:
        content = table(self.tables[content_type], column("id"))
        query = select(literal(1)).select_from(content).where(content.c.id == content_id).limit(1)
        async with self.session_maker() as session:
            result = await session.execute(query)
            return result.first() is not None
