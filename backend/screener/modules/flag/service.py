"""Flag store service.

Owns flag creation and the PENDING -> APPROVED / REJECTED transitions. Each
successful write triggers exactly one owner notification after commit.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from screener.core.database import async_session_maker
from screener.core.exceptions import InvalidTransition, NotFound
from screener.core.metrics import FLAG_TRANSITIONS_TOTAL, FLAGS_CREATED_TOTAL
from screener.modules.auth.principal import Principal, require_admin
from screener.modules.flag.models import FlagStatus
from screener.modules.flag.repository import FlagRepository
from screener.modules.flag.schemas import FlagFilters, FlagListResponse, FlagRecordResponse
from screener.modules.moderation.schemas import ContentType
from screener.modules.notification.models import NotificationEvent
from screener.modules.notification.service import NotificationDispatcher
from screener.modules.stats.service import invalidate_stats_cache

logger = logging.getLogger(__name__)


class FlagService:
    """Service for flag records."""

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.session = session
        self.repository = FlagRepository(session)
        self.dispatcher = dispatcher or NotificationDispatcher(session)

    async def create_flag(
        self,
        content_type: ContentType,
        content_id: str,
        author_id: str,
        reason: str,
    ) -> FlagRecordResponse:
        """Create a PENDING flag and notify the owner.

        Raises:
            AlreadyFlagged: If the content already has a flag
        """
        flag = await self.repository.create(
            content_type=content_type.value,
            content_id=content_id,
            author_id=author_id,
            reason=reason,
        )
        FLAGS_CREATED_TOTAL.labels(content_type=content_type.value).inc()
        invalidate_stats_cache()
        logger.info(
            "Content flagged",
            extra={
                "flag_id": str(flag.id),
                "content_type": content_type.value,
                "content_id": content_id,
                "reason": reason,
            },
        )

        response = FlagRecordResponse.model_validate(flag)
        await self.dispatcher.notify(author_id, NotificationEvent.FLAGGED, response)
        return response

    async def approve(self, flag_id: uuid.UUID, principal: Principal) -> FlagRecordResponse:
        """Approve a pending flag.

        Raises:
            Forbidden: If the principal is not an admin
            NotFound: If the flag does not exist
            InvalidTransition: If the flag is no longer PENDING
        """
        return await self._resolve(flag_id, principal, FlagStatus.APPROVED)

    async def reject(
        self,
        flag_id: uuid.UUID,
        principal: Principal,
        reason: Optional[str] = None,
    ) -> FlagRecordResponse:
        """Reject a pending flag. Without a reason the flag's own reason is kept.

        Raises:
            Forbidden: If the principal is not an admin
            NotFound: If the flag does not exist
            InvalidTransition: If the flag is no longer PENDING
        """
        return await self._resolve(flag_id, principal, FlagStatus.REJECTED, reason)

    async def _resolve(
        self,
        flag_id: uuid.UUID,
        principal: Principal,
        status: FlagStatus,
        rejection_reason: Optional[str] = None,
    ) -> FlagRecordResponse:
        require_admin(principal)

        flag = await self.repository.resolve(
            flag_id,
            status,
            reviewed_by=principal.user_id,
            rejection_reason=rejection_reason,
        )
        if flag is None:
            await self.session.rollback()
            existing = await self.repository.get_by_id(flag_id)
            if existing is None:
                raise NotFound(f"Flag {flag_id} not found")
            raise InvalidTransition(flag_id, existing.status)

        response = FlagRecordResponse.model_validate(flag)
        await self.session.commit()

        FLAG_TRANSITIONS_TOTAL.labels(status=status.value).inc()
        invalidate_stats_cache()
        logger.info(
            "Flag resolved",
            extra={"flag_id": str(flag_id), "status": status.value, "reviewed_by": principal.user_id},
        )

        event = NotificationEvent.APPROVED if status == FlagStatus.APPROVED else NotificationEvent.REJECTED
        await self.dispatcher.notify(response.author_id, event, response)
        return response

    async def get_flag(self, flag_id: uuid.UUID) -> FlagRecordResponse:
        flag = await self.repository.get_by_id(flag_id)
        if flag is None:
            raise NotFound(f"Flag {flag_id} not found")
        return FlagRecordResponse.model_validate(flag)

    async def list_by_status(self, principal: Principal, filters: FlagFilters) -> FlagListResponse:
        """Admin listing with optional status, type and author filters."""
        require_admin(principal)
        return await self._list(filters)

    async def list_for_user(self, principal: Principal, filters: FlagFilters) -> FlagListResponse:
        """Flags on the caller's own content; the author filter is forced."""
        scoped = filters.model_copy(update={"author_id": principal.user_id})
        return await self._list(scoped)

    async def _list(self, filters: FlagFilters) -> FlagListResponse:
        flags, total = await self.repository.list_flags(
            status=filters.status.value if filters.status else None,
            content_type=filters.content_type.value if filters.content_type else None,
            author_id=filters.author_id,
            page=filters.page,
            limit=filters.limit,
        )
        return FlagListResponse(
            items=[FlagRecordResponse.model_validate(flag) for flag in flags],
            total=total,
            page=filters.page,
            limit=filters.limit,
            pages=(total + filters.limit - 1) // filters.limit,
        )


@asynccontextmanager
async def flag_service_scope(
    session_maker: async_sessionmaker[AsyncSession] = async_session_maker,
) -> AsyncIterator[FlagService]:
    """FlagService bound to a fresh session, for use outside a request."""
    async with session_maker() as session:
        yield FlagService(session)
