"""Repository for flag record database operations."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import desc, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from screener.core.exceptions import AlreadyFlagged
from screener.modules.flag.models import FlagRecord, FlagStatus


class FlagRepository:
    """Data access for flag records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        content_type: str,
        content_id: str,
        author_id: str,
        reason: str,
    ) -> FlagRecord:
        """Insert a PENDING flag.

        Raises:
            AlreadyFlagged: If the content already has a flag
        """
        flag = FlagRecord(
            content_type=content_type,
            content_id=content_id,
            author_id=author_id,
            reason=reason,
            status=FlagStatus.PENDING.value,
        )
        self.session.add(flag)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise AlreadyFlagged(content_type, content_id) from e
        await self.session.refresh(flag)
        return flag

    async def get_by_id(self, flag_id: uuid.UUID) -> Optional[FlagRecord]:
        result = await self.session.execute(
            select(FlagRecord).where(FlagRecord.id == flag_id)
        )
        return result.scalar_one_or_none()

    async def get_by_content(self, content_type: str, content_id: str) -> Optional[FlagRecord]:
        result = await self.session.execute(
            select(FlagRecord).where(
                FlagRecord.content_type == content_type,
                FlagRecord.content_id == content_id,
            )
        )
        return result.scalar_one_or_none()

    async def resolve(
        self,
        flag_id: uuid.UUID,
        status: FlagStatus,
        reviewed_by: str,
        rejection_reason: Optional[str] = None,
    ) -> Optional[FlagRecord]:
        """Move a PENDING flag to `status` in a single conditional update.

        When two admins race only one UPDATE matches the PENDING row; the
        other gets None. Callers commit.

        Returns:
            The updated flag, or None if it is missing or no longer PENDING
        """
        now = datetime.utcnow()
        values = {
            "status": status.value,
            "reviewed_by": reviewed_by,
            "reviewed_at": now,
            "updated_at": now,
        }
        if status == FlagStatus.REJECTED:
            values["rejection_reason"] = (
                rejection_reason if rejection_reason else FlagRecord.reason
            )

        stmt = (
            update(FlagRecord)
            .where(
                FlagRecord.id == flag_id,
                FlagRecord.status == FlagStatus.PENDING.value,
            )
            .values(**values)
            .returning(FlagRecord)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_flags(
        self,
        status: Optional[str] = None,
        content_type: Optional[str] = None,
        author_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[FlagRecord], int]:
        """List flags newest first with optional filters.

        Returns:
            Tuple of (flags, total matching count)
        """
        conditions = []
        if status:
            conditions.append(FlagRecord.status == status)
        if content_type:
            conditions.append(FlagRecord.content_type == content_type)
        if author_id:
            conditions.append(FlagRecord.author_id == author_id)

        count_query = select(func.count()).select_from(FlagRecord).where(*conditions)
        total = (await self.session.execute(count_query)).scalar() or 0

        query = (
            select(FlagRecord)
            .where(*conditions)
            .order_by(desc(FlagRecord.created_at), desc(FlagRecord.id))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    async def count_by_status(self) -> dict[str, int]:
        result = await self.session.execute(
            select(FlagRecord.status, func.count()).group_by(FlagRecord.status)
        )
        counts = {status.value: 0 for status in FlagStatus}
        counts.update({status: count for status, count in result.all()})
        return counts

    async def count_by_content_type(self) -> dict[str, int]:
        result = await self.session.execute(
            select(FlagRecord.content_type, func.count()).group_by(FlagRecord.content_type)
        )
        return {content_type: count for content_type, count in result.all()}

    async def recent(self, limit: int = 5) -> list[FlagRecord]:
        result = await self.session.execute(
            select(FlagRecord)
            .order_by(desc(FlagRecord.created_at), desc(FlagRecord.id))
            .limit(limit)
        )
        return list(result.scalars().all())
