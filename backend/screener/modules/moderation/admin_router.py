"""FastAPI router for admin moderation endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from screener.core.database import get_db
from screener.modules.auth.principal import Principal, get_admin_principal
from screener.modules.flag.models import FlagStatus
from screener.modules.flag.schemas import (
    FlagFilters,
    FlagListResponse,
    FlagRecordResponse,
    RejectRequest,
)
from screener.modules.flag.service import FlagService
from screener.modules.moderation.router import get_flag_service
from screener.modules.moderation.schemas import ContentType
from screener.modules.queue.broker import ModerationQueue, get_moderation_queue
from screener.modules.queue.schemas import DeadLetterListResponse, RequeueResponse
from screener.modules.stats.service import StatsAggregator, StatsSummary

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/flagged", response_model=FlagListResponse)
async def list_flagged_content(
    status: Optional[FlagStatus] = Query(None),
    type: Optional[ContentType] = Query(None),
    user_id: Optional[str] = Query(None, max_length=64),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin: Principal = Depends(get_admin_principal),
    service: FlagService = Depends(get_flag_service),
):
    filters = FlagFilters(
        status=status, content_type=type, author_id=user_id, page=page, limit=limit
    )
    return await service.list_by_status(admin, filters)


@router.put("/flagged/{flag_id}/approve", response_model=FlagRecordResponse)
async def approve_flag(
    flag_id: uuid.UUID,
    admin: Principal = Depends(get_admin_principal),
    service: FlagService = Depends(get_flag_service),
):
    """Approve a pending flag; the content stays published."""
    return await service.approve(flag_id, admin)


@router.put("/flagged/{flag_id}/reject", response_model=FlagRecordResponse)
async def reject_flag(
    flag_id: uuid.UUID,
    request: Optional[RejectRequest] = Body(None),
    admin: Principal = Depends(get_admin_principal),
    service: FlagService = Depends(get_flag_service),
):
    """Reject a pending flag with an optional reason."""
    reason = request.reason if request else None
    return await service.reject(flag_id, admin, reason)


@router.get("/stats", response_model=StatsSummary)
async def get_moderation_stats(
    admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_db),
):
    return await StatsAggregator(db).summary()


@router.get("/dead-letters", response_model=DeadLetterListResponse)
async def list_dead_letters(
    limit: int = Query(50, ge=1, le=500),
    admin: Principal = Depends(get_admin_principal),
    queue: ModerationQueue = Depends(get_moderation_queue),
):
    """Jobs that exhausted their retries."""
    items = await queue.list_dead_letters(limit)
    return DeadLetterListResponse(items=items, total=len(items))


@router.post("/dead-letters/requeue", response_model=RequeueResponse)
async def requeue_dead_letters(
    limit: int = Query(100, ge=1, le=1000),
    admin: Principal = Depends(get_admin_principal),
    queue: ModerationQueue = Depends(get_moderation_queue),
):
    """Return dead-lettered jobs to the queue with a fresh retry budget."""
    requeued = await queue.requeue_dead_letters(limit)
    return RequeueResponse(requeued=requeued)
