"""FastAPI router for user-facing moderation endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from screener.core.database import get_db
from screener.core.exceptions import Forbidden
from screener.modules.auth.principal import Principal, get_current_principal
from screener.modules.flag.models import FlagStatus
from screener.modules.flag.schemas import FlagFilters, FlagListResponse
from screener.modules.flag.service import FlagService
from screener.modules.moderation.schemas import (
    ClassificationInfo,
    ContentRef,
    ContentType,
    PreviewCheckRequest,
    PreviewCheckResponse,
    SubmissionResponse,
)
from screener.modules.moderation.service import ModerationService, get_moderation_service
from screener.modules.notification.repository import NotificationPreferenceRepository
from screener.modules.notification.schemas import (
    NotificationPreferenceResponse,
    NotificationPreferenceUpdate,
)

router = APIRouter(prefix="/moderation", tags=["moderation"])


def get_flag_service(db: AsyncSession = Depends(get_db)) -> FlagService:
    """Dependency to get flag service."""
    return FlagService(db)


@router.post("/check", response_model=PreviewCheckResponse)
async def check_content(
    request: PreviewCheckRequest,
    principal: Principal = Depends(get_current_principal),
    service: ModerationService = Depends(get_moderation_service),
):
    """Screen text before submission. Nothing is stored."""
    verdict = await service.preview_check(request.content)
    return PreviewCheckResponse(
        is_toxic=verdict.is_toxic,
        reason=verdict.reason,
        classification=ClassificationInfo(
            sentiment_score=verdict.classification.sentiment_score,
            categories=list(verdict.classification.categories),
        ),
    )


@router.post("/submissions", response_model=SubmissionResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_content(
    ref: ContentRef,
    principal: Principal = Depends(get_current_principal),
    service: ModerationService = Depends(get_moderation_service),
):
    """Queue newly created or updated content for screening.

    Called by the CRUD layer after its write commits. Returns 202 whether or
    not the broker accepted the job; publication is never blocked.
    """
    if ref.author_id != principal.user_id and not principal.is_admin:
        raise Forbidden("Cannot submit content on behalf of another user")

    job = await service.submit_content(ref)
    return SubmissionResponse(queued=job is not None, job_id=job.job_id if job else None)


@router.get("/flagged", response_model=FlagListResponse)
async def get_my_flagged_content(
    status: Optional[FlagStatus] = Query(None),
    type: Optional[ContentType] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    service: FlagService = Depends(get_flag_service),
):
    """Flags on the caller's own content, newest first."""
    filters = FlagFilters(status=status, content_type=type, page=page, limit=limit)
    return await service.list_for_user(principal, filters)


@router.get("/preferences", response_model=NotificationPreferenceResponse)
async def get_preferences(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    preference = await NotificationPreferenceRepository(db).get(principal.user_id)
    if preference is None:
        return NotificationPreferenceResponse(user_id=principal.user_id, email_notification=True)
    return preference


@router.put("/preferences", response_model=NotificationPreferenceResponse)
async def update_preferences(
    update: NotificationPreferenceUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Turn moderation emails on or off for the caller."""
    return await NotificationPreferenceRepository(db).upsert(
        principal.user_id,
        email_notification=update.email_notification,
        email=update.email,
        username=update.username,
    )
