"""Tests for the flag store against a SQLite database.

**Feature: content-screener, Property 8: One Flag Per Content**
**Feature: content-screener, Property 9: Single Admin Transition**
"""

import asyncio
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from screener.core.exceptions import AlreadyFlagged, Forbidden, InvalidTransition, NotFound
from screener.modules.auth.principal import Principal, Role
from screener.modules.flag.models import FlagStatus
from screener.modules.flag.schemas import FlagFilters
from screener.modules.flag.service import FlagService
from screener.modules.moderation.schemas import ContentType
from screener.modules.notification.models import NotificationEvent

ADMIN = Principal(user_id="admin-1", role=Role.ADMIN)
OTHER_ADMIN = Principal(user_id="admin-2", role=Role.ADMIN)
USER = Principal(user_id="author-1", role=Role.USER)


def _dispatcher() -> MagicMock:
    dispatcher = MagicMock()
    dispatcher.notify = AsyncMock()
    return dispatcher


async def _create(service: FlagService, content_id: str = "c1", author_id: str = "author-1",
                  content_type: ContentType = ContentType.COMMENT):
    return await service.create_flag(content_type, content_id, author_id, "Flagged for: Insult (82%)")


class TestFlagCreation:
    """**Feature: content-screener, Property 8: One Flag Per Content**"""

    @pytest.mark.asyncio
    async def test_create_is_pending_and_notifies_owner(self, session) -> None:
        dispatcher = _dispatcher()
        service = FlagService(session, dispatcher)

        flag = await _create(service)

        assert flag.status == FlagStatus.PENDING
        assert flag.reason == "Flagged for: Insult (82%)"
        dispatcher.notify.assert_awaited_once()
        user_id, event, payload = dispatcher.notify.await_args.args
        assert (user_id, event, payload.id) == ("author-1", NotificationEvent.FLAGGED, flag.id)

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, session) -> None:
        dispatcher = _dispatcher()
        service = FlagService(session, dispatcher)
        await _create(service)

        with pytest.raises(AlreadyFlagged):
            await _create(service)

        flags = await service.list_by_status(ADMIN, FlagFilters())
        assert flags.total == 1
        assert dispatcher.notify.await_count == 1

    @pytest.mark.asyncio
    async def test_same_id_different_type_allowed(self, session) -> None:
        service = FlagService(session, _dispatcher())
        await _create(service, content_type=ContentType.COMMENT)
        await _create(service, content_type=ContentType.REVIEW)

        assert (await service.list_by_status(ADMIN, FlagFilters())).total == 2


class TestAdminTransitions:
    """**Feature: content-screener, Property 9: Single Admin Transition**"""

    @pytest.mark.asyncio
    async def test_approve(self, session) -> None:
        dispatcher = _dispatcher()
        service = FlagService(session, dispatcher)
        flag = await _create(service)

        approved = await service.approve(flag.id, ADMIN)

        assert approved.status == FlagStatus.APPROVED
        assert approved.reviewed_by == "admin-1"
        assert approved.reviewed_at is not None
        assert dispatcher.notify.await_args.args[1] == NotificationEvent.APPROVED

    @pytest.mark.asyncio
    async def test_reject_with_reason(self, session) -> None:
        service = FlagService(session, _dispatcher())
        flag = await _create(service)

        rejected = await service.reject(flag.id, ADMIN, "Harassment")

        assert rejected.status == FlagStatus.REJECTED
        assert rejected.rejection_reason == "Harassment"

    @pytest.mark.asyncio
    async def test_reject_without_reason_keeps_flag_reason(self, session) -> None:
        service = FlagService(session, _dispatcher())
        flag = await _create(service)

        rejected = await service.reject(flag.id, ADMIN)

        assert rejected.rejection_reason == "Flagged for: Insult (82%)"

    @pytest.mark.asyncio
    async def test_second_transition_is_invalid(self, session) -> None:
        dispatcher = _dispatcher()
        service = FlagService(session, dispatcher)
        flag = await _create(service)
        await service.approve(flag.id, ADMIN)

        with pytest.raises(InvalidTransition) as exc_info:
            await service.reject(flag.id, ADMIN)

        assert exc_info.value.current_status == FlagStatus.APPROVED.value
        stored = await service.get_flag(flag.id)
        assert stored.status == FlagStatus.APPROVED
        # FLAGGED + APPROVED only
        assert dispatcher.notify.await_count == 2

    @pytest.mark.asyncio
    async def test_missing_flag(self, session) -> None:
        service = FlagService(session, _dispatcher())
        with pytest.raises(NotFound):
            await service.approve(uuid.uuid4(), ADMIN)

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self, session) -> None:
        dispatcher = _dispatcher()
        service = FlagService(session, dispatcher)
        flag = await _create(service)

        with pytest.raises(Forbidden):
            await service.approve(flag.id, USER)
        with pytest.raises(Forbidden):
            await service.list_by_status(USER, FlagFilters())

        assert (await service.get_flag(flag.id)).status == FlagStatus.PENDING

    @pytest.mark.asyncio
    async def test_concurrent_admins_one_wins(self, session_maker) -> None:
        async with session_maker() as setup_session:
            flag = await _create(FlagService(setup_session, _dispatcher()))

        dispatchers = [_dispatcher(), _dispatcher()]

        async def approve(principal: Principal, dispatcher: MagicMock):
            async with session_maker() as session:
                return await FlagService(session, dispatcher).approve(flag.id, principal)

        results = await asyncio.gather(
            approve(ADMIN, dispatchers[0]),
            approve(OTHER_ADMIN, dispatchers[1]),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], InvalidTransition)
        assert sum(d.notify.await_count for d in dispatchers) == 1


class TestListing:
    @pytest.mark.asyncio
    async def test_pagination_newest_first(self, session) -> None:
        service = FlagService(session, _dispatcher())
        for i in range(12):
            await _create(service, content_id=f"c{i}")

        first = await service.list_by_status(ADMIN, FlagFilters(page=1, limit=5))
        third = await service.list_by_status(ADMIN, FlagFilters(page=3, limit=5))

        assert first.total == 12
        assert first.pages == 3
        assert len(first.items) == 5
        assert len(third.items) == 2
        created = [item.created_at for item in first.items]
        assert created == sorted(created, reverse=True)

    @pytest.mark.asyncio
    async def test_filters(self, session) -> None:
        service = FlagService(session, _dispatcher())
        first = await _create(service, content_id="c1", author_id="a1")
        await _create(service, content_id="c2", author_id="a2")
        await _create(service, content_id="r1", author_id="a1", content_type=ContentType.REVIEW)
        await service.approve(first.id, ADMIN)

        pending = await service.list_by_status(ADMIN, FlagFilters(status=FlagStatus.PENDING))
        reviews = await service.list_by_status(ADMIN, FlagFilters(content_type=ContentType.REVIEW))
        by_author = await service.list_by_status(ADMIN, FlagFilters(author_id="a1"))

        assert pending.total == 2
        assert [i.content_id for i in reviews.items] == ["r1"]
        assert by_author.total == 2

    @pytest.mark.asyncio
    async def test_user_sees_only_own_flags(self, session) -> None:
        service = FlagService(session, _dispatcher())
        await _create(service, content_id="c1", author_id="author-1")
        await _create(service, content_id="c2", author_id="someone-else")

        mine = await service.list_for_user(USER, FlagFilters(author_id="someone-else"))

        assert mine.total == 1
        assert mine.items[0].author_id == "author-1"
