"""Notification module test suite — listing, unread badge, mark read,
bulk mark read, and ownership checks.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.common.constants import NotificationType
from leaveflow.common.exceptions import ForbiddenException, NotFoundException
from leaveflow.core_hr.models import Employee
from leaveflow.notifications.models import Notification
from leaveflow.notifications.service import NotificationService


# ── Helpers ─────────────────────────────────────────────────────────


async def _create_notification(
    db: AsyncSession,
    recipient: Employee,
    *,
    title: str = "Leave Approved",
    type_: NotificationType = NotificationType.leave_approved,
    is_read: bool = False,
    age_minutes: int = 0,
) -> Notification:
    notification = await NotificationService.create_notification(
        db,
        organization_id=recipient.organization_id,
        recipient_id=recipient.id,
        type=type_,
        title=title,
        message=f"{title} message",
    )
    notification.is_read = is_read
    notification.created_at = datetime.now(timezone.utc) - timedelta(minutes=age_minutes)
    await db.flush()
    return notification


# ── Tests ───────────────────────────────────────────────────────────


class TestNotificationService:

    async def test_create_defaults_to_unread(self, db: AsyncSession, employee):
        notification = await _create_notification(db, employee)

        assert notification.id is not None
        assert notification.is_read is False
        assert notification.read_at is None

    async def test_list_newest_first_with_unread_badge(self, db: AsyncSession, employee):
        old = await _create_notification(db, employee, title="Old", age_minutes=30, is_read=True)
        new = await _create_notification(db, employee, title="New", age_minutes=1)

        result = await NotificationService.get_notifications(db, employee.id)

        assert [n.id for n in result.data] == [new.id, old.id]
        assert result.meta.total == 2
        assert result.meta.unread == 1

    async def test_list_filters_by_read_state(self, db: AsyncSession, employee):
        await _create_notification(db, employee, is_read=True)
        unread = await _create_notification(db, employee)

        result = await NotificationService.get_notifications(db, employee.id, is_read=False)
        assert [n.id for n in result.data] == [unread.id]

    async def test_list_paginates(self, db: AsyncSession, employee):
        for minutes in range(5):
            await _create_notification(db, employee, age_minutes=minutes)

        result = await NotificationService.get_notifications(
            db, employee.id, page=3, page_size=2,
        )
        assert len(result.data) == 1
        assert result.meta.total_pages == 3
        assert result.meta.has_next is False
        assert result.meta.has_prev is True

    async def test_list_only_own(self, db: AsyncSession, employee, supervisor):
        await _create_notification(db, supervisor)

        result = await NotificationService.get_notifications(db, employee.id)
        assert result.data == []
        assert result.meta.unread == 0

    async def test_mark_read(self, db: AsyncSession, employee):
        notification = await _create_notification(db, employee)

        updated = await NotificationService.mark_read(db, notification.id, employee.id)

        assert updated.is_read is True
        assert updated.read_at is not None
        assert await NotificationService.get_unread_count(db, employee.id) == 0

    async def test_mark_read_of_someone_else_forbidden(
        self, db: AsyncSession, employee, supervisor,
    ):
        notification = await _create_notification(db, supervisor)

        with pytest.raises(ForbiddenException):
            await NotificationService.mark_read(db, notification.id, employee.id)

    async def test_mark_read_unknown_not_found(self, db: AsyncSession, employee):
        with pytest.raises(NotFoundException):
            await NotificationService.mark_read(db, uuid.uuid4(), employee.id)

    async def test_mark_all_read_counts_only_unread(self, db: AsyncSession, employee, supervisor):
        for _ in range(3):
            await _create_notification(db, employee)
        await _create_notification(db, employee, is_read=True)
        await _create_notification(db, supervisor)

        updated = await NotificationService.mark_all_read(db, employee.id)

        assert updated == 3
        assert await NotificationService.get_unread_count(db, employee.id) == 0
        assert await NotificationService.get_unread_count(db, supervisor.id) == 1
