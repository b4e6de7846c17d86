"""Notification service: the inbox every lifecycle event writes to.

``NotificationService`` owns the recipient-facing reads and writes; the
``notify_*`` functions below it are called by the leave and SLA services
inside their own transaction.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.common.constants import (
    DEFAULT_PAGE_SIZE,
    LeaveStatus,
    NotificationType,
    SLALiveStatus,
)
from leaveflow.common.exceptions import ForbiddenException, NotFoundException
from leaveflow.common.pagination import PaginationParams, paginate
from leaveflow.core_hr.service import EmployeeService
from leaveflow.notifications.models import Notification
from leaveflow.notifications.schemas import (
    NotificationListMeta,
    NotificationListResponse,
    NotificationResponse,
)


def _unread(recipient_id: uuid.UUID):
    return (Notification.recipient_id == recipient_id, Notification.is_read.is_(False))


class NotificationService:

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        *,
        organization_id: uuid.UUID,
        recipient_id: uuid.UUID,
        type: NotificationType = NotificationType.system,
        title: str,
        message: str,
        related_id: Optional[uuid.UUID] = None,
    ) -> Notification:
        notification = Notification(
            organization_id=organization_id,
            recipient_id=recipient_id,
            type=type,
            title=title,
            message=message,
            related_id=related_id,
        )
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def get_notifications(
        db: AsyncSession,
        recipient_id: uuid.UUID,
        *,
        is_read: Optional[bool] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> NotificationListResponse:
        """One page of the recipient's inbox, newest first.

        ``meta.unread`` ignores the *is_read* filter so the badge stays stable
        while the inbox is filtered.
        """
        query = select(Notification).where(Notification.recipient_id == recipient_id)
        if is_read is not None:
            query = query.where(Notification.is_read == is_read)
        query = query.order_by(Notification.created_at.desc())

        rows, meta = await paginate(
            db, query, PaginationParams(page=page, page_size=page_size),
        )
        unread = await NotificationService.get_unread_count(db, recipient_id)
        return NotificationListResponse(
            data=[NotificationResponse.model_validate(n) for n in rows],
            meta=NotificationListMeta(**meta.model_dump(), unread=unread),
        )

    @staticmethod
    async def get_unread_count(db: AsyncSession, recipient_id: uuid.UUID) -> int:
        query = select(func.count()).select_from(Notification).where(*_unread(recipient_id))
        return (await db.execute(query)).scalar_one()

    @staticmethod
    async def mark_read(
        db: AsyncSession,
        notification_id: uuid.UUID,
        recipient_id: uuid.UUID,
    ) -> Notification:
        """Mark one notification read; only its recipient may do so."""
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundException("Notification", notification_id)
        if notification.recipient_id != recipient_id:
            raise ForbiddenException("You can only mark your own notifications as read.")

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            await db.flush()
        return notification

    @staticmethod
    async def mark_all_read(db: AsyncSession, recipient_id: uuid.UUID) -> int:
        """Mark the whole inbox read; returns how many were unread."""
        result = await db.execute(
            update(Notification)
            .where(*_unread(recipient_id))
            .values(is_read=True, read_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        await db.flush()
        return result.rowcount  # type: ignore[return-value]


# ── Cross-module helper dispatchers ─────────────────────────────────
# Imported by the leave and SLA services. They accept ORM objects
# directly to avoid tight schema coupling.


def _leave_span(leave_request) -> str:
    return f"{leave_request.start_date} → {leave_request.end_date}"


async def notify_leave_submitted(
    db: AsyncSession,
    leave_request,  # leaveflow.leave.models.LeaveRequest
    requester,  # leaveflow.core_hr.models.Employee
) -> list[Notification]:
    """Notify every reviewer of the tenant, except the requester, of a new request."""
    reviewers = await EmployeeService.list_reviewers(
        db, leave_request.organization_id, exclude_id=requester.id,
    )
    sent: list[Notification] = []
    for reviewer in reviewers:
        sent.append(
            await NotificationService.create_notification(
                db,
                organization_id=leave_request.organization_id,
                recipient_id=reviewer.id,
                type=NotificationType.leave_request,
                title="New Leave Request",
                message=(
                    f"{requester.name} requested {leave_request.days} day(s) of "
                    f"{leave_request.leave_type.value} leave ({_leave_span(leave_request)})."
                ),
                related_id=leave_request.id,
            )
        )
    return sent


async def notify_leave_decided(
    db: AsyncSession,
    leave_request,  # leaveflow.leave.models.LeaveRequest
    reviewer,  # leaveflow.core_hr.models.Employee
) -> Notification:
    """Tell the requester their leave was approved or rejected."""
    approved = leave_request.status == LeaveStatus.approved
    comment = leave_request.review_comment
    if approved:
        title = "Leave Approved"
        message = (
            f"Your {leave_request.leave_type.value} leave ({_leave_span(leave_request)}) "
            f"has been approved by {reviewer.name}."
        )
        if comment:
            message += f" Note: {comment}"
    else:
        title = "Leave Rejected"
        message = (
            f"Your {leave_request.leave_type.value} leave ({_leave_span(leave_request)}) "
            f"was rejected by {reviewer.name}."
        )
        if comment:
            message += f" Reason: {comment}"

    return await NotificationService.create_notification(
        db,
        organization_id=leave_request.organization_id,
        recipient_id=leave_request.employee_id,
        type=NotificationType.leave_approved if approved else NotificationType.leave_rejected,
        title=title,
        message=message,
        related_id=leave_request.id,
    )


async def notify_leave_updated(
    db: AsyncSession,
    leave_request,  # leaveflow.leave.models.LeaveRequest
    actor,  # leaveflow.core_hr.models.Employee
) -> Notification:
    """Tell the requester an admin corrected their leave request."""
    return await NotificationService.create_notification(
        db,
        organization_id=leave_request.organization_id,
        recipient_id=leave_request.employee_id,
        type=NotificationType.leave_updated,
        title="Leave Updated",
        message=(
            f"Your leave request ({_leave_span(leave_request)}) "
            f"was updated by {actor.name}."
        ),
        related_id=leave_request.id,
    )


async def notify_leave_deleted(
    db: AsyncSession,
    leave_request,  # leaveflow.leave.models.LeaveRequest
    actor,  # leaveflow.core_hr.models.Employee
) -> Notification:
    """Tell the requester an admin removed their leave request."""
    return await NotificationService.create_notification(
        db,
        organization_id=leave_request.organization_id,
        recipient_id=leave_request.employee_id,
        type=NotificationType.leave_deleted,
        title="Leave Deleted",
        message=(
            f"Your {leave_request.leave_type.value} leave ({_leave_span(leave_request)}) "
            f"was deleted by {actor.name}."
        ),
        related_id=None,
    )


_ESCALATION_TYPES: dict[SLALiveStatus, tuple[NotificationType, str]] = {
    SLALiveStatus.warning: (NotificationType.sla_warning, "SLA Warning"),
    SLALiveStatus.critical: (NotificationType.sla_critical, "SLA Critical"),
    SLALiveStatus.breached: (NotificationType.sla_breach, "SLA Breached"),
}


async def notify_sla_escalation(
    db: AsyncSession,
    metric,  # leaveflow.sla.models.SLAMetric
    level: SLALiveStatus,
    elapsed_hours: float,
) -> list[Notification]:
    """Warn the tenant's reviewers that a pending request crossed a threshold."""
    notification_type, title = _ESCALATION_TYPES[level]
    reviewers = await EmployeeService.list_reviewers(db, metric.organization_id)
    sent: list[Notification] = []
    for reviewer in reviewers:
        sent.append(
            await NotificationService.create_notification(
                db,
                organization_id=metric.organization_id,
                recipient_id=reviewer.id,
                type=notification_type,
                title=title,
                message=(
                    f"A leave request has been waiting {elapsed_hours:.1f}h "
                    f"(target {metric.target_response_time:g}h)."
                ),
                related_id=metric.leave_request_id,
            )
        )
    return sent
