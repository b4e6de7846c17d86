"""Inbox endpoints for the authenticated employee."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.auth.dependencies import get_current_user
from leaveflow.common.pagination import PaginationParams
from leaveflow.core_hr.models import Employee
from leaveflow.database import get_db
from leaveflow.notifications.schemas import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from leaveflow.notifications.service import NotificationService

router = APIRouter(tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def inbox(
    is_read: Optional[bool] = Query(default=None),
    pagination: PaginationParams = Depends(),
    me: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService.get_notifications(
        db, me.id, is_read=is_read, page=pagination.page, page_size=pagination.page_size,
    )


# Literal paths are declared ahead of /{notification_id}/read.

@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_badge(
    me: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCountResponse(unread=await NotificationService.get_unread_count(db, me.id))


@router.put("/read-all", response_model=MarkAllReadResponse)
async def read_all(
    me: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return MarkAllReadResponse(updated=await NotificationService.mark_all_read(db, me.id))


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def read_one(
    notification_id: uuid.UUID,
    me: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark one of your own notifications read (403 for anyone else's)."""
    return await NotificationService.mark_read(db, notification_id, me.id)
