"""Notification Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from leaveflow.common.constants import NotificationType
from leaveflow.common.pagination import PaginationMeta
from leaveflow.sla.clock import to_utc


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    recipient_id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    related_id: Optional[uuid.UUID] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    @field_validator("read_at", "created_at")
    @classmethod
    def as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return None if v is None else to_utc(v)


class NotificationListMeta(PaginationMeta):
    """Pagination meta plus the unread badge count."""

    unread: int


class NotificationListResponse(BaseModel):
    data: list[NotificationResponse]
    meta: NotificationListMeta


class UnreadCountResponse(BaseModel):
    unread: int


class MarkAllReadResponse(BaseModel):
    updated: int
