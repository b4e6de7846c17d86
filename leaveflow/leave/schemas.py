"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update / *Request → request bodies (write)
  - *Out / *Response             → response bodies (read)
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from leaveflow.common.constants import LeaveStatus, LeaveType
from leaveflow.common.pagination import PaginatedResponse
from leaveflow.sla.clock import to_utc


def inclusive_span(start_date: date, end_date: date) -> int:
    """Calendar days covered by an inclusive date range."""
    return (end_date - start_date).days + 1


# ═════════════════════════════════════════════════════════════════════
# Leave Request: write
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for submitting a leave request."""

    leave_type: LeaveType
    start_date: date = Field(..., description="Leave start date (inclusive)")
    end_date: date = Field(..., description="Leave end date (inclusive)")
    days: int = Field(..., ge=1, description="Working days requested")
    reason: str = Field(..., max_length=1000)
    comment: Optional[str] = Field(None, max_length=1000)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Reason must not be empty.")
        return v

    @model_validator(mode="after")
    def validate_range(self) -> "LeaveRequestCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date.")
        if self.days > inclusive_span(self.start_date, self.end_date):
            raise ValueError("days cannot exceed the number of days in the range.")
        return self


class LeaveRequestUpdate(BaseModel):
    """Partial edit. Range rules are re-checked against the merged request."""

    leave_type: Optional[LeaveType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    days: Optional[int] = Field(None, ge=1)
    reason: Optional[str] = Field(None, max_length=1000)
    comment: Optional[str] = Field(None, max_length=1000)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Reason must not be empty.")
        return v


class LeaveDecisionRequest(BaseModel):
    comment: Optional[str] = Field(None, max_length=1000)


# ═════════════════════════════════════════════════════════════════════
# Leave Request: read
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    days: int
    reason: str
    comment: Optional[str] = None
    status: LeaveStatus
    reviewed_by: Optional[uuid.UUID] = None
    review_comment: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    deducted_days: int = 0
    deducted_from: Optional[LeaveType] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at", "reviewed_at")
    @classmethod
    def as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # SQLite hands timestamps back naive
        return None if v is None else to_utc(v)


LeaveRequestListResponse = PaginatedResponse[LeaveRequestOut]


class LeaveStatsOut(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    on_leave_today: int = 0
