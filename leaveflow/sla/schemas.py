"""SLA Pydantic v2 schemas — config, metrics, live status, stats, trend."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from leaveflow.common.constants import LeaveStatus, LeaveType, SLALiveStatus, SLAStatus
from leaveflow.sla.clock import to_utc


# ═════════════════════════════════════════════════════════════════════
# Config
# ═════════════════════════════════════════════════════════════════════


class SLAConfigOut(BaseModel):
    """Effective SLA configuration for a tenant (persisted or defaults)."""

    model_config = ConfigDict(from_attributes=True)

    organization_id: uuid.UUID
    target_response_time: float
    warning_threshold: float
    critical_threshold: float
    business_hours_only: bool
    business_start_hour: int
    business_end_hour: int
    exclude_weekends: bool
    timezone: str
    notify_on_warning: bool
    notify_on_critical: bool
    notify_on_breach: bool
    is_default: bool = False
    updated_by: Optional[uuid.UUID] = None
    updated_at: Optional[datetime] = None

    @field_validator("updated_at")
    @classmethod
    def as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return None if v is None else to_utc(v)


class SLAConfigUpdate(BaseModel):
    """Partial update. Cross-field rules are checked against the merged result."""

    target_response_time: Optional[float] = Field(None, gt=0, le=24 * 30)
    warning_threshold: Optional[float] = Field(None, gt=0)
    critical_threshold: Optional[float] = Field(None, gt=0)
    business_hours_only: Optional[bool] = None
    business_start_hour: Optional[int] = Field(None, ge=0, le=23)
    business_end_hour: Optional[int] = Field(None, ge=1, le=24)
    exclude_weekends: Optional[bool] = None
    timezone: Optional[str] = Field(None, max_length=50)
    notify_on_warning: Optional[bool] = None
    notify_on_critical: Optional[bool] = None
    notify_on_breach: Optional[bool] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone '{v}'.")
        return v


# ═════════════════════════════════════════════════════════════════════
# Metrics
# ═════════════════════════════════════════════════════════════════════


class SLAMetricOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    leave_request_id: uuid.UUID
    submitted_at: datetime
    responded_at: Optional[datetime] = None
    response_time_hours: Optional[float] = None
    sla_score: Optional[float] = None
    status: SLAStatus
    target_response_time: float
    warning_threshold: float
    critical_threshold: float
    business_hours_only: bool
    exclude_weekends: bool
    warning_triggered: bool = False
    critical_triggered: bool = False
    breach_triggered: bool = False

    @field_validator("submitted_at", "responded_at")
    @classmethod
    def as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return None if v is None else to_utc(v)


class SLALiveOut(BaseModel):
    """On-demand view of a pending metric; never persisted."""

    elapsed_hours: float
    remaining_hours: float
    target_hours: float
    progress_percent: int
    status: SLALiveStatus


class PendingRequestBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    days: int
    status: LeaveStatus
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return to_utc(v)


class PendingWithSLA(BaseModel):
    request: PendingRequestBrief
    sla: SLALiveOut


# ═════════════════════════════════════════════════════════════════════
# Aggregates
# ═════════════════════════════════════════════════════════════════════


class SLAStatsOut(BaseModel):
    total: int = 0
    pending: int = 0
    on_time: int = 0
    breached: int = 0
    avg_response_time: float = 0.0
    avg_sla_score: float = 0.0
    compliance_rate: float = 100.0
    warning_count: int = 0
    critical_count: int = 0
    target_response_time: float


class SLATrendPoint(BaseModel):
    date: date
    on_time: int = 0
    breached: int = 0
    avg_response_time: float = 0.0
    compliance_rate: float = 100.0


class EscalationRunOut(BaseModel):
    evaluated: int = 0
    warnings: int = 0
    criticals: int = 0
    breaches: int = 0
