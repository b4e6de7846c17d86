"""SLA router — tenant config, live pending queue, stats, trend, escalations.

The pending queue is the dashboard's polling path and is rate limited.
"""


import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.auth.dependencies import get_current_user, require_role
from leaveflow.common.constants import UserRole
from leaveflow.common.rate_limit import limiter
from leaveflow.config import settings
from leaveflow.core_hr.models import Employee
from leaveflow.database import get_db
from leaveflow.sla.schemas import (
    EscalationRunOut,
    PendingWithSLA,
    SLAConfigOut,
    SLAConfigUpdate,
    SLAMetricOut,
    SLAStatsOut,
    SLATrendPoint,
)
from leaveflow.sla.service import SLAConfigService, SLAService

router = APIRouter(prefix="", tags=["sla"])

_reviewer = require_role(UserRole.supervisor, UserRole.admin, UserRole.superadmin)


# ── GET /config ─────────────────────────────────────────────────────

@router.get("/config", response_model=SLAConfigOut)
async def get_config(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Effective SLA policy for the caller's organization."""
    return await SLAConfigService.get_effective_config(db, employee.organization_id)


# ── PUT /config ─────────────────────────────────────────────────────

@router.put("/config", response_model=SLAConfigOut)
async def update_config(
    body: SLAConfigUpdate,
    employee: Employee = Depends(require_role(UserRole.admin, UserRole.superadmin)),
    db: AsyncSession = Depends(get_db),
):
    """Patch the organization's SLA policy. Applies to requests submitted afterwards."""
    return await SLAConfigService.update_config(
        db, employee.organization_id, employee.id, body,
    )


# ── GET /pending ────────────────────────────────────────────────────

@router.get("/pending", response_model=list[PendingWithSLA])
@limiter.limit(settings.SLA_POLL_RATE_LIMIT)
async def pending_with_sla(
    request: Request,
    employee: Employee = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    """Pending requests with live elapsed / remaining hours and traffic light."""
    return await SLAService.get_pending_with_sla(db, employee.organization_id)


# ── GET /stats ──────────────────────────────────────────────────────

@router.get("/stats", response_model=SLAStatsOut)
async def sla_stats(
    from_date: Optional[date] = Query(None, description="Submitted on or after"),
    to_date: Optional[date] = Query(None, description="Submitted on or before"),
    employee: Employee = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    start = (
        datetime.combine(from_date, time(0), tzinfo=timezone.utc)
        if from_date else None
    )
    end = (
        datetime.combine(to_date + timedelta(days=1), time(0), tzinfo=timezone.utc)
        - timedelta(microseconds=1)
        if to_date else None
    )
    return await SLAService.get_sla_stats(
        db, employee.organization_id, start=start, end=end,
    )


# ── GET /trend ──────────────────────────────────────────────────────

@router.get("/trend", response_model=list[SLATrendPoint])
async def sla_trend(
    days: int = Query(30, ge=1, le=365),
    employee: Employee = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    return await SLAService.get_sla_trend(db, employee.organization_id, days=days)


# ── GET /metrics/{leave_request_id} ─────────────────────────────────

@router.get("/metrics/{leave_request_id}", response_model=SLAMetricOut)
async def get_metric(
    leave_request_id: uuid.UUID,
    employee: Employee = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    return await SLAService.get_metric(db, employee.organization_id, leave_request_id)


# ── POST /escalations/run ───────────────────────────────────────────

@router.post("/escalations/run", response_model=EscalationRunOut)
async def run_escalations(
    employee: Employee = Depends(require_role(UserRole.admin, UserRole.superadmin)),
    db: AsyncSession = Depends(get_db),
):
    """Sweep pending requests and notify reviewers of newly crossed thresholds."""
    return await SLAService.run_escalations(db, employee.organization_id)
