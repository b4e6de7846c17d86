"""Leave router — submit, review, edit, delete, list, stats.

All endpoints require authentication; the tenant is always the caller's
organization. Review endpoints additionally require a supervisor role.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.auth.dependencies import get_current_user, require_role
from leaveflow.common.constants import LeaveDecision, LeaveStatus, UserRole
from leaveflow.common.pagination import PaginationParams
from leaveflow.core_hr.models import Employee
from leaveflow.database import get_db
from leaveflow.leave.schemas import (
    LeaveDecisionRequest,
    LeaveRequestCreate,
    LeaveRequestListResponse,
    LeaveRequestOut,
    LeaveRequestUpdate,
    LeaveStatsOut,
)
from leaveflow.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


# ── POST /requests ──────────────────────────────────────────────────

@router.post("/requests", response_model=LeaveRequestOut, status_code=201)
async def submit_leave(
    body: LeaveRequestCreate,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a leave request. Starts its SLA clock and notifies reviewers."""
    return await LeaveService.submit_leave(
        db, employee.organization_id, employee.id, body,
    )


# ── GET /requests ───────────────────────────────────────────────────

@router.get("/requests", response_model=LeaveRequestListResponse)
async def list_leave_requests(
    status: Optional[LeaveStatus] = Query(None),
    employee_id: Optional[uuid.UUID] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List leave requests. Employees see their own; reviewers see the tenant."""
    return await LeaveService.list_leave_requests(
        db,
        employee.organization_id,
        employee.id,
        employee_id=employee_id,
        status=status,
        from_date=from_date,
        to_date=to_date,
        page=pagination.page,
        page_size=pagination.page_size,
    )


# ── GET /stats ──────────────────────────────────────────────────────

@router.get("/stats", response_model=LeaveStatsOut)
async def leave_stats(
    employee: Employee = Depends(
        require_role(UserRole.supervisor, UserRole.admin, UserRole.superadmin)
    ),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_leave_stats(db, employee.organization_id)


# ── GET /requests/{id} ──────────────────────────────────────────────

@router.get("/requests/{request_id}", response_model=LeaveRequestOut)
async def get_leave_request(
    request_id: uuid.UUID,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_leave_request(
        db, employee.organization_id, employee.id, request_id,
    )


# ── PATCH /requests/{id} ────────────────────────────────────────────

@router.patch("/requests/{request_id}", response_model=LeaveRequestOut)
async def edit_leave(
    request_id: uuid.UUID,
    body: LeaveRequestUpdate,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Edit a request (owner while pending, admin at any status)."""
    return await LeaveService.edit_leave(
        db, employee.organization_id, employee.id, request_id, body,
    )


# ── DELETE /requests/{id} ───────────────────────────────────────────

@router.delete("/requests/{request_id}", status_code=204)
async def delete_leave(
    request_id: uuid.UUID,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a request. Restores any balance its approval deducted."""
    await LeaveService.delete_leave(
        db, employee.organization_id, employee.id, request_id,
    )
    return Response(status_code=204)


# ── PUT /requests/{id}/approve ──────────────────────────────────────

@router.put("/requests/{request_id}/approve", response_model=LeaveRequestOut)
async def approve_leave(
    request_id: uuid.UUID,
    body: LeaveDecisionRequest,
    employee: Employee = Depends(
        require_role(UserRole.supervisor, UserRole.admin, UserRole.superadmin)
    ),
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending request. Deducts balance and closes its SLA metric."""
    return await LeaveService.decide_leave(
        db, employee.organization_id, employee.id, request_id,
        LeaveDecision.approve, comment=body.comment,
    )


# ── PUT /requests/{id}/reject ───────────────────────────────────────

@router.put("/requests/{request_id}/reject", response_model=LeaveRequestOut)
async def reject_leave(
    request_id: uuid.UUID,
    body: LeaveDecisionRequest,
    employee: Employee = Depends(
        require_role(UserRole.supervisor, UserRole.admin, UserRole.superadmin)
    ),
    db: AsyncSession = Depends(get_db),
):
    """Reject a pending request."""
    return await LeaveService.decide_leave(
        db, employee.organization_id, employee.id, request_id,
        LeaveDecision.reject, comment=body.comment,
    )
