"""Eligibility router — employee / request scores, manager notes, ratings."""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.auth.dependencies import get_current_user, require_role
from leaveflow.common.constants import UserRole
from leaveflow.core_hr.models import Employee
from leaveflow.database import get_db
from leaveflow.eligibility.schemas import (
    EmployeeEligibilityOut,
    EmployeeNoteCreate,
    EmployeeNoteOut,
    RequestEligibilityOut,
    SupervisorRatingCreate,
    SupervisorRatingOut,
)
from leaveflow.eligibility.service import EligibilityService

router = APIRouter(prefix="", tags=["eligibility"])

_reviewer = require_role(UserRole.supervisor, UserRole.admin, UserRole.superadmin)


# ── GET /employees/{id} ─────────────────────────────────────────────

@router.get("/employees/{employee_id}", response_model=EmployeeEligibilityOut)
async def evaluate_employee(
    employee_id: uuid.UUID,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """General eligibility score with per-factor breakdown."""
    return await EligibilityService.evaluate_employee(
        db, employee.organization_id, employee.id, employee_id,
    )


# ── GET /requests/{id} ──────────────────────────────────────────────

@router.get("/requests/{request_id}", response_model=RequestEligibilityOut)
async def evaluate_request(
    request_id: uuid.UUID,
    employee: Employee = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    """Recommendation for a specific leave request, including team overlap."""
    return await EligibilityService.evaluate_request(
        db, employee.organization_id, employee.id, request_id,
    )


# ── POST /employees/{id}/notes ──────────────────────────────────────

@router.post(
    "/employees/{employee_id}/notes",
    response_model=EmployeeNoteOut,
    status_code=201,
)
async def add_note(
    employee_id: uuid.UUID,
    body: EmployeeNoteCreate,
    employee: Employee = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    return await EligibilityService.add_employee_note(
        db, employee.organization_id, employee.id, employee_id, body,
    )


# ── POST /employees/{id}/ratings ────────────────────────────────────

@router.post(
    "/employees/{employee_id}/ratings",
    response_model=SupervisorRatingOut,
    status_code=201,
)
async def record_rating(
    employee_id: uuid.UUID,
    body: SupervisorRatingCreate,
    employee: Employee = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    return await EligibilityService.record_supervisor_rating(
        db, employee.organization_id, employee.id, employee_id, body,
    )
