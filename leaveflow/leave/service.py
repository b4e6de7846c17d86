"""Leave service layer — the request lifecycle state machine.

Business logic:
  - Submission creates the request and its SLA metric in one transaction
    and notifies the tenant's reviewers
  - A single reviewer decision (approve / reject) ends the lifecycle; the
    status flip is a compare-and-swap so a racing second decision fails
    without side effects
  - Approval deducts from the matching balance (floored at zero) and
    records what was taken so deletion can give exactly that back
  - Owner edits / deletes while pending; admins may correct or remove at
    any status
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.common.audit import create_audit_entry
from leaveflow.common.constants import (
    BALANCE_FIELDS,
    LeaveDecision,
    LeaveStatus,
    LeaveType,
)
from leaveflow.common.exceptions import (
    AlreadyReviewedException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from leaveflow.common.pagination import PaginationParams, paginate
from leaveflow.core_hr.models import Employee
from leaveflow.core_hr.service import EmployeeService
from leaveflow.leave.models import LeaveRequest
from leaveflow.leave.schemas import (
    LeaveRequestCreate,
    LeaveRequestListResponse,
    LeaveRequestOut,
    LeaveRequestUpdate,
    LeaveStatsOut,
    inclusive_span,
)
from leaveflow.notifications.service import (
    notify_leave_decided,
    notify_leave_deleted,
    notify_leave_submitted,
    notify_leave_updated,
)
from leaveflow.sla.service import SLAService

logger = logging.getLogger(__name__)


def _now() -> datetime:
    """Current UTC instant (patched in tests)."""
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════
# Pure helpers
# ═════════════════════════════════════════════════════════════════════


def compute_deduction(leave_type: LeaveType, days: int, balance: Optional[int]) -> int:
    """Days an approval takes from the balance; never drives it below zero."""
    if leave_type not in BALANCE_FIELDS:
        return 0
    return max(0, min(days, balance or 0))


def validate_range(start_date: date, end_date: date, days: int) -> None:
    errors: dict[str, list[str]] = {}
    if end_date < start_date:
        errors["end_date"] = ["end_date must be on or after start_date."]
    elif days > inclusive_span(start_date, end_date):
        errors["days"] = ["days cannot exceed the number of days in the range."]
    if days < 1:
        errors["days"] = ["days must be at least 1."]
    if errors:
        raise ValidationException(errors)


def _snapshot(leave_req: LeaveRequest) -> dict[str, Any]:
    return {
        "leave_type": leave_req.leave_type.value,
        "start_date": leave_req.start_date.isoformat(),
        "end_date": leave_req.end_date.isoformat(),
        "days": leave_req.days,
        "status": leave_req.status.value,
    }


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave lifecycle operations. Callers pass tenant and actor ids."""

    @staticmethod
    async def _get_request(
        db: AsyncSession,
        organization_id: uuid.UUID,
        request_id: uuid.UUID,
    ) -> LeaveRequest:
        leave_req = await db.get(LeaveRequest, request_id)
        if leave_req is None:
            raise NotFoundException("LeaveRequest", str(request_id))
        EmployeeService.ensure_same_tenant(organization_id, leave_req.organization_id)
        return leave_req

    @staticmethod
    def _ensure_can_modify(actor: Employee, leave_req: LeaveRequest, verb: str) -> bool:
        """Owner while pending, admin always. Returns True for an admin acting
        on someone else's request."""
        is_owner = leave_req.employee_id == actor.id
        if actor.is_admin:
            return not is_owner
        if not is_owner:
            raise ForbiddenException(f"You can only {verb} your own leave requests.")
        if leave_req.status != LeaveStatus.pending:
            raise ForbiddenException(
                f"Only pending leave requests can be {verb}ed "
                f"(this one is {leave_req.status.value})."
            )
        return False

    # ─────────────────────────────────────────────────────────────────
    # Submit
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def submit_leave(
        db: AsyncSession,
        organization_id: uuid.UUID,
        requester_id: uuid.UUID,
        data: LeaveRequestCreate,
    ) -> LeaveRequestOut:
        """Create a pending request plus its SLA metric and notify reviewers."""
        requester = await EmployeeService.get_actor(db, organization_id, requester_id)
        if not (requester.is_active and requester.is_approved):
            raise ForbiddenException("Account pending approval.")

        now = _now()
        leave_req = LeaveRequest(
            organization_id=organization_id,
            employee_id=requester.id,
            leave_type=data.leave_type,
            start_date=data.start_date,
            end_date=data.end_date,
            days=data.days,
            reason=data.reason,
            comment=data.comment,
            status=LeaveStatus.pending,
            deducted_days=0,
            created_at=now,
            updated_at=now,
        )
        db.add(leave_req)
        await db.flush()

        await SLAService.create_metric(db, leave_req)
        await notify_leave_submitted(db, leave_req, requester)
        await create_audit_entry(
            db,
            organization_id=organization_id,
            action="submit",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=requester.id,
            new_values=_snapshot(leave_req),
        )

        logger.info(
            "Leave request %s submitted by %s (%s, %d day(s))",
            leave_req.id, requester.id, leave_req.leave_type.value, leave_req.days,
        )
        return LeaveRequestOut.model_validate(leave_req)

    # ─────────────────────────────────────────────────────────────────
    # Approve / Reject
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def decide_leave(
        db: AsyncSession,
        organization_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        request_id: uuid.UUID,
        decision: LeaveDecision,
        *,
        comment: Optional[str] = None,
    ) -> LeaveRequestOut:
        """Apply the single terminal decision to a pending request."""
        reviewer = await EmployeeService.get_actor(db, organization_id, reviewer_id)
        if not reviewer.is_reviewer:
            raise ForbiddenException("Only supervisors and admins can review leave requests.")

        leave_req = await LeaveService._get_request(db, organization_id, request_id)
        if leave_req.status != LeaveStatus.pending:
            raise AlreadyReviewedException(leave_req.id, leave_req.status.value)

        now = _now()
        new_status = (
            LeaveStatus.approved if decision == LeaveDecision.approve
            else LeaveStatus.rejected
        )

        # Compare-and-swap: only one decision can move the row off pending.
        result = await db.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.id == leave_req.id,
                LeaveRequest.status == LeaveStatus.pending,
            )
            .values(
                status=new_status,
                reviewed_by=reviewer.id,
                review_comment=comment,
                reviewed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "Concurrent decision lost on leave request %s (reviewer %s)",
                leave_req.id, reviewer.id,
            )
            raise AlreadyReviewedException(leave_req.id)
        await db.refresh(leave_req)

        if new_status == LeaveStatus.approved:
            field = BALANCE_FIELDS.get(leave_req.leave_type)
            if field is not None:
                employee = await EmployeeService.get_employee(
                    db, leave_req.employee_id, for_update=True,
                )
                balance = getattr(employee, field) or 0
                taken = compute_deduction(leave_req.leave_type, leave_req.days, balance)
                setattr(employee, field, balance - taken)
                leave_req.deducted_days = taken
                leave_req.deducted_from = leave_req.leave_type

        await SLAService.finalize_metric(db, leave_req.id, now)
        await db.flush()

        await notify_leave_decided(db, leave_req, reviewer)
        await create_audit_entry(
            db,
            organization_id=organization_id,
            action=decision.value,
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=reviewer.id,
            old_values={"status": LeaveStatus.pending.value},
            new_values={
                "status": new_status.value,
                "deducted_days": leave_req.deducted_days,
            },
        )

        logger.info(
            "Leave request %s %s by %s",
            leave_req.id, new_status.value, reviewer.id,
        )
        return LeaveRequestOut.model_validate(leave_req)

    # ─────────────────────────────────────────────────────────────────
    # Edit
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def edit_leave(
        db: AsyncSession,
        organization_id: uuid.UUID,
        actor_id: uuid.UUID,
        request_id: uuid.UUID,
        patch: LeaveRequestUpdate,
    ) -> LeaveRequestOut:
        """Owner edits while pending; admins correct at any status.

        Editing never touches balances; ``deducted_days`` keeps recording
        what approval took.
        """
        actor = await EmployeeService.get_actor(db, organization_id, actor_id)
        leave_req = await LeaveService._get_request(db, organization_id, request_id)
        on_behalf = LeaveService._ensure_can_modify(actor, leave_req, "edit")

        changes = {
            k: v for k, v in patch.model_dump(exclude_unset=True).items()
            if v is not None
        }
        validate_range(
            changes.get("start_date", leave_req.start_date),
            changes.get("end_date", leave_req.end_date),
            changes.get("days", leave_req.days),
        )

        old_values = _snapshot(leave_req)
        for field, value in changes.items():
            setattr(leave_req, field, value)
        leave_req.updated_at = _now()
        await db.flush()

        if on_behalf:
            await notify_leave_updated(db, leave_req, actor)
        await create_audit_entry(
            db,
            organization_id=organization_id,
            action="update",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=_snapshot(leave_req),
        )

        logger.info("Leave request %s edited by %s", leave_req.id, actor.id)
        return LeaveRequestOut.model_validate(leave_req)

    # ─────────────────────────────────────────────────────────────────
    # Delete
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def delete_leave(
        db: AsyncSession,
        organization_id: uuid.UUID,
        actor_id: uuid.UUID,
        request_id: uuid.UUID,
    ) -> None:
        """Remove a request, first giving back whatever approval deducted.

        The SLA metric is kept as history.
        """
        actor = await EmployeeService.get_actor(db, organization_id, actor_id)
        leave_req = await LeaveService._get_request(db, organization_id, request_id)
        on_behalf = LeaveService._ensure_can_modify(actor, leave_req, "delete")

        restored = 0
        if leave_req.deducted_days and leave_req.deducted_from is not None:
            field = BALANCE_FIELDS[leave_req.deducted_from]
            employee = await EmployeeService.get_employee(
                db, leave_req.employee_id, for_update=True,
            )
            setattr(employee, field, (getattr(employee, field) or 0) + leave_req.deducted_days)
            restored = leave_req.deducted_days

        if on_behalf:
            await notify_leave_deleted(db, leave_req, actor)
        await create_audit_entry(
            db,
            organization_id=organization_id,
            action="delete",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=actor.id,
            old_values={**_snapshot(leave_req), "restored_days": restored},
        )

        await db.delete(leave_req)
        await db.flush()
        logger.info(
            "Leave request %s deleted by %s (%d day(s) restored)",
            request_id, actor.id, restored,
        )

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_leave_request(
        db: AsyncSession,
        organization_id: uuid.UUID,
        viewer_id: uuid.UUID,
        request_id: uuid.UUID,
    ) -> LeaveRequestOut:
        """Single request; visible to its owner and to the tenant's reviewers."""
        viewer = await EmployeeService.get_actor(db, organization_id, viewer_id)
        leave_req = await LeaveService._get_request(db, organization_id, request_id)
        if not viewer.is_reviewer and leave_req.employee_id != viewer.id:
            raise ForbiddenException("You can only view your own leave requests.")
        return LeaveRequestOut.model_validate(leave_req)

    @staticmethod
    async def list_leave_requests(
        db: AsyncSession,
        organization_id: uuid.UUID,
        viewer_id: uuid.UUID,
        *,
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[LeaveStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> LeaveRequestListResponse:
        """Tenant requests, newest first. Non-reviewers only see their own."""
        viewer = await EmployeeService.get_actor(db, organization_id, viewer_id)
        if not viewer.is_reviewer:
            employee_id = viewer.id

        query = (
            select(LeaveRequest)
            .where(LeaveRequest.organization_id == organization_id)
            .order_by(LeaveRequest.created_at.desc())
        )
        if employee_id is not None:
            query = query.where(LeaveRequest.employee_id == employee_id)
        if status is not None:
            query = query.where(LeaveRequest.status == status)
        # Overlap with [from_date, to_date]
        if from_date is not None:
            query = query.where(LeaveRequest.end_date >= from_date)
        if to_date is not None:
            query = query.where(LeaveRequest.start_date <= to_date)

        rows, meta = await paginate(
            db, query, PaginationParams(page=page, page_size=page_size),
        )
        return LeaveRequestListResponse(
            data=[LeaveRequestOut.model_validate(r) for r in rows],
            meta=meta,
        )

    @staticmethod
    async def get_leave_stats(
        db: AsyncSession,
        organization_id: uuid.UUID,
        *,
        today: Optional[date] = None,
    ) -> LeaveStatsOut:
        """Status counts for the tenant plus employees on approved leave today."""
        today = today or _now().date()

        result = await db.execute(
            select(LeaveRequest.status, func.count())
            .where(LeaveRequest.organization_id == organization_id)
            .group_by(LeaveRequest.status)
        )
        counts = {row[0]: row[1] for row in result.all()}

        on_leave = (
            await db.execute(
                select(func.count(func.distinct(LeaveRequest.employee_id))).where(
                    LeaveRequest.organization_id == organization_id,
                    LeaveRequest.status == LeaveStatus.approved,
                    LeaveRequest.start_date <= today,
                    LeaveRequest.end_date >= today,
                )
            )
        ).scalar_one()

        return LeaveStatsOut(
            total=sum(counts.values()),
            pending=counts.get(LeaveStatus.pending, 0),
            approved=counts.get(LeaveStatus.approved, 0),
            rejected=counts.get(LeaveStatus.rejected, 0),
            on_leave_today=on_leave,
        )
