"""Eligibility service — loads employee signals and delegates to scoring.

Scores are recomputed on every call and never stored.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.common.constants import LeaveStatus
from leaveflow.common.exceptions import (
    AlreadyReviewedException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from leaveflow.config import settings
from leaveflow.core_hr.models import Employee
from leaveflow.core_hr.service import EmployeeService
from leaveflow.eligibility import scoring
from leaveflow.eligibility.models import (
    EmployeeNote,
    PerformanceMetric,
    SupervisorRating,
    TimeTrackingRecord,
)
from leaveflow.eligibility.schemas import (
    EmployeeEligibilityOut,
    EmployeeNoteCreate,
    EmployeeNoteOut,
    RequestEligibilityOut,
    SupervisorRatingCreate,
    SupervisorRatingOut,
)
from leaveflow.leave.models import LeaveRequest

logger = logging.getLogger(__name__)


def _now() -> datetime:
    """Current UTC instant (patched in tests)."""
    return datetime.now(timezone.utc)


class EligibilityService:
    """Async eligibility reads and the two signal writes managers own."""

    @staticmethod
    async def _get_subject(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Employee:
        employee = await EmployeeService.get_employee(db, employee_id)
        EmployeeService.ensure_same_tenant(organization_id, employee.organization_id)
        return employee

    @staticmethod
    async def _require_reviewer(
        db: AsyncSession,
        organization_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> Employee:
        actor = await EmployeeService.get_actor(db, organization_id, actor_id)
        if not actor.is_reviewer:
            raise ForbiddenException("Only supervisors and admins can do this.")
        return actor

    @staticmethod
    async def _load_signals(db: AsyncSession, employee_id: uuid.UUID) -> dict[str, Any]:
        metric = (
            await db.execute(
                select(PerformanceMetric)
                .where(PerformanceMetric.employee_id == employee_id)
                .order_by(PerformanceMetric.recorded_at.desc())
                .limit(1)
            )
        ).scalars().first()

        rating = (
            await db.execute(
                select(SupervisorRating)
                .where(SupervisorRating.employee_id == employee_id)
                .order_by(SupervisorRating.created_at.desc())
                .limit(1)
            )
        ).scalars().first()

        time_records = (
            await db.execute(
                select(TimeTrackingRecord)
                .where(TimeTrackingRecord.employee_id == employee_id)
                .order_by(TimeTrackingRecord.work_date.desc())
                .limit(settings.TIME_TRACKING_SAMPLE_SIZE)
            )
        ).scalars().all()

        notes = (
            await db.execute(
                select(EmployeeNote).where(EmployeeNote.employee_id == employee_id)
            )
        ).scalars().all()

        leaves = (
            await db.execute(
                select(LeaveRequest).where(LeaveRequest.employee_id == employee_id)
            )
        ).scalars().all()

        return {
            "metric": metric,
            "rating": rating,
            "time_records": list(time_records),
            "notes": list(notes),
            "leaves": list(leaves),
        }

    @staticmethod
    async def count_overlapping_team_leaves(
        db: AsyncSession,
        leave_req: LeaveRequest,
        employee: Employee,
    ) -> int:
        """Approved or pending requests of teammates overlapping *leave_req*.

        Teammates are the other employees of the tenant, narrowed to the
        requester's department when one is set.
        """
        query = (
            select(func.count())
            .select_from(LeaveRequest)
            .join(Employee, Employee.id == LeaveRequest.employee_id)
            .where(
                LeaveRequest.organization_id == leave_req.organization_id,
                LeaveRequest.employee_id != leave_req.employee_id,
                LeaveRequest.status.in_([LeaveStatus.approved, LeaveStatus.pending]),
                LeaveRequest.start_date <= leave_req.end_date,
                LeaveRequest.end_date >= leave_req.start_date,
            )
        )
        if employee.department:
            query = query.where(Employee.department == employee.department)
        return (await db.execute(query)).scalar_one()

    # ─────────────────────────────────────────────────────────────────
    # Evaluations
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def evaluate_employee(
        db: AsyncSession,
        organization_id: uuid.UUID,
        viewer_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> EmployeeEligibilityOut:
        """General eligibility score; reviewers see anyone, employees themselves."""
        viewer = await EmployeeService.get_actor(db, organization_id, viewer_id)
        employee = await EligibilityService._get_subject(db, organization_id, employee_id)
        if not viewer.is_reviewer and viewer.id != employee.id:
            raise ForbiddenException("You can only view your own eligibility score.")

        signals = await EligibilityService._load_signals(db, employee.id)
        return scoring.evaluate_employee(employee, year=_now().year, **signals)

    @staticmethod
    async def evaluate_request(
        db: AsyncSession,
        organization_id: uuid.UUID,
        viewer_id: uuid.UUID,
        request_id: uuid.UUID,
    ) -> RequestEligibilityOut:
        """Advice for the reviewer of a pending request, including team coverage.

        Decided requests raise ``AlreadyReviewedException``.
        """
        await EligibilityService._require_reviewer(db, organization_id, viewer_id)

        leave_req = await db.get(LeaveRequest, request_id)
        if leave_req is None:
            raise NotFoundException("LeaveRequest", str(request_id))
        EmployeeService.ensure_same_tenant(organization_id, leave_req.organization_id)
        if leave_req.status != LeaveStatus.pending:
            raise AlreadyReviewedException(leave_req.id, leave_req.status.value)

        employee = await EmployeeService.get_employee(db, leave_req.employee_id)
        signals = await EligibilityService._load_signals(db, employee.id)
        overlapping = await EligibilityService.count_overlapping_team_leaves(
            db, leave_req, employee,
        )
        return scoring.evaluate_request(
            leave_req.id,
            employee,
            overlapping=overlapping,
            year=_now().year,
            **signals,
        )

    # ─────────────────────────────────────────────────────────────────
    # Signal writes
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def add_employee_note(
        db: AsyncSession,
        organization_id: uuid.UUID,
        author_id: uuid.UUID,
        employee_id: uuid.UUID,
        data: EmployeeNoteCreate,
    ) -> EmployeeNoteOut:
        """Record a manager note. Sentiment is inferred when not given."""
        author = await EligibilityService._require_reviewer(db, organization_id, author_id)
        employee = await EligibilityService._get_subject(db, organization_id, employee_id)

        note = EmployeeNote(
            organization_id=organization_id,
            employee_id=employee.id,
            author_id=author.id,
            note_type=data.note_type,
            sentiment=data.sentiment or scoring.classify_sentiment(data.content),
            content=data.content,
            created_at=_now(),
        )
        db.add(note)
        await db.flush()

        logger.info(
            "Note %s (%s) added for employee %s by %s",
            note.id, note.sentiment.value, employee.id, author.id,
        )
        return EmployeeNoteOut.model_validate(note)

    @staticmethod
    async def record_supervisor_rating(
        db: AsyncSession,
        organization_id: uuid.UUID,
        supervisor_id: uuid.UUID,
        employee_id: uuid.UUID,
        data: SupervisorRatingCreate,
    ) -> SupervisorRatingOut:
        """Store a six-criteria rating; every criterion must lie in [1, 5]."""
        supervisor = await EligibilityService._require_reviewer(
            db, organization_id, supervisor_id,
        )
        employee = await EligibilityService._get_subject(db, organization_id, employee_id)

        errors = {
            criterion: ["Rating must be between 1 and 5."]
            for criterion in scoring.RATING_CRITERIA
            if not 1 <= getattr(data, criterion) <= 5
        }
        if errors:
            raise ValidationException(errors)

        now = _now()
        rating = SupervisorRating(
            organization_id=organization_id,
            employee_id=employee.id,
            supervisor_id=supervisor.id,
            overall_rating=scoring.overall_rating(data),
            rating_period=data.rating_period or now.strftime("%Y-%m"),
            strengths=data.strengths,
            areas_for_improvement=data.areas_for_improvement,
            general_comments=data.general_comments,
            created_at=now,
            **{c: getattr(data, c) for c in scoring.RATING_CRITERIA},
        )
        db.add(rating)
        await db.flush()

        logger.info(
            "Supervisor rating %s recorded for employee %s (overall %.2f)",
            rating.id, employee.id, rating.overall_rating,
        )
        return SupervisorRatingOut.model_validate(rating)
