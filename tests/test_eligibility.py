"""Eligibility test suite — pure scoring rules, then the service: signal
loading, team overlap, manager notes and supervisor ratings.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.common.constants import (
    Confidence,
    LeaveStatus,
    LeaveType,
    NoteType,
    Recommendation,
    Sentiment,
    TimeTrackingStatus,
    UserRole,
)
from leaveflow.common.exceptions import (
    AlreadyReviewedException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from leaveflow.core_hr.models import Employee
from leaveflow.eligibility import scoring
from leaveflow.eligibility.models import PerformanceMetric, TimeTrackingRecord
from leaveflow.eligibility.schemas import EmployeeNoteCreate, SupervisorRatingCreate
from leaveflow.eligibility.service import EligibilityService
from leaveflow.leave.models import LeaveRequest
from tests.conftest import make_employee


# ═════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════


def _person(paid: int = 24, sick: int = 10) -> SimpleNamespace:
    return SimpleNamespace(id=uuid.uuid4(), paid_leave_balance=paid, sick_leave_balance=sick)


def _metric(**overrides) -> SimpleNamespace:
    values = dict(
        punctuality_score=100.0,
        absence_rate=0.0,
        late_arrivals=0,
        kpi_score=5.0,
        project_completion=100.0,
        deadline_adherence=100.0,
        teamwork_rating=5.0,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _day(late: bool = False, early: bool = False, absent: bool = False) -> SimpleNamespace:
    return SimpleNamespace(
        is_late=late,
        is_early_leave=early,
        status=TimeTrackingStatus.absent if absent else TimeTrackingStatus.checked_out,
    )


def _note(sentiment: Sentiment) -> SimpleNamespace:
    return SimpleNamespace(sentiment=sentiment)


def _leave(days: int, status: LeaveStatus = LeaveStatus.approved, year: int = 2026):
    return SimpleNamespace(days=days, status=status, start_date=date(year, 2, 2))


def _rating(value: float, period: str = "2026-02") -> SimpleNamespace:
    return SimpleNamespace(overall_rating=value, rating_period=period)


_EMPTY = dict(metric=None, rating=None, time_records=[], notes=[], leaves=[], year=2026)


async def _add_leave(
    db: AsyncSession,
    employee: Employee,
    start: date,
    end: date,
    status: LeaveStatus = LeaveStatus.approved,
) -> LeaveRequest:
    leave_req = LeaveRequest(
        organization_id=employee.organization_id,
        employee_id=employee.id,
        leave_type=LeaveType.paid,
        start_date=start,
        end_date=end,
        days=(end - start).days + 1,
        reason="Seeded",
        status=status,
        deducted_days=0,
    )
    db.add(leave_req)
    await db.flush()
    return leave_req


def _rating_payload(**overrides) -> SupervisorRatingCreate:
    values = dict(
        quality_of_work=3,
        efficiency=4,
        teamwork=5,
        initiative=4,
        communication=4,
        reliability=4,
    )
    values.update(overrides)
    return SupervisorRatingCreate(**values)


# ═════════════════════════════════════════════════════════════════════
# Pure scoring
# ═════════════════════════════════════════════════════════════════════


class TestPrimitives:

    @pytest.mark.parametrize(
        "score, expected",
        [
            (100, (Recommendation.APPROVE, Confidence.HIGH)),
            (80, (Recommendation.APPROVE, Confidence.HIGH)),
            (79, (Recommendation.APPROVE, Confidence.MEDIUM)),
            (60, (Recommendation.APPROVE, Confidence.MEDIUM)),
            (59, (Recommendation.REVIEW, Confidence.MEDIUM)),
            (40, (Recommendation.REVIEW, Confidence.MEDIUM)),
            (39, (Recommendation.REJECT, Confidence.LOW)),
            (0, (Recommendation.REJECT, Confidence.LOW)),
        ],
    )
    def test_recommendation_bands(self, score, expected):
        assert scoring.recommend(score) == expected

    def test_clamp_rounds_half_up(self):
        assert scoring.clamp_score(64.5) == 65
        assert scoring.clamp_score(64.49) == 64
        assert scoring.clamp_score(-12) == 0
        assert scoring.clamp_score(140) == 100

    @pytest.mark.parametrize(
        "content, expected",
        [
            ("Excellent work on the release", Sentiment.positive),
            ("Poor handover to the night shift", Sentiment.negative),
            ("Good ideas but some issues with follow-up", Sentiment.neutral),
            ("Met to discuss the roadmap", Sentiment.neutral),
        ],
    )
    def test_classify_sentiment(self, content, expected):
        assert scoring.classify_sentiment(content) == expected

    def test_overall_rating_is_mean_of_criteria(self):
        assert scoring.overall_rating(_rating_payload()) == 4.0


class TestSubScores:

    def test_performance_from_metric(self):
        assert scoring.performance_score(_metric()) == 100
        # (60 + 90 + 80) / 3
        assert scoring.performance_score(
            _metric(kpi_score=3.0, project_completion=90.0, deadline_adherence=80.0)
        ) == 77

    def test_performance_falls_back_to_rating_then_neutral(self):
        assert scoring.performance_score(None, _rating(4.5)) == 90
        assert scoring.performance_score(None, None) == 50

    def test_attendance_prefers_time_tracking(self):
        records = (
            [_day(late=True), _day(late=True), _day(absent=True), _day(early=True)]
            + [_day() for _ in range(6)]
        )
        # 80 * 0.6 + 90 * 0.3 - 10
        assert scoring.attendance_score(_metric(), records) == 65

    def test_attendance_perfect_record_scores_90(self):
        assert scoring.attendance_score(None, [_day() for _ in range(20)]) == 90

    def test_attendance_from_metric_then_neutral(self):
        assert scoring.attendance_score(
            _metric(punctuality_score=95.0, absence_rate=2.0, late_arrivals=3)
        ) == 79
        assert scoring.attendance_score(None) == 70

    def test_behavior_from_note_sentiment(self):
        notes = [
            _note(Sentiment.positive),
            _note(Sentiment.positive),
            _note(Sentiment.neutral),
            _note(Sentiment.negative),
        ]
        # (200 + 75 - 50) / 4 = 56.25
        assert scoring.behavior_score(notes) == 56
        assert scoring.behavior_score([]) == 75
        assert scoring.behavior_score([_note(Sentiment.negative)]) == 0

    @pytest.mark.parametrize(
        "used, expected",
        [(0, 70), (6, 85), (12, 100), (16, 85), (19, 60)],
    )
    def test_leave_history_sweet_spot(self, used, expected):
        person = _person(paid=20, sick=0)
        leaves = [_leave(used)] if used else []
        assert scoring.leave_history_score(leaves, person, 2026) == expected

    def test_leave_history_ignores_other_years_and_undecided(self):
        person = _person(paid=20, sick=0)
        leaves = [
            _leave(12, year=2025),
            _leave(12, status=LeaveStatus.pending),
            _leave(12, status=LeaveStatus.rejected),
        ]
        assert scoring.approved_days_in_year(leaves, 2026) == 0
        assert scoring.leave_history_score(leaves, person, 2026) == 70

    def test_leave_history_without_balance(self):
        assert scoring.utilization_rate([_leave(5)], _person(paid=0, sick=0), 2026) == 0.0

    @pytest.mark.parametrize(
        "overlapping, expected",
        [(0, 100), (1, 85), (2, 70), (3, 50), (7, 50)],
    )
    def test_workload(self, overlapping, expected):
        assert scoring.workload_score(overlapping) == expected


class TestEvaluations:

    def test_strong_profile_is_approved_with_high_confidence(self):
        person = _person()
        result = scoring.evaluate_employee(
            person,
            metric=_metric(),
            rating=None,
            time_records=[_day() for _ in range(20)],
            notes=[_note(Sentiment.positive)] * 3,
            leaves=[_leave(20)],
            year=2026,
        )

        assert result.breakdown.performance.score == 100
        assert result.breakdown.attendance.score == 90
        assert result.breakdown.behavior.score == 100
        assert result.breakdown.leave_history.score == 100
        assert result.overall_score == 98
        assert result.recommendation == Recommendation.APPROVE
        assert result.confidence == Confidence.HIGH
        assert result.reasoning

    def test_no_data_yields_neutral_defaults(self):
        person = _person()
        result = scoring.evaluate_employee(person, **_EMPTY)

        breakdown = result.breakdown
        assert breakdown.performance.score == 50
        assert breakdown.attendance.score == 70
        assert breakdown.behavior.score == 75
        assert breakdown.leave_history.score == 70
        assert breakdown.supervisor_rating is None
        assert result.overall_score == 64
        assert result.recommendation == Recommendation.APPROVE
        assert result.confidence == Confidence.MEDIUM
        for component in (
            breakdown.performance, breakdown.attendance,
            breakdown.behavior, breakdown.leave_history,
        ):
            assert 2 <= len(component.factors) <= 3
            assert all(isinstance(f, str) and f for f in component.factors)

    def test_supervisor_rating_takes_behavior_weight(self):
        person = _person()
        result = scoring.evaluate_employee(
            person, **{**_EMPTY, "rating": _rating(4.5)},
        )

        assert result.breakdown.supervisor_rating.score == 90
        assert result.breakdown.performance.score == 90
        assert result.breakdown.behavior.score == 75
        # 90 * .30 + 70 * .30 + 90 * .25 + 70 * .15
        assert result.overall_score == 81
        assert result.recommendation == Recommendation.APPROVE
        assert result.confidence == Confidence.HIGH

    def test_request_evaluation_includes_workload(self):
        person = _person()
        request_id = uuid.uuid4()
        result = scoring.evaluate_request(
            request_id, person, overlapping=3, **_EMPTY,
        )

        assert result.leave_request_id == request_id
        assert result.overlapping_leaves == 3
        assert result.breakdown.workload.score == 50
        assert "3 team member(s) also on leave" in result.breakdown.workload.factors
        # 15 + 14 + 15 + 10.5 + 7.5
        assert result.overall_score == 62

    def test_poor_profile_is_rejected(self):
        person = _person()
        result = scoring.evaluate_employee(
            person,
            metric=_metric(
                punctuality_score=40.0, absence_rate=8.0, late_arrivals=10,
                kpi_score=1.0, project_completion=30.0, deadline_adherence=20.0,
                teamwork_rating=2.0,
            ),
            rating=None,
            time_records=[],
            notes=[_note(Sentiment.negative)] * 2,
            leaves=[_leave(33)],
            year=2026,
        )

        assert result.recommendation == Recommendation.REJECT
        assert result.confidence == Confidence.LOW


# ═════════════════════════════════════════════════════════════════════
# Service
# ═════════════════════════════════════════════════════════════════════


class TestEvaluateEmployee:

    async def test_employee_may_view_own_score(self, db: AsyncSession, employee, clock):
        result = await EligibilityService.evaluate_employee(
            db, employee.organization_id, employee.id, employee.id,
        )
        assert result.employee_id == employee.id
        assert result.overall_score == 64

    async def test_employee_may_not_view_colleague(self, db: AsyncSession, org, employee, clock):
        colleague = await make_employee(db, org)

        with pytest.raises(ForbiddenException):
            await EligibilityService.evaluate_employee(db, org.id, employee.id, colleague.id)

    async def test_reviewer_sees_loaded_signals(
        self, db: AsyncSession, org, employee, supervisor, clock,
    ):
        db.add(
            PerformanceMetric(
                organization_id=org.id,
                employee_id=employee.id,
                punctuality_score=100.0,
                kpi_score=5.0,
                project_completion=100.0,
                deadline_adherence=100.0,
                teamwork_rating=5.0,
            )
        )
        for offset in range(5):
            db.add(
                TimeTrackingRecord(
                    organization_id=org.id,
                    employee_id=employee.id,
                    work_date=date(2026, 2, 23) + timedelta(days=offset),
                    is_late=False,
                    is_early_leave=False,
                    status=TimeTrackingStatus.checked_out,
                )
            )
        await db.flush()

        result = await EligibilityService.evaluate_employee(
            db, org.id, supervisor.id, employee.id,
        )
        assert result.breakdown.performance.score == 100
        assert result.breakdown.attendance.score == 90

    async def test_other_tenant_employee_forbidden(
        self, db: AsyncSession, supervisor, other_org, clock,
    ):
        outsider = await make_employee(db, other_org)

        with pytest.raises(ForbiddenException):
            await EligibilityService.evaluate_employee(
                db, supervisor.organization_id, supervisor.id, outsider.id,
            )

    async def test_unknown_employee_not_found(self, db: AsyncSession, supervisor, clock):
        with pytest.raises(NotFoundException):
            await EligibilityService.evaluate_employee(
                db, supervisor.organization_id, supervisor.id, uuid.uuid4(),
            )


class TestEvaluateRequest:

    async def test_overlap_counts_same_department_teammates(
        self, db: AsyncSession, org, supervisor, clock,
    ):
        requester = await make_employee(db, org, department="Engineering")
        approved_mate = await make_employee(db, org, department="Engineering")
        pending_mate = await make_employee(db, org, department="Engineering")
        rejected_mate = await make_employee(db, org, department="Engineering")
        later_mate = await make_employee(db, org, department="Engineering")
        ops = await make_employee(db, org, department="Operations")

        target = await _add_leave(
            db, requester, date(2026, 3, 16), date(2026, 3, 20), LeaveStatus.pending,
        )
        await _add_leave(db, requester, date(2026, 3, 19), date(2026, 3, 19))
        await _add_leave(db, approved_mate, date(2026, 3, 13), date(2026, 3, 16))
        await _add_leave(db, pending_mate, date(2026, 3, 20), date(2026, 3, 24), LeaveStatus.pending)
        await _add_leave(db, rejected_mate, date(2026, 3, 17), date(2026, 3, 17), LeaveStatus.rejected)
        await _add_leave(db, later_mate, date(2026, 3, 21), date(2026, 3, 22))
        await _add_leave(db, ops, date(2026, 3, 17), date(2026, 3, 18))

        result = await EligibilityService.evaluate_request(db, org.id, supervisor.id, target.id)

        assert result.leave_request_id == target.id
        assert result.employee_id == requester.id
        assert result.overlapping_leaves == 2
        assert result.breakdown.workload.score == 70

    async def test_no_department_counts_whole_tenant(
        self, db: AsyncSession, org, employee, supervisor, other_org, clock,
    ):
        mate = await make_employee(db, org, department="Sales")
        outsider = await make_employee(db, other_org)
        target = await _add_leave(
            db, employee, date(2026, 3, 16), date(2026, 3, 20), LeaveStatus.pending,
        )
        await _add_leave(db, mate, date(2026, 3, 18), date(2026, 3, 18))
        await _add_leave(db, outsider, date(2026, 3, 18), date(2026, 3, 18))

        result = await EligibilityService.evaluate_request(db, org.id, supervisor.id, target.id)
        assert result.overlapping_leaves == 1

    async def test_decided_request_is_not_evaluated(
        self, db: AsyncSession, employee, supervisor, clock,
    ):
        target = await _add_leave(db, employee, date(2026, 3, 16), date(2026, 3, 20))

        with pytest.raises(AlreadyReviewedException):
            await EligibilityService.evaluate_request(
                db, supervisor.organization_id, supervisor.id, target.id,
            )

    async def test_employee_cannot_evaluate_requests(self, db: AsyncSession, employee, clock):
        target = await _add_leave(
            db, employee, date(2026, 3, 16), date(2026, 3, 20), LeaveStatus.pending,
        )

        with pytest.raises(ForbiddenException):
            await EligibilityService.evaluate_request(
                db, employee.organization_id, employee.id, target.id,
            )

    async def test_unknown_request_not_found(self, db: AsyncSession, supervisor, clock):
        with pytest.raises(NotFoundException):
            await EligibilityService.evaluate_request(
                db, supervisor.organization_id, supervisor.id, uuid.uuid4(),
            )


class TestNotes:

    async def test_sentiment_inferred_when_missing(
        self, db: AsyncSession, employee, supervisor, clock,
    ):
        note = await EligibilityService.add_employee_note(
            db, employee.organization_id, supervisor.id, employee.id,
            EmployeeNoteCreate(content="Outstanding support during the audit"),
        )
        assert note.sentiment == Sentiment.positive
        assert note.note_type == NoteType.general
        assert note.author_id == supervisor.id

    async def test_explicit_sentiment_kept(self, db: AsyncSession, employee, supervisor, clock):
        note = await EligibilityService.add_employee_note(
            db, employee.organization_id, supervisor.id, employee.id,
            EmployeeNoteCreate(
                content="Excellent demo", sentiment=Sentiment.neutral,
                note_type=NoteType.achievement,
            ),
        )
        assert note.sentiment == Sentiment.neutral

    async def test_notes_feed_behavior_score(self, db: AsyncSession, employee, supervisor, clock):
        for content in ("Poor estimate", "Failed to escalate", "Weak review"):
            await EligibilityService.add_employee_note(
                db, employee.organization_id, supervisor.id, employee.id,
                EmployeeNoteCreate(content=content),
            )

        result = await EligibilityService.evaluate_employee(
            db, employee.organization_id, supervisor.id, employee.id,
        )
        assert result.breakdown.behavior.score == 0

    async def test_employee_cannot_write_notes(self, db: AsyncSession, org, employee, clock):
        colleague = await make_employee(db, org)

        with pytest.raises(ForbiddenException):
            await EligibilityService.add_employee_note(
                db, org.id, employee.id, colleague.id,
                EmployeeNoteCreate(content="Great teammate"),
            )


class TestSupervisorRatings:

    async def test_rating_recorded_with_mean_and_current_period(
        self, db: AsyncSession, employee, supervisor, clock,
    ):
        rating = await EligibilityService.record_supervisor_rating(
            db, employee.organization_id, supervisor.id, employee.id, _rating_payload(),
        )

        assert rating.overall_rating == 4.0
        assert rating.rating_period == "2026-03"
        assert rating.supervisor_id == supervisor.id

    async def test_out_of_range_criteria_rejected(
        self, db: AsyncSession, employee, supervisor, clock,
    ):
        with pytest.raises(ValidationException) as exc_info:
            await EligibilityService.record_supervisor_rating(
                db, employee.organization_id, supervisor.id, employee.id,
                _rating_payload(quality_of_work=0, reliability=6),
            )
        assert set(exc_info.value.errors) == {"quality_of_work", "reliability"}

    async def test_latest_rating_feeds_evaluation(
        self, db: AsyncSession, employee, supervisor, clock,
    ):
        await EligibilityService.record_supervisor_rating(
            db, employee.organization_id, supervisor.id, employee.id,
            _rating_payload(rating_period="2026-02"),
        )
        clock.advance(days=1)
        await EligibilityService.record_supervisor_rating(
            db, employee.organization_id, supervisor.id, employee.id,
            _rating_payload(
                quality_of_work=5, efficiency=5, teamwork=5,
                initiative=5, communication=5, reliability=5,
            ),
        )

        result = await EligibilityService.evaluate_employee(
            db, employee.organization_id, supervisor.id, employee.id,
        )
        assert result.breakdown.supervisor_rating is not None
        assert result.breakdown.supervisor_rating.score == 100

    async def test_rating_requires_reviewer_of_same_tenant(
        self, db: AsyncSession, employee, other_org, clock,
    ):
        outsider = await make_employee(db, other_org, role=UserRole.supervisor)

        with pytest.raises(ForbiddenException):
            await EligibilityService.record_supervisor_rating(
                db, other_org.id, outsider.id, employee.id, _rating_payload(),
            )
