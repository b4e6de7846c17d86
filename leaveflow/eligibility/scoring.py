"""Eligibility scoring engine — pure functions over plain records.

Nothing here touches the database. Inputs are any objects exposing the
attribute names of the signal models (ORM rows in production, transient
instances in tests). Every sub-score is an integer clamped to [0, 100] and
comes with 2–3 plain-text factor strings derived only from the inputs.
"""

from __future__ import annotations

import math
import uuid
from typing import Any, Iterable, Optional, Sequence

from leaveflow.common.constants import (
    Confidence,
    LeaveStatus,
    Recommendation,
    Sentiment,
    TimeTrackingStatus,
)
from leaveflow.eligibility.schemas import (
    EmployeeEligibilityOut,
    EmployeeScoreBreakdown,
    RequestEligibilityOut,
    RequestScoreBreakdown,
    ScoreComponent,
)

RATING_CRITERIA = (
    "quality_of_work",
    "efficiency",
    "teamwork",
    "initiative",
    "communication",
    "reliability",
)

# Fallbacks when a signal is missing entirely.
DEFAULT_PERFORMANCE = 50
DEFAULT_ATTENDANCE = 70
DEFAULT_BEHAVIOR = 75

# (performance, attendance, behavior-or-supervisor, leave_history[, workload])
GENERAL_WEIGHTS_WITH_RATING = (0.30, 0.30, 0.25, 0.15)
GENERAL_WEIGHTS = (0.35, 0.25, 0.25, 0.15)
REQUEST_WEIGHTS = (0.30, 0.20, 0.20, 0.15, 0.15)

_POSITIVE_WORDS = ("excellent", "great", "outstanding", "impressive", "exceeded", "strong", "good")
_NEGATIVE_WORDS = ("poor", "weak", "concerning", "issue", "problem", "below", "failed")

_REASONING = {
    Recommendation.APPROVE: {
        Confidence.HIGH: (
            "Employee demonstrates strong performance, good attendance and positive "
            "behavior. The request fits company policy and team capacity permits the absence."
        ),
        Confidence.MEDIUM: (
            "Employee shows satisfactory performance overall. Minor concerns exist but do "
            "not significantly affect eligibility. Approval with standard monitoring is advised."
        ),
    },
    Recommendation.REVIEW: {
        Confidence.MEDIUM: (
            "Performance indicators are mixed. A managerial review is advised before the "
            "final decision."
        ),
    },
    Recommendation.REJECT: {
        Confidence.LOW: (
            "Multiple performance or attendance concerns were identified. A detailed review "
            "with the employee is advised before approving leave."
        ),
    },
}


# ── Primitives ──────────────────────────────────────────────────────


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


def classify_sentiment(content: str) -> Sentiment:
    """Keyword sentiment used when a note is saved without an explicit one."""
    text = content.lower()
    has_positive = any(word in text for word in _POSITIVE_WORDS)
    has_negative = any(word in text for word in _NEGATIVE_WORDS)
    if has_positive and not has_negative:
        return Sentiment.positive
    if has_negative and not has_positive:
        return Sentiment.negative
    return Sentiment.neutral


def overall_rating(rating: Any) -> float:
    """Mean of the six supervisor criteria."""
    return sum(getattr(rating, c) for c in RATING_CRITERIA) / len(RATING_CRITERIA)


def recommend(score: int) -> tuple[Recommendation, Confidence]:
    if score >= 80:
        return Recommendation.APPROVE, Confidence.HIGH
    if score >= 60:
        return Recommendation.APPROVE, Confidence.MEDIUM
    if score >= 40:
        return Recommendation.REVIEW, Confidence.MEDIUM
    return Recommendation.REJECT, Confidence.LOW


def reasoning_for(recommendation: Recommendation, confidence: Confidence) -> str:
    return _REASONING[recommendation][confidence]


def weighted_score(scores: Sequence[int], weights: Sequence[float]) -> int:
    return clamp_score(sum(s * w for s, w in zip(scores, weights)))


# ── Performance ─────────────────────────────────────────────────────


def performance_score(metric: Optional[Any], rating: Optional[Any] = None) -> int:
    if metric is not None:
        kpi = metric.kpi_score / 5 * 100
        return clamp_score((kpi + metric.project_completion + metric.deadline_adherence) / 3)
    if rating is not None:
        return clamp_score(rating.overall_rating * 20)
    return DEFAULT_PERFORMANCE


def performance_factors(score: int, metric: Optional[Any], rating: Optional[Any] = None) -> list[str]:
    if score >= 90:
        factors = ["Excellent KPI performance"]
    elif score >= 70:
        factors = ["Good KPI performance"]
    else:
        factors = ["Below target KPIs"]

    if metric is None:
        factors.append("No performance metrics on record")
        if rating is not None:
            factors.append(f"Supervisor rating {rating.overall_rating:.1f}/5")
        return factors

    factors.append(
        "High project completion rate" if metric.project_completion >= 95
        else "Some projects incomplete"
    )
    factors.append(
        "Consistently meets deadlines" if metric.deadline_adherence >= 90
        else "Occasional deadline misses"
    )
    return factors


# ── Attendance ──────────────────────────────────────────────────────


def _tally(records: Sequence[Any]) -> tuple[int, int, int, int]:
    total = len(records)
    late = sum(1 for r in records if r.is_late)
    early = sum(1 for r in records if r.is_early_leave)
    absent = sum(1 for r in records if r.status == TimeTrackingStatus.absent)
    return total, late, early, absent


def attendance_score(metric: Optional[Any], time_records: Sequence[Any] = ()) -> int:
    """Time-tracking sample first, then the metric snapshot, else neutral.

    With a sample, a perfect record scores 90: punctuality carries 60%,
    presence 30%, and each early leave costs its share of 100 points.
    """
    if time_records:
        total, late, early, absent = _tally(time_records)
        punctuality_rate = (total - late) / total * 100
        attendance_rate = (total - absent) / total * 100
        early_leave_deduction = early / total * 100
        return clamp_score(
            punctuality_rate * 0.6 + attendance_rate * 0.3 - early_leave_deduction
        )

    if metric is not None:
        return clamp_score(
            metric.punctuality_score - metric.absence_rate * 5 - metric.late_arrivals * 2
        )
    return DEFAULT_ATTENDANCE


def attendance_factors(score: int, metric: Optional[Any], time_records: Sequence[Any] = ()) -> list[str]:
    factors = [
        "Excellent attendance record" if score >= 90 else "Some attendance concerns"
    ]
    if time_records:
        total, late, _early, absent = _tally(time_records)
        factors.append(
            f"Punctual over the last {total} recorded day(s)" if late == 0
            else f"{late} late arrival(s) in the last {total} recorded day(s)"
        )
        factors.append(
            "No absences recorded" if absent == 0 else f"{absent} absence(s) recorded"
        )
    elif metric is not None:
        factors.append(
            "Punctual" if metric.late_arrivals <= 2
            else f"{metric.late_arrivals} late arrivals"
        )
        factors.append(
            "Low absence rate" if metric.absence_rate <= 3
            else "Higher than average absences"
        )
    else:
        factors.append("No attendance data on record")
    return factors


# ── Behavior ────────────────────────────────────────────────────────


def _sentiment_counts(notes: Sequence[Any]) -> tuple[int, int, int]:
    positive = sum(1 for n in notes if n.sentiment == Sentiment.positive)
    neutral = sum(1 for n in notes if n.sentiment == Sentiment.neutral)
    negative = sum(1 for n in notes if n.sentiment == Sentiment.negative)
    return positive, neutral, negative


def behavior_score(notes: Sequence[Any]) -> int:
    if not notes:
        return DEFAULT_BEHAVIOR
    positive, neutral, negative = _sentiment_counts(notes)
    return clamp_score((positive * 100 + neutral * 75 - negative * 50) / len(notes))


def behavior_factors(notes: Sequence[Any], metric: Optional[Any] = None) -> list[str]:
    positive, _neutral, negative = _sentiment_counts(notes)
    if positive > 5:
        factors = ["Strong positive manager feedback"]
    elif positive > 0:
        factors = ["Positive manager feedback"]
    else:
        factors = ["Limited feedback"]
    factors.append(
        "No disciplinary issues" if negative == 0 else f"{negative} concern(s) noted"
    )
    if metric is not None:
        factors.append(
            "Excellent team collaboration" if metric.teamwork_rating >= 4.5
            else "Team collaboration could improve"
        )
    return factors


# ── Supervisor rating ───────────────────────────────────────────────


def supervisor_component(rating: Any) -> ScoreComponent:
    score = clamp_score(rating.overall_rating * 20)
    return ScoreComponent(
        score=score,
        factors=[
            f"Supervisor rating {rating.overall_rating:.1f}/5 for {rating.rating_period}",
            "Rated above expectations" if rating.overall_rating >= 4
            else "Rated at or below expectations",
        ],
    )


# ── Leave history ───────────────────────────────────────────────────


def approved_days_in_year(leaves: Iterable[Any], year: int) -> int:
    return sum(
        leave.days for leave in leaves
        if leave.status == LeaveStatus.approved and leave.start_date.year == year
    )


def utilization_rate(leaves: Iterable[Any], employee: Any, year: int) -> float:
    total_balance = (employee.paid_leave_balance or 0) + (employee.sick_leave_balance or 0)
    if total_balance <= 0:
        return 0.0
    return approved_days_in_year(leaves, year) / total_balance * 100


def leave_history_score(leaves: Iterable[Any], employee: Any, year: int) -> int:
    """Sweet spot: 50–75% of the annual balance used."""
    rate = utilization_rate(leaves, employee, year)
    if 50 <= rate <= 75:
        return 100
    if rate < 25:
        return 70
    if rate > 90:
        return 60
    return 85


def leave_history_factors(leaves: Sequence[Any], employee: Any, year: int) -> list[str]:
    used = approved_days_in_year(leaves, year)
    rate = utilization_rate(leaves, employee, year)
    factors = [
        f"Used {used} day(s) this year" if used else "No leave taken yet this year",
        "Good leave balance remaining" if (employee.paid_leave_balance or 0) >= 12
        else "Low leave balance",
    ]
    if 50 <= rate <= 75:
        factors.append("Healthy leave utilization")
    elif rate < 25:
        factors.append("Low leave utilization, possible burnout risk")
    elif rate > 90:
        factors.append("High leave utilization")
    else:
        factors.append("Moderate leave utilization")
    return factors


# ── Workload ────────────────────────────────────────────────────────


def workload_score(overlapping: int) -> int:
    if overlapping <= 0:
        return 100
    if overlapping == 1:
        return 85
    if overlapping == 2:
        return 70
    return 50


def workload_factors(overlapping: int) -> list[str]:
    return [
        "No team coverage issues" if overlapping == 0
        else f"{overlapping} team member(s) also on leave",
        "Team may be understaffed" if overlapping >= 2 else "Adequate team coverage",
    ]


# ═════════════════════════════════════════════════════════════════════
# Evaluations
# ═════════════════════════════════════════════════════════════════════


def evaluate_employee(
    employee: Any,
    *,
    metric: Optional[Any],
    rating: Optional[Any],
    time_records: Sequence[Any],
    notes: Sequence[Any],
    leaves: Sequence[Any],
    year: int,
) -> EmployeeEligibilityOut:
    """General standing. A supervisor rating, when present, takes the
    behavior slot in the weighting."""
    perf = performance_score(metric, rating)
    att = attendance_score(metric, time_records)
    beh = behavior_score(notes)
    hist = leave_history_score(leaves, employee, year)
    supervisor = supervisor_component(rating) if rating is not None else None

    if supervisor is not None:
        overall = weighted_score(
            (perf, att, supervisor.score, hist), GENERAL_WEIGHTS_WITH_RATING,
        )
    else:
        overall = weighted_score((perf, att, beh, hist), GENERAL_WEIGHTS)
    recommendation, confidence = recommend(overall)

    return EmployeeEligibilityOut(
        employee_id=employee.id,
        overall_score=overall,
        breakdown=EmployeeScoreBreakdown(
            performance=ScoreComponent(
                score=perf, factors=performance_factors(perf, metric, rating),
            ),
            attendance=ScoreComponent(
                score=att, factors=attendance_factors(att, metric, time_records),
            ),
            behavior=ScoreComponent(score=beh, factors=behavior_factors(notes, metric)),
            leave_history=ScoreComponent(
                score=hist, factors=leave_history_factors(leaves, employee, year),
            ),
            supervisor_rating=supervisor,
        ),
        recommendation=recommendation,
        confidence=confidence,
        reasoning=reasoning_for(recommendation, confidence),
    )


def evaluate_request(
    leave_request_id: uuid.UUID,
    employee: Any,
    *,
    metric: Optional[Any],
    rating: Optional[Any],
    time_records: Sequence[Any],
    notes: Sequence[Any],
    leaves: Sequence[Any],
    overlapping: int,
    year: int,
) -> RequestEligibilityOut:
    """Advice for one request: the general signals plus team overlap."""
    perf = performance_score(metric, rating)
    att = attendance_score(metric, time_records)
    beh = behavior_score(notes)
    hist = leave_history_score(leaves, employee, year)
    work = workload_score(overlapping)

    overall = weighted_score((perf, att, beh, hist, work), REQUEST_WEIGHTS)
    recommendation, confidence = recommend(overall)

    return RequestEligibilityOut(
        leave_request_id=leave_request_id,
        employee_id=employee.id,
        overall_score=overall,
        breakdown=RequestScoreBreakdown(
            performance=ScoreComponent(
                score=perf, factors=performance_factors(perf, metric, rating),
            ),
            attendance=ScoreComponent(
                score=att, factors=attendance_factors(att, metric, time_records),
            ),
            behavior=ScoreComponent(score=beh, factors=behavior_factors(notes, metric)),
            leave_history=ScoreComponent(
                score=hist, factors=leave_history_factors(leaves, employee, year),
            ),
            workload=ScoreComponent(score=work, factors=workload_factors(overlapping)),
        ),
        recommendation=recommendation,
        confidence=confidence,
        reasoning=reasoning_for(recommendation, confidence),
        overlapping_leaves=overlapping,
    )
