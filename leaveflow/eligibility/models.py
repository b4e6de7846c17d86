"""Eligibility signal tables: performance, time tracking, notes, ratings.

These rows are written by collaborators (attendance terminals, review
cycles, managers) and only read by the scoring engine, except notes and
supervisor ratings, which have write operations here.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from leaveflow.common.constants import NoteType, Sentiment, TimeTrackingStatus
from leaveflow.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════
# PerformanceMetric
# ═════════════════════════════════════════════════════════════════════


class PerformanceMetric(Base):
    """Periodic KPI snapshot; the most recent row per employee is used."""

    __tablename__ = "performance_metrics"
    __table_args__ = (
        sa.Index("ix_performance_metrics_employee", "employee_id", "recorded_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("organizations.id"), nullable=False,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False,
    )
    punctuality_score: Mapped[float] = mapped_column(sa.Float, default=0.0)  # 0–100
    absence_rate: Mapped[float] = mapped_column(sa.Float, default=0.0)  # percent
    late_arrivals: Mapped[int] = mapped_column(sa.Integer, default=0)
    kpi_score: Mapped[float] = mapped_column(sa.Float, default=0.0)  # 0–5
    project_completion: Mapped[float] = mapped_column(sa.Float, default=0.0)  # percent
    deadline_adherence: Mapped[float] = mapped_column(sa.Float, default=0.0)  # percent
    teamwork_rating: Mapped[float] = mapped_column(sa.Float, default=0.0)  # 0–5
    communication_score: Mapped[float] = mapped_column(sa.Float, default=0.0)
    conflict_incidents: Mapped[int] = mapped_column(sa.Integer, default=0)
    recorded_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )


# ═════════════════════════════════════════════════════════════════════
# TimeTrackingRecord
# ═════════════════════════════════════════════════════════════════════


class TimeTrackingRecord(Base):
    """One working day of check-in / check-out data."""

    __tablename__ = "time_tracking_records"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "work_date", name="uq_time_tracking_emp_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("organizations.id"), nullable=False,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False,
    )
    work_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    check_in_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    check_out_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    is_late: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    is_early_leave: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    status: Mapped[TimeTrackingStatus] = mapped_column(
        sa.Enum(TimeTrackingStatus, name="time_tracking_status"),
        default=TimeTrackingStatus.checked_out,
    )


# ═════════════════════════════════════════════════════════════════════
# EmployeeNote
# ═════════════════════════════════════════════════════════════════════


class EmployeeNote(Base):
    """Manager note about an employee, tagged with a sentiment."""

    __tablename__ = "employee_notes"

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("organizations.id"), nullable=False,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("employees.id"), nullable=False,
    )
    note_type: Mapped[NoteType] = mapped_column(
        sa.Enum(NoteType, name="note_type"), default=NoteType.general,
    )
    sentiment: Mapped[Sentiment] = mapped_column(
        sa.Enum(Sentiment, name="sentiment"), default=Sentiment.neutral,
    )
    content: Mapped[str] = mapped_column(sa.Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )


# ═════════════════════════════════════════════════════════════════════
# SupervisorRating
# ═════════════════════════════════════════════════════════════════════


class SupervisorRating(Base):
    """Six 1–5 criteria; ``overall_rating`` is their mean."""

    __tablename__ = "supervisor_ratings"
    __table_args__ = (
        sa.Index("ix_supervisor_ratings_employee", "employee_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("organizations.id"), nullable=False,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False,
    )
    supervisor_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("employees.id"), nullable=False,
    )
    quality_of_work: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    efficiency: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    teamwork: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    initiative: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    communication: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    reliability: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    overall_rating: Mapped[float] = mapped_column(sa.Float, nullable=False)
    rating_period: Mapped[str] = mapped_column(sa.String(7), nullable=False)  # YYYY-MM
    strengths: Mapped[Optional[str]] = mapped_column(sa.Text)
    areas_for_improvement: Mapped[Optional[str]] = mapped_column(sa.Text)
    general_comments: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )
