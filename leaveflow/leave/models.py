"""Leave ORM model: LeaveRequest, the single entity of the lifecycle."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leaveflow.common.constants import LeaveStatus, LeaveType
from leaveflow.database import Base

if TYPE_CHECKING:
    from leaveflow.core_hr.models import Employee


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


_leave_type_enum = sa.Enum(LeaveType, name="leave_type")


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        sa.CheckConstraint("days >= 1", name="ck_leave_requests_days_positive"),
        sa.CheckConstraint("end_date >= start_date", name="ck_leave_requests_range"),
        sa.Index("ix_leave_requests_org_status", "organization_id", "status"),
        sa.Index("ix_leave_requests_employee_dates", "employee_id", "start_date", "end_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("organizations.id"), nullable=False,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("employees.id"), nullable=False,
    )
    leave_type: Mapped[LeaveType] = mapped_column(_leave_type_enum, nullable=False)
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    days: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    reason: Mapped[str] = mapped_column(sa.Text, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(sa.Text)
    status: Mapped[LeaveStatus] = mapped_column(
        sa.Enum(LeaveStatus, name="leave_status"), default=LeaveStatus.pending,
    )
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.Uuid, sa.ForeignKey("employees.id"),
    )
    review_comment: Mapped[Optional[str]] = mapped_column(sa.Text)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True),
    )

    # What approval actually took from the balance; delete gives exactly this back.
    deducted_days: Mapped[int] = mapped_column(sa.Integer, default=0)
    deducted_from: Mapped[Optional[LeaveType]] = mapped_column(_leave_type_enum)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )

    # Relationships
    employee: Mapped[Employee] = relationship(
        back_populates="leave_requests", foreign_keys=[employee_id],
    )
    reviewer: Mapped[Optional[Employee]] = relationship(foreign_keys=[reviewed_by])

    def __repr__(self) -> str:
        return f"<LeaveRequest {self.id} {self.leave_type.value} {self.status.value}>"
