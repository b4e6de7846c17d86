"""Core HR ORM models: Organization (tenant) and Employee.

SQLAlchemy 2.0 async-compatible models with Mapped[] annotations.
Leave balances live directly on the employee row, one integer per
deductible leave type.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leaveflow.common.constants import ADMIN_ROLES, REVIEWER_ROLES, UserRole
from leaveflow.config import settings
from leaveflow.database import Base

if TYPE_CHECKING:
    from leaveflow.leave.models import LeaveRequest


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════
# Organization
# ═════════════════════════════════════════════════════════════════════


class Organization(Base):
    """An isolated tenant. Every other row carries its id."""

    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    slug: Mapped[str] = mapped_column(sa.String(150), unique=True, nullable=False)
    timezone: Mapped[str] = mapped_column(
        sa.String(50), default=lambda: settings.DEFAULT_TIMEZONE,
    )
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    employees: Mapped[list[Employee]] = relationship(back_populates="organization")

    def __repr__(self) -> str:
        return f"<Organization {self.slug!r}>"


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class Employee(Base):
    """A user of the platform: requester, reviewer, or both."""

    __tablename__ = "employees"
    __table_args__ = (
        sa.Index("ix_employees_org_role", "organization_id", "role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("organizations.id"), nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role"), default=UserRole.employee,
    )
    department: Mapped[Optional[str]] = mapped_column(sa.String(150))
    supervisor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.Uuid, sa.ForeignKey("employees.id"),
    )
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    is_approved: Mapped[bool] = mapped_column(sa.Boolean, default=False)

    # ── Leave balances (days) ───────────────────────────────────────
    paid_leave_balance: Mapped[int] = mapped_column(
        sa.Integer, default=lambda: settings.DEFAULT_PAID_LEAVE_BALANCE,
    )
    sick_leave_balance: Mapped[int] = mapped_column(
        sa.Integer, default=lambda: settings.DEFAULT_SICK_LEAVE_BALANCE,
    )
    family_leave_balance: Mapped[int] = mapped_column(
        sa.Integer, default=lambda: settings.DEFAULT_FAMILY_LEAVE_BALANCE,
    )

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    organization: Mapped[Organization] = relationship(back_populates="employees")
    leave_requests: Mapped[list[LeaveRequest]] = relationship(
        back_populates="employee", foreign_keys="LeaveRequest.employee_id",
    )

    @property
    def is_reviewer(self) -> bool:
        return self.role in REVIEWER_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def __repr__(self) -> str:
        return f"<Employee {self.email!r} ({self.role.value})>"
