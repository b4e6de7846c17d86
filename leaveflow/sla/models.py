"""SLA ORM models: per-tenant SLAConfig and per-request SLAMetric."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from leaveflow.common.constants import DEFAULT_SLA_CONFIG, SLAStatus
from leaveflow.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SLAConfig(Base):
    """At most one row per tenant; absent rows mean ``DEFAULT_SLA_CONFIG``."""

    __tablename__ = "sla_configs"

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("organizations.id"), unique=True, nullable=False,
    )
    target_response_time: Mapped[float] = mapped_column(
        sa.Float, default=DEFAULT_SLA_CONFIG["target_response_time"],
    )
    warning_threshold: Mapped[float] = mapped_column(
        sa.Float, default=DEFAULT_SLA_CONFIG["warning_threshold"],
    )
    critical_threshold: Mapped[float] = mapped_column(
        sa.Float, default=DEFAULT_SLA_CONFIG["critical_threshold"],
    )
    business_hours_only: Mapped[bool] = mapped_column(
        sa.Boolean, default=DEFAULT_SLA_CONFIG["business_hours_only"],
    )
    business_start_hour: Mapped[int] = mapped_column(
        sa.Integer, default=DEFAULT_SLA_CONFIG["business_start_hour"],
    )
    business_end_hour: Mapped[int] = mapped_column(
        sa.Integer, default=DEFAULT_SLA_CONFIG["business_end_hour"],
    )
    exclude_weekends: Mapped[bool] = mapped_column(
        sa.Boolean, default=DEFAULT_SLA_CONFIG["exclude_weekends"],
    )
    timezone: Mapped[str] = mapped_column(sa.String(50), default="UTC")
    notify_on_warning: Mapped[bool] = mapped_column(
        sa.Boolean, default=DEFAULT_SLA_CONFIG["notify_on_warning"],
    )
    notify_on_critical: Mapped[bool] = mapped_column(
        sa.Boolean, default=DEFAULT_SLA_CONFIG["notify_on_critical"],
    )
    notify_on_breach: Mapped[bool] = mapped_column(
        sa.Boolean, default=DEFAULT_SLA_CONFIG["notify_on_breach"],
    )
    updated_by: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("employees.id"), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )


class SLAMetric(Base):
    """Responsiveness record shadowing exactly one leave request.

    The target, thresholds and business-hours policy are copied from the
    tenant's effective config when the metric is created; later config
    changes never alter an existing metric. Rows outlive their request
    (no FK) and are kept as history.
    """

    __tablename__ = "sla_metrics"
    __table_args__ = (
        sa.Index("ix_sla_metrics_org_status", "organization_id", "status"),
        sa.Index("ix_sla_metrics_submitted", "submitted_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("organizations.id"), nullable=False,
    )
    leave_request_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, unique=True, nullable=False,
    )
    submitted_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False,
    )
    responded_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True),
    )
    response_time_hours: Mapped[Optional[float]] = mapped_column(sa.Float)
    sla_score: Mapped[Optional[float]] = mapped_column(sa.Float)
    status: Mapped[SLAStatus] = mapped_column(
        sa.Enum(SLAStatus, name="sla_status"), default=SLAStatus.pending,
    )

    # ── Config snapshot ─────────────────────────────────────────────
    target_response_time: Mapped[float] = mapped_column(sa.Float, nullable=False)
    warning_threshold: Mapped[float] = mapped_column(sa.Float, nullable=False)
    critical_threshold: Mapped[float] = mapped_column(sa.Float, nullable=False)
    business_hours_only: Mapped[bool] = mapped_column(sa.Boolean, nullable=False)
    business_start_hour: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    business_end_hour: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    exclude_weekends: Mapped[bool] = mapped_column(sa.Boolean, nullable=False)
    timezone: Mapped[str] = mapped_column(sa.String(50), nullable=False)

    # ── Escalation flags ────────────────────────────────────────────
    warning_triggered: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    critical_triggered: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    breach_triggered: Mapped[bool] = mapped_column(sa.Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<SLAMetric {self.leave_request_id} {self.status.value}>"
