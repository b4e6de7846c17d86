"""SLA service layer — tenant config, metric lifecycle, live status, reporting.

Business logic:
  - Effective config resolution (persisted row or documented defaults, never
    written as a side effect of reading)
  - Metric creation with a frozen config snapshot, finalization with
    business-hours elapsed time and compliance score
  - Live traffic-light status for pending requests (pure, recomputed per read)
  - Compliance stats, daily trend and the escalation sweep
"""

from __future__ import annotations

import logging
import math
import uuid
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.common.audit import create_audit_entry
from leaveflow.common.constants import (
    DEFAULT_SLA_CONFIG,
    LeaveStatus,
    SLALiveStatus,
    SLAStatus,
)
from leaveflow.common.exceptions import (
    AlreadyReviewedException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from leaveflow.config import settings
from leaveflow.core_hr.models import Organization
from leaveflow.core_hr.service import EmployeeService
from leaveflow.leave.models import LeaveRequest
from leaveflow.notifications.service import notify_sla_escalation
from leaveflow.sla.clock import BusinessHoursPolicy, elapsed_business_hours, to_utc
from leaveflow.sla.models import SLAConfig, SLAMetric
from leaveflow.sla.schemas import (
    EscalationRunOut,
    PendingRequestBrief,
    PendingWithSLA,
    SLAConfigOut,
    SLAConfigUpdate,
    SLALiveOut,
    SLAStatsOut,
    SLATrendPoint,
)

logger = logging.getLogger(__name__)

# Fields copied verbatim between SLAConfig rows, SLAConfigOut and patches.
_CONFIG_FIELDS = (
    "target_response_time",
    "warning_threshold",
    "critical_threshold",
    "business_hours_only",
    "business_start_hour",
    "business_end_hour",
    "exclude_weekends",
    "timezone",
    "notify_on_warning",
    "notify_on_critical",
    "notify_on_breach",
)

# Fields frozen into every metric at creation.
_SNAPSHOT_FIELDS = (
    "target_response_time",
    "warning_threshold",
    "critical_threshold",
    "business_hours_only",
    "business_start_hour",
    "business_end_hour",
    "exclude_weekends",
    "timezone",
)


def _now() -> datetime:
    """Current UTC instant (patched in tests)."""
    return datetime.now(timezone.utc)


def _round1(value: float) -> float:
    return round(value, 1)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ═════════════════════════════════════════════════════════════════════
# Pure computations
# ═════════════════════════════════════════════════════════════════════


def score_response(response_time_hours: float, target: float) -> tuple[SLAStatus, float]:
    """Return ``(status, sla_score)`` for a finished review.

    On time scores in [80, 100], falling linearly toward the deadline.
    Late responses score in [0, 79], losing 40 points per full target of
    overage.
    """
    if response_time_hours <= target:
        score = max(80.0, 100.0 - (response_time_hours / target) * 20.0)
        return SLAStatus.on_time, round(score, 2)

    overage_ratio = (response_time_hours - target) / target
    penalty = min(79.0, overage_ratio * 40.0)
    return SLAStatus.breached, round(max(0.0, 79.0 - penalty), 2)


def classify_elapsed(
    elapsed: float,
    *,
    warning: float,
    critical: float,
    target: float,
) -> SLALiveStatus:
    """Map elapsed hours onto the four-state traffic light."""
    if elapsed >= target:
        return SLALiveStatus.breached
    if elapsed >= critical:
        return SLALiveStatus.critical
    if elapsed >= warning:
        return SLALiveStatus.warning
    return SLALiveStatus.normal


def validate_config(values: dict[str, Any]) -> None:
    """Raise ``ValidationException`` unless the merged config is coherent."""
    errors: dict[str, list[str]] = {}

    target = values["target_response_time"]
    warning = values["warning_threshold"]
    critical = values["critical_threshold"]
    if target <= 0:
        errors.setdefault("target_response_time", []).append(
            "Target response time must be positive."
        )
    if not 0 < warning <= critical:
        errors.setdefault("warning_threshold", []).append(
            "Warning threshold must be positive and not exceed the critical threshold."
        )
    if critical > target:
        errors.setdefault("critical_threshold", []).append(
            "Critical threshold must not exceed the target response time."
        )

    start = values["business_start_hour"]
    end = values["business_end_hour"]
    if not 0 <= start < end <= 24:
        errors.setdefault("business_end_hour", []).append(
            "Business hours must satisfy 0 <= start < end <= 24."
        )

    if errors:
        raise ValidationException(errors)


# ═════════════════════════════════════════════════════════════════════
# SLAConfigService
# ═════════════════════════════════════════════════════════════════════


class SLAConfigService:
    """Per-tenant SLA policy. Reads never write."""

    @staticmethod
    async def _get_row(
        db: AsyncSession,
        organization_id: uuid.UUID,
    ) -> Optional[SLAConfig]:
        result = await db.execute(
            select(SLAConfig).where(SLAConfig.organization_id == organization_id)
        )
        return result.scalars().first()

    @staticmethod
    async def _default_timezone(db: AsyncSession, organization_id: uuid.UUID) -> str:
        org = await db.get(Organization, organization_id)
        if org is not None and org.timezone:
            return org.timezone
        return settings.DEFAULT_TIMEZONE

    @staticmethod
    async def get_effective_config(
        db: AsyncSession,
        organization_id: uuid.UUID,
    ) -> SLAConfigOut:
        """Persisted config for the tenant, or the defaults flagged ``is_default``."""
        row = await SLAConfigService._get_row(db, organization_id)
        if row is not None:
            return SLAConfigOut.model_validate(row)

        return SLAConfigOut(
            organization_id=organization_id,
            timezone=await SLAConfigService._default_timezone(db, organization_id),
            is_default=True,
            **DEFAULT_SLA_CONFIG,
        )

    @staticmethod
    async def update_config(
        db: AsyncSession,
        organization_id: uuid.UUID,
        actor_id: uuid.UUID,
        patch: SLAConfigUpdate,
    ) -> SLAConfigOut:
        """Merge *patch* into the effective config and upsert the tenant row.

        Only admins of the tenant may write. Concurrent writers: last write
        wins, and ``updated_by`` / ``updated_at`` name the last writer. Two
        racing first writes collide on the unique tenant row; the loser gets
        ``ConflictError`` and may retry.
        """
        actor = await EmployeeService.get_actor(db, organization_id, actor_id)
        if not actor.is_admin:
            raise ForbiddenException("Only admins can update the SLA configuration.")

        current = await SLAConfigService.get_effective_config(db, organization_id)
        old_values = current.model_dump(include=set(_CONFIG_FIELDS))

        changes = {
            k: v for k, v in patch.model_dump(exclude_unset=True).items()
            if v is not None
        }
        merged = {**old_values, **changes}
        validate_config(merged)

        row = await SLAConfigService._get_row(db, organization_id)
        if row is None:
            row = SLAConfig(organization_id=organization_id)
            db.add(row)
        for field in _CONFIG_FIELDS:
            setattr(row, field, merged[field])
        row.updated_by = actor.id
        row.updated_at = _now()
        try:
            await db.flush()
        except IntegrityError:
            # Another admin created the tenant row first.
            raise ConflictError("organization_id", organization_id)

        await create_audit_entry(
            db,
            organization_id=organization_id,
            action="configure",
            entity_type="sla_config",
            entity_id=row.id,
            actor_id=actor.id,
            old_values=None if current.is_default else old_values,
            new_values=merged,
        )
        logger.info(
            "SLA config updated for org %s by %s (target=%sh)",
            organization_id, actor.id, merged["target_response_time"],
        )
        return SLAConfigOut.model_validate(row)


# ═════════════════════════════════════════════════════════════════════
# SLAService
# ═════════════════════════════════════════════════════════════════════


class SLAService:
    """Metric lifecycle and reporting."""

    # ─────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_metric(
        db: AsyncSession,
        leave_request: LeaveRequest,
    ) -> SLAMetric:
        """Create the pending metric shadowing *leave_request*.

        Must run in the same transaction as the request insert. The tenant's
        effective config at this instant is frozen into the row.
        """
        config = await SLAConfigService.get_effective_config(
            db, leave_request.organization_id,
        )
        metric = SLAMetric(
            organization_id=leave_request.organization_id,
            leave_request_id=leave_request.id,
            submitted_at=to_utc(leave_request.created_at),
            status=SLAStatus.pending,
            warning_triggered=False,
            critical_triggered=False,
            breach_triggered=False,
            **{field: getattr(config, field) for field in _SNAPSHOT_FIELDS},
        )
        db.add(metric)
        await db.flush()
        return metric

    @staticmethod
    async def get_metric(
        db: AsyncSession,
        organization_id: uuid.UUID,
        leave_request_id: uuid.UUID,
    ) -> SLAMetric:
        """Metric for a request; NotFound if absent, Forbidden across tenants."""
        result = await db.execute(
            select(SLAMetric).where(SLAMetric.leave_request_id == leave_request_id)
        )
        metric = result.scalars().first()
        if metric is None:
            raise NotFoundException("SLAMetric", str(leave_request_id))
        EmployeeService.ensure_same_tenant(organization_id, metric.organization_id)
        return metric

    @staticmethod
    async def finalize_metric(
        db: AsyncSession,
        leave_request_id: uuid.UUID,
        responded_at: datetime,
    ) -> SLAMetric:
        """Record the reviewer response. Runs once, with the decision."""
        result = await db.execute(
            select(SLAMetric).where(SLAMetric.leave_request_id == leave_request_id)
        )
        metric = result.scalars().first()
        if metric is None:
            raise NotFoundException("SLAMetric", str(leave_request_id))
        if metric.status != SLAStatus.pending:
            raise AlreadyReviewedException(leave_request_id)

        hours = round(
            elapsed_business_hours(
                metric.submitted_at,
                responded_at,
                BusinessHoursPolicy.from_source(metric),
            ),
            2,
        )
        status, score = score_response(hours, metric.target_response_time)

        metric.responded_at = to_utc(responded_at)
        metric.response_time_hours = hours
        metric.sla_score = score
        metric.status = status
        await db.flush()

        logger.info(
            "SLA metric for request %s finalized: %.2fh, %s (score %.2f)",
            leave_request_id, hours, status.value, score,
        )
        return metric

    # ─────────────────────────────────────────────────────────────────
    # Live view
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def live_elapsed(metric: SLAMetric, now: datetime) -> SLALiveOut:
        """Pure traffic-light computation for a pending metric."""
        elapsed = elapsed_business_hours(
            metric.submitted_at, now, BusinessHoursPolicy.from_source(metric),
        )
        target = metric.target_response_time
        return SLALiveOut(
            elapsed_hours=_round1(elapsed),
            remaining_hours=_round1(max(0.0, target - elapsed)),
            target_hours=target,
            progress_percent=min(100, _round_half_up(elapsed / target * 100)),
            status=classify_elapsed(
                elapsed,
                warning=metric.warning_threshold,
                critical=metric.critical_threshold,
                target=target,
            ),
        )

    @staticmethod
    async def _pending_pairs(
        db: AsyncSession,
        organization_id: uuid.UUID,
    ) -> Sequence[Any]:
        result = await db.execute(
            select(LeaveRequest, SLAMetric)
            .join(SLAMetric, SLAMetric.leave_request_id == LeaveRequest.id)
            .where(
                LeaveRequest.organization_id == organization_id,
                LeaveRequest.status == LeaveStatus.pending,
                SLAMetric.status == SLAStatus.pending,
            )
            .order_by(LeaveRequest.created_at)
        )
        return result.all()

    @staticmethod
    async def get_pending_with_sla(
        db: AsyncSession,
        organization_id: uuid.UUID,
        *,
        now: Optional[datetime] = None,
    ) -> list[PendingWithSLA]:
        """Pending requests of the tenant, oldest first, with live SLA status."""
        now = now or _now()
        return [
            PendingWithSLA(
                request=PendingRequestBrief.model_validate(leave_req),
                sla=SLAService.live_elapsed(metric, now),
            )
            for leave_req, metric in await SLAService._pending_pairs(db, organization_id)
        ]

    # ─────────────────────────────────────────────────────────────────
    # Reporting
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _window_metrics(
        db: AsyncSession,
        organization_id: uuid.UUID,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[SLAMetric]:
        # Pending metrics whose request was deleted are dropped; finished
        # metrics are kept as history.
        query = (
            select(SLAMetric)
            .outerjoin(LeaveRequest, LeaveRequest.id == SLAMetric.leave_request_id)
            .where(
                SLAMetric.organization_id == organization_id,
                or_(
                    SLAMetric.status != SLAStatus.pending,
                    LeaveRequest.id.is_not(None),
                ),
            )
            .order_by(SLAMetric.submitted_at)
        )
        if start is not None:
            query = query.where(SLAMetric.submitted_at >= to_utc(start))
        if end is not None:
            query = query.where(SLAMetric.submitted_at <= to_utc(end))
        result = await db.execute(query)
        return result.scalars().all()

    @staticmethod
    async def get_sla_stats(
        db: AsyncSession,
        organization_id: uuid.UUID,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> SLAStatsOut:
        """Compliance summary over metrics submitted inside ``[start, end]``."""
        now = now or _now()
        metrics = await SLAService._window_metrics(
            db, organization_id, start=start, end=end,
        )
        config = await SLAConfigService.get_effective_config(db, organization_id)

        pending = [m for m in metrics if m.status == SLAStatus.pending]
        on_time = sum(1 for m in metrics if m.status == SLAStatus.on_time)
        breached = sum(1 for m in metrics if m.status == SLAStatus.breached)
        completed = [m for m in metrics if m.response_time_hours is not None]

        avg_response = (
            sum(m.response_time_hours for m in completed) / len(completed)
            if completed else 0.0
        )
        avg_score = (
            sum(m.sla_score or 0.0 for m in completed) / len(completed)
            if completed else 0.0
        )
        decided = on_time + breached
        compliance = (on_time / decided * 100) if decided else 100.0

        warning_count = 0
        critical_count = 0
        for metric in pending:
            elapsed = elapsed_business_hours(
                metric.submitted_at, now, BusinessHoursPolicy.from_source(metric),
            )
            if elapsed >= metric.warning_threshold:
                warning_count += 1
            if elapsed >= metric.critical_threshold:
                critical_count += 1

        return SLAStatsOut(
            total=len(metrics),
            pending=len(pending),
            on_time=on_time,
            breached=breached,
            avg_response_time=_round1(avg_response),
            avg_sla_score=_round1(avg_score),
            compliance_rate=_round1(compliance),
            warning_count=warning_count,
            critical_count=critical_count,
            target_response_time=config.target_response_time,
        )

    @staticmethod
    async def get_sla_trend(
        db: AsyncSession,
        organization_id: uuid.UUID,
        *,
        days: int = 30,
        now: Optional[datetime] = None,
    ) -> list[SLATrendPoint]:
        """Per-day (UTC submission date) counts of completed metrics."""
        now = now or _now()
        metrics = await SLAService._window_metrics(
            db, organization_id, start=now - timedelta(days=days),
        )

        buckets: dict[date, dict[str, float]] = defaultdict(
            lambda: {"on_time": 0, "breached": 0, "hours": 0.0, "count": 0}
        )
        for metric in metrics:
            if metric.status == SLAStatus.pending:
                continue
            bucket = buckets[to_utc(metric.submitted_at).date()]
            if metric.status == SLAStatus.on_time:
                bucket["on_time"] += 1
            else:
                bucket["breached"] += 1
            if metric.response_time_hours is not None:
                bucket["hours"] += metric.response_time_hours
                bucket["count"] += 1

        points: list[SLATrendPoint] = []
        for day in sorted(buckets):
            bucket = buckets[day]
            decided = bucket["on_time"] + bucket["breached"]
            points.append(
                SLATrendPoint(
                    date=day,
                    on_time=int(bucket["on_time"]),
                    breached=int(bucket["breached"]),
                    avg_response_time=(
                        _round1(bucket["hours"] / bucket["count"])
                        if bucket["count"] else 0.0
                    ),
                    compliance_rate=(
                        _round1(bucket["on_time"] / decided * 100)
                        if decided else 100.0
                    ),
                )
            )
        return points

    # ─────────────────────────────────────────────────────────────────
    # Escalations
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def run_escalations(
        db: AsyncSession,
        organization_id: uuid.UUID,
        *,
        now: Optional[datetime] = None,
    ) -> EscalationRunOut:
        """Notify reviewers once per threshold crossed by a pending request.

        Each level (warning, critical, breach) fires at most once per metric;
        its flag is set even when the tenant muted that level.
        """
        now = now or _now()
        config = await SLAConfigService.get_effective_config(db, organization_id)
        summary = EscalationRunOut()

        for _leave_req, metric in await SLAService._pending_pairs(db, organization_id):
            summary.evaluated += 1
            elapsed = elapsed_business_hours(
                metric.submitted_at, now, BusinessHoursPolicy.from_source(metric),
            )
            levels = (
                (SLALiveStatus.warning, metric.warning_threshold,
                 "warning_triggered", config.notify_on_warning, "warnings"),
                (SLALiveStatus.critical, metric.critical_threshold,
                 "critical_triggered", config.notify_on_critical, "criticals"),
                (SLALiveStatus.breached, metric.target_response_time,
                 "breach_triggered", config.notify_on_breach, "breaches"),
            )
            for level, threshold, flag, notify, counter in levels:
                if elapsed < threshold or getattr(metric, flag):
                    continue
                setattr(metric, flag, True)
                if notify:
                    await notify_sla_escalation(db, metric, level, elapsed)
                    setattr(summary, counter, getattr(summary, counter) + 1)
                logger.info(
                    "SLA %s for request %s at %.1fh",
                    level.value, metric.leave_request_id, elapsed,
                )

        await db.flush()
        return summary
