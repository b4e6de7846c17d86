"""Enums and constants for LeaveFlow."""

from __future__ import annotations

import enum


# ── Roles ───────────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    supervisor = "supervisor"
    admin = "admin"
    superadmin = "superadmin"


REVIEWER_ROLES: frozenset[UserRole] = frozenset(
    {UserRole.supervisor, UserRole.admin, UserRole.superadmin}
)
ADMIN_ROLES: frozenset[UserRole] = frozenset({UserRole.admin, UserRole.superadmin})


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    paid = "paid"
    unpaid = "unpaid"
    sick = "sick"
    family = "family"
    doctor = "doctor"


class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class LeaveDecision(str, enum.Enum):
    approve = "approve"
    reject = "reject"


# Leave type → Employee balance column. Types not listed never touch a balance.
BALANCE_FIELDS: dict[LeaveType, str] = {
    LeaveType.paid: "paid_leave_balance",
    LeaveType.sick: "sick_leave_balance",
    LeaveType.family: "family_leave_balance",
}


# ── SLA ─────────────────────────────────────────────────────────────

class SLAStatus(str, enum.Enum):
    pending = "pending"
    on_time = "on_time"
    breached = "breached"


class SLALiveStatus(str, enum.Enum):
    normal = "normal"
    warning = "warning"
    critical = "critical"
    breached = "breached"


DEFAULT_SLA_CONFIG: dict[str, object] = {
    "target_response_time": 24.0,
    "warning_threshold": 18.0,
    "critical_threshold": 22.0,
    "business_hours_only": False,
    "business_start_hour": 9,
    "business_end_hour": 17,
    "exclude_weekends": False,
    "notify_on_warning": True,
    "notify_on_critical": True,
    "notify_on_breach": True,
}


# ── Eligibility ─────────────────────────────────────────────────────

class Sentiment(str, enum.Enum):
    positive = "positive"
    neutral = "neutral"
    negative = "negative"


class NoteType(str, enum.Enum):
    performance = "performance"
    behavior = "behavior"
    achievement = "achievement"
    concern = "concern"
    general = "general"


class TimeTrackingStatus(str, enum.Enum):
    checked_in = "checked_in"
    checked_out = "checked_out"
    absent = "absent"


class Recommendation(str, enum.Enum):
    APPROVE = "APPROVE"
    REVIEW = "REVIEW"
    REJECT = "REJECT"


class Confidence(str, enum.Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


# ── Notifications ───────────────────────────────────────────────────

class NotificationType(str, enum.Enum):
    leave_request = "leave_request"
    leave_approved = "leave_approved"
    leave_rejected = "leave_rejected"
    leave_updated = "leave_updated"
    leave_deleted = "leave_deleted"
    sla_warning = "sla_warning"
    sla_critical = "sla_critical"
    sla_breach = "sla_breach"
    system = "system"


# ── Misc constants ──────────────────────────────────────────────────

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
