"""Common module — shared utilities for LeaveFlow."""

from leaveflow.common.audit import AuditTrail, create_audit_entry
from leaveflow.common.constants import (
    ADMIN_ROLES,
    BALANCE_FIELDS,
    DEFAULT_PAGE_SIZE,
    DEFAULT_SLA_CONFIG,
    MAX_PAGE_SIZE,
    REVIEWER_ROLES,
    LeaveStatus,
    LeaveType,
    NotificationType,
    SLAStatus,
    UserRole,
)
from leaveflow.common.exceptions import (
    AlreadyReviewedException,
    AppException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
    register_exception_handlers,
)
from leaveflow.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "ADMIN_ROLES",
    "BALANCE_FIELDS",
    "DEFAULT_SLA_CONFIG",
    "REVIEWER_ROLES",
    "LeaveStatus",
    "LeaveType",
    "NotificationType",
    "SLAStatus",
    "UserRole",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AlreadyReviewedException",
    "AppException",
    "ConflictError",
    "ForbiddenException",
    "NotFoundException",
    "UnauthorizedException",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
