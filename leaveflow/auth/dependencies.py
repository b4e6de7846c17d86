"""Auth dependencies: bearer identity and role gates for the routers.

Token issuance and session management belong to the identity provider;
this module only resolves the acting employee from an access token. The
employee's ``organization_id`` is the tenant every service call runs in.
"""

from __future__ import annotations

import uuid
from typing import Callable

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.common.constants import UserRole
from leaveflow.common.exceptions import ForbiddenException, UnauthorizedException
from leaveflow.config import settings
from leaveflow.core_hr.models import Employee
from leaveflow.database import get_db

# Roles each role may act as
_ROLE_HIERARCHY: dict[UserRole, frozenset[UserRole]] = {
    UserRole.superadmin: frozenset(UserRole),
    UserRole.admin: frozenset({UserRole.admin, UserRole.supervisor, UserRole.employee}),
    UserRole.supervisor: frozenset({UserRole.supervisor, UserRole.employee}),
    UserRole.employee: frozenset({UserRole.employee}),
}

_BEARER_PREFIX = "Bearer "


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    if not header.startswith(_BEARER_PREFIX):
        raise UnauthorizedException("Missing or invalid Authorization header.")
    return header[len(_BEARER_PREFIX):]


def _subject(token: str) -> uuid.UUID:
    """Decode an access token and return its employee id."""
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise UnauthorizedException("Token has expired.")
    except JWTError:
        raise UnauthorizedException("Invalid token.")

    if claims.get("type") != "access":
        raise UnauthorizedException("Invalid token type.")
    try:
        return uuid.UUID(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedException("Invalid token subject.")


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    """The active employee named by the bearer token."""
    employee_id = _subject(_bearer_token(request))

    result = await db.execute(
        select(Employee).where(Employee.id == employee_id, Employee.is_active.is_(True))
    )
    employee = result.scalars().first()
    if employee is None:
        raise UnauthorizedException("User account is inactive or not found.")
    return employee


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Dependency factory: the current employee, if its role (or a role it
    outranks) is among *allowed_roles*.

    The role is read from the employee row, never from token claims.
    """
    allowed = frozenset(allowed_roles)

    async def _check(employee: Employee = Depends(get_current_user)) -> Employee:
        if not _ROLE_HIERARCHY.get(employee.role, frozenset({employee.role})) & allowed:
            raise ForbiddenException(
                f"Role '{employee.role.value}' is not permitted. "
                f"Required: {sorted(r.value for r in allowed)}."
            )
        return employee

    return _check
