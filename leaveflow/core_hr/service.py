"""Core HR lookups the leave engine depends on: employees and tenant checks."""

from __future__ import annotations

import uuid
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.common.constants import REVIEWER_ROLES
from leaveflow.common.exceptions import ForbiddenException, NotFoundException
from leaveflow.core_hr.models import Employee

CROSS_TENANT_DETAIL = "Access denied: cross-organization operation."


class EmployeeService:
    """Async employee reads and tenant-membership guards."""

    @staticmethod
    async def get_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Employee:
        """Load an employee by id or raise ``NotFoundException``.

        With *for_update* the row is re-read under ``SELECT ... FOR UPDATE``
        so balance arithmetic sees the committed value and holds the lock
        until the transaction ends.
        """
        employee = await db.get(
            Employee, employee_id, with_for_update=for_update, populate_existing=for_update,
        )
        if employee is None:
            raise NotFoundException("Employee", str(employee_id))
        return employee

    @staticmethod
    def ensure_same_tenant(
        organization_id: uuid.UUID,
        *entity_org_ids: Optional[uuid.UUID],
    ) -> None:
        """Raise ``ForbiddenException`` unless every id equals *organization_id*."""
        for entity_org_id in entity_org_ids:
            if entity_org_id != organization_id:
                raise ForbiddenException(CROSS_TENANT_DETAIL)

    @staticmethod
    async def get_actor(
        db: AsyncSession,
        organization_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> Employee:
        """Load the acting employee and verify it belongs to the tenant."""
        actor = await EmployeeService.get_employee(db, actor_id)
        EmployeeService.ensure_same_tenant(organization_id, actor.organization_id)
        return actor

    @staticmethod
    async def list_reviewers(
        db: AsyncSession,
        organization_id: uuid.UUID,
        *,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Sequence[Employee]:
        """Active supervisors, admins and superadmins of one tenant."""
        query = (
            select(Employee)
            .where(
                Employee.organization_id == organization_id,
                Employee.role.in_(list(REVIEWER_ROLES)),
                Employee.is_active.is_(True),
            )
            .order_by(Employee.created_at)
        )
        if exclude_id is not None:
            query = query.where(Employee.id != exclude_id)
        result = await db.execute(query)
        return result.scalars().all()
