"""Shared test fixtures — async DB, client, clock, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test settings before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from leaveflow.common.constants import UserRole
from leaveflow.common.rate_limit import limiter
from leaveflow.config import settings
from leaveflow.database import Base, get_db
from leaveflow.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
# (e.g. Employee → LeaveRequest)
import leaveflow.common.audit  # noqa: F401
import leaveflow.core_hr.models  # noqa: F401
import leaveflow.eligibility.models  # noqa: F401
import leaveflow.leave.models  # noqa: F401
import leaveflow.notifications.models  # noqa: F401
import leaveflow.sla.models  # noqa: F401

from leaveflow.core_hr.models import Employee, Organization


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Controllable clock ──────────────────────────────────────────────

# Monday 2026-03-02 09:00 UTC
CLOCK_START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

_CLOCKED_MODULES = (
    "leaveflow.leave.service",
    "leaveflow.sla.service",
    "leaveflow.eligibility.service",
)


class FrozenClock:
    """Callable stand-in for each service's ``_now()``."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> datetime:
        self.now = value
        return self.now


@pytest.fixture
def clock(monkeypatch) -> FrozenClock:
    frozen = FrozenClock(CLOCK_START)
    for module in _CLOCKED_MODULES:
        monkeypatch.setattr(f"{module}._now", frozen)
    return frozen


# ── Model factories ─────────────────────────────────────────────────

async def make_org(
    db: AsyncSession,
    *,
    name: str = "Acme",
    slug: Optional[str] = None,
    timezone_name: str = "UTC",
) -> Organization:
    org = Organization(
        id=uuid.uuid4(),
        name=name,
        slug=slug or f"{name.lower()}-{uuid.uuid4().hex[:6]}",
        timezone=timezone_name,
        is_active=True,
        created_at=datetime.now(timezone.utc),
    )
    db.add(org)
    await db.flush()
    return org


async def make_employee(
    db: AsyncSession,
    org: Organization,
    *,
    role: UserRole = UserRole.employee,
    name: Optional[str] = None,
    department: Optional[str] = None,
    is_approved: bool = True,
    is_active: bool = True,
    paid: int = 24,
    sick: int = 10,
    family: int = 5,
) -> Employee:
    suffix = uuid.uuid4().hex[:8]
    emp = Employee(
        id=uuid.uuid4(),
        organization_id=org.id,
        name=name or f"{role.value.title()} {suffix}",
        email=f"{role.value}.{suffix}@example.com",
        role=role,
        department=department,
        is_active=is_active,
        is_approved=is_approved,
        paid_leave_balance=paid,
        sick_leave_balance=sick,
        family_leave_balance=family,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )
    db.add(emp)
    await db.flush()
    return emp


@pytest.fixture
async def org(db) -> Organization:
    return await make_org(db)


@pytest.fixture
async def other_org(db) -> Organization:
    return await make_org(db, name="Globex")


@pytest.fixture
async def admin(db, org) -> Employee:
    return await make_employee(db, org, role=UserRole.admin, name="Ada Admin")


@pytest.fixture
async def supervisor(db, org) -> Employee:
    return await make_employee(db, org, role=UserRole.supervisor, name="Sam Supervisor")


@pytest.fixture
async def employee(db, org) -> Employee:
    return await make_employee(db, org, name="Eve Employee")


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    employee_id: uuid.UUID,
    expired: bool = False,
    token_type: str = "access",
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
    payload = {
        "sub": str(employee_id),
        "type": token_type,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers(employee: Employee) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(employee.id)}"}
