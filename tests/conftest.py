"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (engine, clock, corrections, sweeps, API).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Test settings must be in place before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["TIMEZONE"] = "UTC"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

import hashlib
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator, Awaitable, Callable

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from timekeeping.common.constants import PunchType, UserRole
from timekeeping.config import settings
from timekeeping.database import Base, get_db
from timekeeping.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import timekeeping.auth.models  # noqa: F401
import timekeeping.core_hr.models  # noqa: F401
import timekeeping.common.models  # noqa: F401
import timekeeping.attendance.models  # noqa: F401
import timekeeping.notifications.models  # noqa: F401

# ── SQLite compat: compile PG-specific types to TEXT ────────────────

from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


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
    from timekeeping.common.rate_limit import limiter

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


# ── Model factories ─────────────────────────────────────────────────

def _make_employee(
    *,
    first_name: str = "Test",
    last_name: str = "User",
    employee_number: str | None = None,
) -> dict:
    suffix = uuid.uuid4().hex[:6].upper()
    return dict(
        id=uuid.uuid4(),
        employee_number=employee_number or f"EMP-{suffix}",
        first_name=first_name,
        last_name=last_name,
        email=f"{first_name.lower()}.{suffix.lower()}@example.com",
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def make_employee(db) -> Callable[..., Awaitable[dict]]:
    """Factory fixture: insert an active employee and return its data dict."""
    from timekeeping.core_hr.models import Employee

    async def _create(**kwargs) -> dict:
        data = _make_employee(**kwargs)
        db.add(Employee(**data))
        await db.commit()
        return data

    return _create


@pytest.fixture
async def test_employee(make_employee) -> dict:
    return await make_employee(first_name="Asha", last_name="Rao", employee_number="EMP-001")


@pytest.fixture
async def manager_employee(make_employee) -> dict:
    return await make_employee(first_name="Mina", last_name="Shah", employee_number="MGR-001")


@pytest.fixture
async def hr_employee(make_employee) -> dict:
    return await make_employee(first_name="Hari", last_name="Iyer", employee_number="HR-001")


@pytest.fixture
async def admin_employee(make_employee) -> dict:
    return await make_employee(first_name="Sys", last_name="Admin", employee_number="ADM-001")


def make_punch(punch_type: PunchType, at: datetime, sequence: int = 0):
    """Build an unsaved AttendancePunch (also usable as a plain engine input)."""
    from timekeeping.attendance.models import AttendancePunch

    return AttendancePunch(sequence=sequence, punch_type=punch_type, punched_at=at)


def at(hour: int, minute: int = 0, second: int = 0, *, day: date | None = None) -> datetime:
    """UTC timestamp on ``day`` (default today) at the given wall-clock time."""
    day = day or datetime.now(timezone.utc).date()
    return datetime(day.year, day.month, day.day, hour, minute, second, tzinfo=timezone.utc)


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    employee_id: uuid.UUID,
    role: UserRole = UserRole.employee,
    expired: bool = False,
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(employee_id),
        "role": role.value,
        "type": "access",
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def make_auth_headers(db) -> Callable[..., Awaitable[dict[str, str]]]:
    """Factory fixture: persist a live session and return Bearer headers."""
    from timekeeping.auth.models import UserSession

    async def _headers(employee_id: uuid.UUID, role: UserRole = UserRole.employee) -> dict[str, str]:
        token = create_access_token(employee_id, role)
        db.add(
            UserSession(
                id=uuid.uuid4(),
                employee_id=employee_id,
                token_hash=hashlib.sha256(token.encode()).hexdigest(),
                expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
                is_revoked=False,
                created_at=datetime.now(timezone.utc),
            )
        )
        await db.commit()
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def auth_headers(make_auth_headers, test_employee) -> dict[str, str]:
    return await make_auth_headers(test_employee["id"])


@pytest.fixture
async def manager_headers(make_auth_headers, manager_employee) -> dict[str, str]:
    return await make_auth_headers(manager_employee["id"], UserRole.manager)


@pytest.fixture
async def hr_headers(make_auth_headers, hr_employee) -> dict[str, str]:
    return await make_auth_headers(hr_employee["id"], UserRole.hr_admin)


@pytest.fixture
async def admin_headers(make_auth_headers, admin_employee) -> dict[str, str]:
    return await make_auth_headers(admin_employee["id"], UserRole.system_admin)
