"""Shared test fixtures — async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
Seed helpers commit, so data survives the rollbacks the app performs on
failed requests.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import StaticPool

from leavedesk.common.constants import UserRole
from leavedesk.config import settings
from leavedesk.database import Base, get_db
from leavedesk.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import leavedesk.leave.models  # noqa: F401
import leavedesk.notifications.models  # noqa: F401
import leavedesk.users.models  # noqa: F401
from leavedesk.leave.models import LeaveBalance, LeaveType
from leavedesk.users.models import Department, User


# ── SQLite compat: compile PG-specific types ────────────────────────

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
    from leavedesk.common.rate_limit import limiter

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

async def make_user(
    db: AsyncSession,
    *,
    name: str = "Test User",
    role: UserRole = UserRole.employee,
    manager: User | None = None,
    department: Department | None = None,
) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{name.lower().replace(' ', '.')}.{uuid.uuid4().hex[:6]}@leavedesk.test",
        name=name,
        role=role,
        manager_id=manager.id if manager else None,
        department_id=department.id if department else None,
    )
    db.add(user)
    await db.commit()
    return user


async def make_leave_type(
    db: AsyncSession,
    *,
    name: str = "Annual Leave",
    default_days: str = "20",
    carry_forward: bool = False,
    max_carry_days: str = "0",
    is_active: bool = True,
) -> LeaveType:
    leave_type = LeaveType(
        id=uuid.uuid4(),
        name=name,
        default_days=Decimal(default_days),
        carry_forward=carry_forward,
        max_carry_days=Decimal(max_carry_days),
        is_active=is_active,
    )
    db.add(leave_type)
    await db.commit()
    return leave_type


async def make_balance(
    db: AsyncSession,
    user: User,
    leave_type: LeaveType,
    *,
    year: int = 2026,
    total: str = "20",
    used: str = "0",
    pending: str = "0",
) -> LeaveBalance:
    balance = LeaveBalance(
        user_id=user.id,
        leave_type_id=leave_type.id,
        year=year,
        total_days=Decimal(total),
        used_days=Decimal(used),
        pending_days=Decimal(pending),
    )
    db.add(balance)
    await db.commit()
    return balance


@pytest.fixture
async def department(db) -> Department:
    dept = Department(id=uuid.uuid4(), name="Engineering")
    db.add(dept)
    await db.commit()
    return dept


@pytest.fixture
async def admin(db) -> User:
    return await make_user(db, name="Ada Admin", role=UserRole.admin)


@pytest.fixture
async def manager(db, department) -> User:
    return await make_user(
        db, name="Mina Manager", role=UserRole.manager, department=department,
    )


@pytest.fixture
async def employee(db, manager, department) -> User:
    return await make_user(
        db, name="Eli Employee", manager=manager, department=department,
    )


@pytest.fixture
async def leave_type(db) -> LeaveType:
    return await make_leave_type(db)


@pytest.fixture
async def balance(db, employee, leave_type) -> LeaveBalance:
    """20 days of annual leave for the employee in 2026."""
    return await make_balance(db, employee, leave_type)


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    expired: bool = False,
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(user_id),
        "type": "access",
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers_for(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
