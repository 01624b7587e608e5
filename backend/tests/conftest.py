"""Pytest fixtures for testing."""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RENAME_RETRY_DELAY_SECONDS", "0")

from hess.core.database import configure_sqlite, get_db
from hess.core.security import create_access_token, hash_password
from hess.main import app
from hess.models.auth_user import AuthUser
from hess.models.base import Base
from hess.models.enums import (
    AppRole,
    ApprovalStatus,
    MembershipStatus,
    PriorityLevel,
    RequestStatus,
)
from hess.models.organization import Organization
from hess.models.pending_registration import PendingRegistration
from hess.models.profile import Profile
from hess.models.reassignment_request import ReassignmentRequest
from hess.models.user_role import UserRole
from hess.services.notification_service import NotificationError, get_notifier

TEST_DATABASE_URL = os.environ["DATABASE_URL"]

# Create test engine
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)
configure_sqlite(test_engine.sync_engine)

# Create test session factory
TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

ADMIN_EMAIL = "admin@hess.test"
ADMIN_PASSWORD = "AdminPass123"
REGISTRANT_PASSWORD = "Registrant123"


class FakeNotifier:
    """Records every email instead of calling the email API."""

    def __init__(self):
        self.sent: list[dict[str, Any]] = []
        self.fail = False

    async def send(self, email_type, to, organization_name, **context) -> bool:
        if self.fail:
            raise NotificationError("Email API returned 500: unavailable")
        self.sent.append(
            {"type": email_type, "to": to, "organization_name": organization_name, **context}
        )
        return True

    def of_type(self, email_type) -> list[dict[str, Any]]:
        return [message for message in self.sent if message["type"] == email_type]


@pytest_asyncio.fixture(scope="function")
async def db() -> AsyncGenerator[AsyncSession, None]:
    """Create test database session.

    Creates all tables before each test and drops them after.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest_asyncio.fixture(scope="function")
async def client(db: AsyncSession, notifier: FakeNotifier) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and notifier overrides.

    Each request runs in a SAVEPOINT of the test session so a failing request
    leaves no rows behind, like the per-request transaction of ``get_db``.
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with db.begin_nested():
            yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession) -> AuthUser:
    """Identity holding the admin role."""
    user = AuthUser(
        email=ADMIN_EMAIL,
        encrypted_password=hash_password(ADMIN_PASSWORD),
        user_metadata={"first_name": "Ada", "last_name": "Admin"},
        email_confirmed_at=datetime.now(UTC),
    )
    db.add(user)
    await db.flush()
    db.add(UserRole(user_id=user.id, role=AppRole.ADMIN))
    await db.flush()
    return user


@pytest.fixture()
def admin_headers(admin_user: AuthUser) -> dict[str, str]:
    token = create_access_token({"sub": str(admin_user.id), "email": admin_user.email})
    return {"Authorization": f"Bearer {token}"}


async def fetch(db: AsyncSession, model, **filters):
    """Re-read rows from the database, bypassing stale identity-map state."""
    result = await db.execute(
        select(model).filter_by(**filters).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def create_registration(
    db: AsyncSession,
    email: str = "jane.doe@acme.edu",
    organization_name: str = "Acme College",
    password: str = REGISTRANT_PASSWORD,
    **fields: Any,
) -> PendingRegistration:
    """Pending registration factory."""
    values: dict[str, Any] = {
        "first_name": "Jane",
        "last_name": "Doe",
        "address": "1 College Way",
        "city": "Springfield",
        "state": "IL",
        "zip": "62701",
        "student_fte": 1200,
        "student_information_system": "Banner",
        "financial_system": "Colleague",
        "approval_status": ApprovalStatus.PENDING,
        "priority_level": PriorityLevel.NORMAL,
    }
    values.update(fields)
    registration = PendingRegistration(
        email=email,
        organization_name=organization_name,
        password_hash=hash_password(password),
        **values,
    )
    db.add(registration)
    await db.flush()
    return registration


async def create_member(
    db: AsyncSession,
    email: str,
    first_name: str = "Olivia",
    last_name: str = "Contact",
    metadata: dict[str, Any] | None = None,
) -> tuple[AuthUser, Profile]:
    """Identity with its profile and member role."""
    user = AuthUser(
        email=email,
        encrypted_password=hash_password("MemberPass123"),
        user_metadata=metadata or {"first_name": first_name, "last_name": last_name},
        email_confirmed_at=datetime.now(UTC),
    )
    db.add(user)
    await db.flush()
    profile = Profile(user_id=user.id, email=email, first_name=first_name, last_name=last_name)
    db.add(profile)
    db.add(UserRole(user_id=user.id, role=AppRole.MEMBER))
    await db.flush()
    return user, profile


async def create_organization(
    db: AsyncSession,
    name: str = "Acme College",
    contact: Profile | None = None,
    membership_status: MembershipStatus = MembershipStatus.ACTIVE,
    **fields: Any,
) -> Organization:
    """Organization factory."""
    organization = Organization(
        name=name,
        contact_person_id=contact.id if contact else None,
        membership_status=membership_status,
        **fields,
    )
    db.add(organization)
    await db.flush()
    return organization


async def create_reassignment_request(
    db: AsyncSession,
    organization: Organization,
    new_contact_email: str = "new.contact@acme.edu",
    new_organization_data: dict[str, Any] | None = None,
    user_registration_data: dict[str, Any] | None = None,
    status: RequestStatus = RequestStatus.PENDING,
) -> ReassignmentRequest:
    """Reassignment request factory (keeps the organization name by default)."""
    request = ReassignmentRequest(
        organization_id=organization.id,
        new_contact_email=new_contact_email,
        new_organization_data=new_organization_data
        if new_organization_data is not None
        else {"name": organization.name, "city": "Springfield", "state": "IL"},
        user_registration_data=user_registration_data,
        status=status,
    )
    db.add(request)
    await db.flush()
    return request
