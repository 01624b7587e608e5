"""Identity provider: credentials, metadata, roles, recovery links and login."""

import logging
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlencode
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hess.core.config import get_settings
from hess.core.security import (
    create_access_token,
    create_recovery_token,
    generate_temporary_password,
    hash_password,
    verify_password,
)
from hess.core.structured_logging import log_json
from hess.models.auth_user import AuthUser
from hess.models.enums import AppRole, AuditAction
from hess.models.user_role import UserRole
from hess.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class IdentityExistsError(Exception):
    """Raised when an identity with the same email already exists."""

    def __init__(self, email: str):
        super().__init__(f"A user with email {email} already exists")
        self.email = email


def normalize_email(email: str) -> str:
    return email.strip().lower()


class IdentityService:
    """Service owning the ``auth_users`` and ``user_roles`` tables."""

    def __init__(self, db: AsyncSession):
        """Initialize identity service.

        Args:
            db: Database session
        """
        self.db = db
        self.audit_service = AuditService(db)

    async def get_by_id(self, user_id: UUID) -> AuthUser | None:
        result = await self.db.execute(select(AuthUser).where(AuthUser.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> AuthUser | None:
        """Case-insensitive identity lookup."""
        result = await self.db.execute(
            select(AuthUser).where(AuthUser.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def create_user(
        self,
        email: str,
        *,
        password_hash: str | None = None,
        password: str | None = None,
        metadata: dict[str, Any] | None = None,
        email_confirmed: bool = True,
    ) -> AuthUser:
        """Create an identity.

        Exactly one of ``password_hash`` (an already-hashed registrant
        password) or ``password`` may be given; neither creates an identity
        that cannot log in until it is recovered.

        Raises:
            IdentityExistsError: If the email is already taken. The insert
                runs in a SAVEPOINT so the caller's transaction stays usable.
        """
        if password is not None:
            password_hash = hash_password(password)

        user = AuthUser(
            email=normalize_email(email),
            encrypted_password=password_hash,
            user_metadata=dict(metadata or {}),
            email_confirmed_at=datetime.now(UTC) if email_confirmed else None,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(user)
                await self.db.flush()
        except IntegrityError as exc:
            raise IdentityExistsError(email) from exc

        log_json(logger, logging.INFO, "identity_created", user_id=str(user.id))
        return user

    async def create_user_with_temporary_password(
        self, email: str, metadata: dict[str, Any] | None = None
    ) -> AuthUser:
        """Create an identity that is onboarded through a recovery link."""
        return await self.create_user(
            email,
            password=generate_temporary_password(),
            metadata=metadata,
        )

    async def merge_metadata(self, user: AuthUser, metadata: dict[str, Any]) -> AuthUser:
        """Merge attributes into the identity's metadata (existing keys kept unless overridden)."""
        merged = dict(user.user_metadata or {})
        merged.update({key: value for key, value in metadata.items() if value is not None})
        user.user_metadata = merged
        await self.db.flush()
        return user

    async def set_password_hash(self, user: AuthUser, password_hash: str) -> AuthUser:
        user.encrypted_password = password_hash
        if user.email_confirmed_at is None:
            user.email_confirmed_at = datetime.now(UTC)
        await self.db.flush()
        return user

    async def update_email(self, user: AuthUser, email: str) -> AuthUser:
        user.email = normalize_email(email)
        await self.db.flush()
        return user

    async def delete_user(self, user_id: UUID) -> int:
        """Delete an identity; its profile and roles cascade. Returns rows removed."""
        result = await self.db.execute(delete(AuthUser).where(AuthUser.id == user_id))
        return result.rowcount or 0

    async def get_roles(self, user_id: UUID) -> list[AppRole]:
        result = await self.db.execute(select(UserRole.role).where(UserRole.user_id == user_id))
        return list(result.scalars().all())

    async def has_role(self, user_id: UUID, role: AppRole) -> bool:
        result = await self.db.execute(
            select(UserRole.id).where(UserRole.user_id == user_id, UserRole.role == role)
        )
        return result.first() is not None

    async def assign_role(self, user_id: UUID, role: AppRole) -> bool:
        """Grant a role. Returns False when the identity already holds it."""
        if await self.has_role(user_id, role):
            return False
        try:
            async with self.db.begin_nested():
                self.db.add(UserRole(user_id=user_id, role=role))
                await self.db.flush()
        except IntegrityError:
            # Concurrent grant of the same role
            return False
        return True

    async def delete_roles(self, user_id: UUID) -> int:
        result = await self.db.execute(delete(UserRole).where(UserRole.user_id == user_id))
        return result.rowcount or 0

    def generate_recovery_link(self, user: AuthUser) -> str:
        """Build a portal link that lets the identity choose its password."""
        settings = get_settings()
        token = create_recovery_token(str(user.id), user.email)
        query = urlencode({"type": "recovery", "token": token})
        return f"{settings.app_url.rstrip('/')}/auth/reset-password?{query}"

    async def login(
        self, email: str, password: str, ip_address: str | None = None
    ) -> tuple[str, AuthUser]:
        """Authenticate with email and password.

        Returns:
            Tuple of (access_token, user)

        Raises:
            HTTPException: 401 if credentials are invalid
        """
        user = await self.get_by_email(email)
        if not user or not verify_password(password, user.encrypted_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password"
            )

        user.last_sign_in_at = datetime.now(UTC)
        await self.db.flush()

        roles = await self.get_roles(user.id)
        access_token = create_access_token(
            {
                "sub": str(user.id),
                "email": user.email,
                "roles": [role.value for role in roles],
            }
        )

        await self.audit_service.log(
            action=AuditAction.IDENTITY_LOGIN,
            entity_type="identity",
            entity_id=user.id,
            actor_id=user.id,
            ip_address=ip_address,
        )
        return access_token, user
