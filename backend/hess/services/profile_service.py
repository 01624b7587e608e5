"""Profile provisioning.

Profiles are materialized synchronously from an identity's metadata right
after the identity is created or updated, so the orchestrators can reference
the profile within the same transaction.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hess.models.auth_user import AuthUser
from hess.models.mixins import BOOLEAN_FIELDS, DESCRIPTIVE_FIELDS, as_bool
from hess.models.pending_registration import PendingRegistration
from hess.models.profile import Profile

PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "phone",
    "organization",
    "address",
    "zip",
    *DESCRIPTIVE_FIELDS,
)


def registration_metadata(registration: PendingRegistration) -> dict[str, Any]:
    """Identity metadata derived from a registration's self-declared attributes."""
    metadata: dict[str, Any] = {
        "first_name": registration.first_name,
        "last_name": registration.last_name,
        "organization": registration.organization_name,
        "state_association": registration.state_association,
        "address": registration.address,
        "zip": registration.zip,
    }
    for field in DESCRIPTIVE_FIELDS:
        metadata[field] = getattr(registration, field)
    return metadata


def coerce_profile_value(field: str, value: Any) -> Any:
    """Convert an identity metadata value to the profile column's type.

    Raises:
        ValueError: If the value cannot be converted.
    """
    if field in BOOLEAN_FIELDS:
        return as_bool(value)
    if field == "student_fte":
        if value in (None, ""):
            return None
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid student_fte: {value!r}") from exc
    return value


class ProfileService:
    """Service for profile lookup and provisioning."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, profile_id: UUID) -> Profile | None:
        result = await self.db.execute(select(Profile).where(Profile.id == profile_id))
        return result.scalar_one_or_none()

    async def get_by_user_id(self, user_id: UUID) -> Profile | None:
        result = await self.db.execute(select(Profile).where(Profile.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Profile | None:
        result = await self.db.execute(
            select(Profile)
            .where(Profile.email == email.strip().lower())
            .order_by(Profile.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def provision(self, user: AuthUser) -> Profile:
        """Create or refresh the profile of an identity from its metadata."""
        metadata = user.user_metadata or {}
        profile = await self.get_by_user_id(user.id)
        if profile is None:
            profile = Profile(user_id=user.id, email=user.email)
            self.db.add(profile)
        else:
            profile.email = user.email

        for field in PROFILE_FIELDS:
            if field in metadata:
                setattr(profile, field, coerce_profile_value(field, metadata[field]))

        await self.db.flush()
        return profile
