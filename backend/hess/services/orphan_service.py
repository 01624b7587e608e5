"""Detection and repair of profiles and identities left inconsistent.

Partial failures, imports and manual edits can leave a profile whose identity
is gone, a profile whose email drifted from its identity's, an identity
without a profile or an active organization without a contact.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hess.core.structured_logging import log_json
from hess.models.auth_user import AuthUser
from hess.models.enums import AppRole, AuditAction
from hess.models.organization import Organization
from hess.models.profile import Profile
from hess.services.audit_service import AuditService
from hess.services.identity_service import IdentityExistsError, IdentityService
from hess.services.organization_service import OrganizationService

logger = logging.getLogger(__name__)

ISSUE_NO_AUTH_USER = "no_auth_user"
ISSUE_EMAIL_MISMATCH = "email_mismatch"

ACTION_ALREADY_VALID = "already_valid"
ACTION_EMAIL_SYNCED = "email_synced"
ACTION_LINKED_EXISTING = "linked_existing"
ACTION_CREATED_AUTH_USER = "created_auth_user"


class OrphanService:
    """Finds and fixes orphaned profiles."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.identities = IdentityService(db)
        self.audit_service = AuditService(db)

    async def detect(self) -> dict[str, Any]:
        """Report every inconsistency between profiles, identities and organizations."""
        result = await self.db.execute(
            select(Profile, AuthUser.email, Organization.id, Organization.name)
            .outerjoin(AuthUser, AuthUser.id == Profile.user_id)
            .outerjoin(Organization, Organization.contact_person_id == Profile.id)
            .order_by(Profile.email)
        )
        orphaned_profiles = []
        for profile, auth_email, organization_id, organization_name in result.all():
            if auth_email is None:
                issue = ISSUE_NO_AUTH_USER
            elif auth_email.lower() != profile.email.lower():
                issue = ISSUE_EMAIL_MISMATCH
            else:
                continue
            orphaned_profiles.append(
                {
                    "profileId": profile.id,
                    "userId": profile.user_id,
                    "email": profile.email,
                    "firstName": profile.first_name,
                    "lastName": profile.last_name,
                    "organizationId": organization_id,
                    "organizationName": organization_name,
                    "issue": issue,
                    "authEmail": auth_email,
                }
            )

        result = await self.db.execute(
            select(AuthUser.id, AuthUser.email)
            .outerjoin(Profile, Profile.user_id == AuthUser.id)
            .where(Profile.id.is_(None))
            .order_by(AuthUser.email)
        )
        identities_without_profile = [
            {"userId": user_id, "email": email} for user_id, email in result.all()
        ]

        organizations = await OrganizationService(self.db).list_active_without_contact()
        organizations_without_contact = [
            {"organizationId": org.id, "name": org.name} for org in organizations
        ]

        total_profiles = await self.db.scalar(select(func.count(Profile.id)))
        log_json(
            logger,
            logging.INFO if not orphaned_profiles else logging.WARNING,
            "orphan_detection",
            total_profiles=total_profiles,
            orphaned_profiles=len(orphaned_profiles),
            identities_without_profile=len(identities_without_profile),
            organizations_without_contact=len(organizations_without_contact),
        )
        return {
            "success": True,
            "totalProfiles": total_profiles or 0,
            "orphanedProfiles": orphaned_profiles,
            "identitiesWithoutProfile": identities_without_profile,
            "organizationsWithoutContact": organizations_without_contact,
        }

    async def fix(self, profile_ids: list[UUID], admin_user_id: UUID | None = None) -> dict[str, Any]:
        """Repair the given profiles one by one, each in its own SAVEPOINT."""
        results = []
        for profile_id in profile_ids:
            try:
                async with self.db.begin_nested():
                    outcome = await self._fix_profile(profile_id, admin_user_id)
            except (SQLAlchemyError, IdentityExistsError) as exc:
                log_json(
                    logger,
                    logging.WARNING,
                    "orphan_fix_failed",
                    profile_id=str(profile_id),
                    error=str(exc),
                )
                outcome = {"profileId": profile_id, "success": False, "error": str(exc)}
            results.append(outcome)
        return {"success": True, "results": results}

    async def _fix_profile(self, profile_id: UUID, admin_user_id: UUID | None) -> dict[str, Any]:
        result = await self.db.execute(select(Profile).where(Profile.id == profile_id))
        profile = result.scalar_one_or_none()
        if profile is None:
            return {"profileId": profile_id, "success": False, "error": "Profile not found"}

        outcome: dict[str, Any] = {"profileId": profile.id, "email": profile.email, "success": True}
        user = await self.identities.get_by_id(profile.user_id)

        if user is not None:
            if user.email.lower() == profile.email.lower():
                outcome["action"] = ACTION_ALREADY_VALID
                return outcome
            await self.identities.update_email(user, profile.email)
            outcome["action"] = ACTION_EMAIL_SYNCED
        else:
            user = await self.identities.get_by_email(profile.email)
            if user is not None:
                outcome["action"] = ACTION_LINKED_EXISTING
            else:
                user = await self.identities.create_user_with_temporary_password(
                    profile.email,
                    {
                        "first_name": profile.first_name,
                        "last_name": profile.last_name,
                        "organization": profile.organization,
                    },
                )
                outcome["action"] = ACTION_CREATED_AUTH_USER
                outcome["note"] = "User should use Forgot Password to set their password"
            profile.user_id = user.id
            await self.db.flush()
            await self.identities.assign_role(user.id, AppRole.MEMBER)
            outcome["authUserId"] = user.id

        await self.audit_service.log(
            action=AuditAction.ORPHAN_FIX,
            entity_type="profile",
            entity_id=profile.id,
            actor_id=admin_user_id,
            diff_json={"action": outcome["action"], "user_id": str(user.id)},
        )
        return outcome
