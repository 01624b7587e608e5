"""Integration tests for orphaned profile detection and repair."""

from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from hess.models.auth_user import AuthUser
from hess.models.enums import AppRole, MembershipStatus
from hess.models.profile import Profile
from hess.models.user_role import UserRole
from tests.conftest import TEST_DATABASE_URL, create_member, create_organization, fetch

ORPHANS_URL = "/api/admin/orphaned-profiles"


async def insert_profile_without_identity(db: AsyncSession, email: str, **fields):
    """Insert a profile whose user_id points at no identity.

    Goes through a connection without foreign key enforcement, after
    committing the test session so the row is visible to it.
    """
    await db.commit()
    profile_id = uuid4()
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool)
    try:
        async with engine.begin() as conn:
            await conn.execute(
                insert(Profile).values(
                    id=profile_id, user_id=uuid4(), email=email, **fields
                )
            )
    finally:
        await engine.dispose()
    return profile_id


@pytest.mark.asyncio
class TestDetectOrphans:
    async def test_consistent_data_has_no_orphans(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        _, profile = await create_member(db, "contact@acme.edu")
        await create_organization(db, contact=profile)

        response = await client.get(ORPHANS_URL, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["totalProfiles"] == 1
        assert data["orphanedProfiles"] == []
        assert data["organizationsWithoutContact"] == []
        # the admin identity has no profile
        assert [item["email"] for item in data["identitiesWithoutProfile"]] == ["admin@hess.test"]

    async def test_email_mismatch_is_reported(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        user, profile = await create_member(db, "contact@acme.edu")
        user.email = "old-address@acme.edu"
        organization = await create_organization(db, contact=profile)
        await db.flush()

        response = await client.get(ORPHANS_URL, headers=admin_headers)

        [orphan] = response.json()["orphanedProfiles"]
        assert orphan["profileId"] == str(profile.id)
        assert orphan["issue"] == "email_mismatch"
        assert orphan["authEmail"] == "old-address@acme.edu"
        assert orphan["organizationId"] == str(organization.id)
        assert orphan["organizationName"] == "Acme College"

    async def test_missing_identity_is_reported(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        profile_id = await insert_profile_without_identity(db, "lost@acme.edu", first_name="Lee")

        response = await client.get(ORPHANS_URL, headers=admin_headers)

        [orphan] = response.json()["orphanedProfiles"]
        assert orphan["profileId"] == str(profile_id)
        assert orphan["issue"] == "no_auth_user"
        assert orphan["authEmail"] is None
        assert orphan["firstName"] == "Lee"

    async def test_active_organization_without_contact_is_reported(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        organization = await create_organization(db, "Lonely College")
        await create_organization(db, "Waiting College", membership_status=MembershipStatus.PENDING)

        response = await client.get(ORPHANS_URL, headers=admin_headers)

        assert response.json()["organizationsWithoutContact"] == [
            {"organizationId": str(organization.id), "name": "Lonely College"}
        ]


@pytest.mark.asyncio
class TestFixOrphans:
    async def test_email_mismatch_is_synced(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        user, profile = await create_member(db, "contact@acme.edu")
        user.email = "old-address@acme.edu"
        await db.flush()

        response = await client.post(
            f"{ORPHANS_URL}/fix", json={"profileIds": [str(profile.id)]}, headers=admin_headers
        )

        assert response.status_code == 200
        [result] = response.json()["results"]
        assert result["success"] is True
        assert result["action"] == "email_synced"
        [synced] = await fetch(db, AuthUser, id=user.id)
        assert synced.email == "contact@acme.edu"

    async def test_valid_profile_is_left_alone(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        _, profile = await create_member(db, "contact@acme.edu")

        response = await client.post(
            f"{ORPHANS_URL}/fix", json={"profileIds": [str(profile.id)]}, headers=admin_headers
        )

        assert response.json()["results"][0]["action"] == "already_valid"

    async def test_missing_identity_is_recreated(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        profile_id = await insert_profile_without_identity(
            db, "lost@acme.edu", first_name="Lee", last_name="Lost"
        )

        response = await client.post(
            f"{ORPHANS_URL}/fix", json={"profileIds": [str(profile_id)]}, headers=admin_headers
        )

        [result] = response.json()["results"]
        assert result["success"] is True
        assert result["action"] == "created_auth_user"
        assert result["note"] == "User should use Forgot Password to set their password"

        [user] = await fetch(db, AuthUser, email="lost@acme.edu")
        assert result["authUserId"] == str(user.id)
        assert user.user_metadata["first_name"] == "Lee"
        [profile] = await fetch(db, Profile, id=profile_id)
        assert profile.user_id == user.id
        roles = await fetch(db, UserRole, user_id=user.id)
        assert [role.role for role in roles] == [AppRole.MEMBER]

    async def test_missing_identity_is_relinked_to_existing_account(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        profile_id = await insert_profile_without_identity(db, "lost@acme.edu")
        existing = AuthUser(email="lost@acme.edu", user_metadata={})
        db.add(existing)
        await db.flush()

        response = await client.post(
            f"{ORPHANS_URL}/fix", json={"profileIds": [str(profile_id)]}, headers=admin_headers
        )

        [result] = response.json()["results"]
        assert result["action"] == "linked_existing"
        assert result["authUserId"] == str(existing.id)
        [profile] = await fetch(db, Profile, id=profile_id)
        assert profile.user_id == existing.id

    async def test_unknown_profile(self, client: AsyncClient, admin_headers):
        missing = uuid4()

        response = await client.post(
            f"{ORPHANS_URL}/fix", json={"profileIds": [str(missing)]}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["results"] == [
            {
                "profileId": str(missing),
                "success": False,
                "email": None,
                "action": None,
                "authUserId": None,
                "note": None,
                "error": "Profile not found",
            }
        ]

    async def test_empty_id_list_is_rejected(self, client: AsyncClient, admin_headers):
        response = await client.post(
            f"{ORPHANS_URL}/fix", json={"profileIds": []}, headers=admin_headers
        )

        assert response.status_code == 400
