"""Integration tests for the organization reassignment workflow."""

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from hess.models.auth_user import AuthUser
from hess.models.custom_software_entry import CustomSoftwareEntry
from hess.models.enums import (
    AppRole,
    MembershipStatus,
    RequestStatus,
    StepOutcome,
    WorkflowStatus,
)
from hess.models.invoice import Invoice
from hess.models.organization import Organization
from hess.models.organization_invitation import OrganizationInvitation
from hess.models.organization_profile_edit_request import OrganizationProfileEditRequest
from hess.models.organization_transfer_request import OrganizationTransferRequest
from hess.models.profile import Profile
from hess.models.reassignment_request import ReassignmentRequest
from hess.models.user_role import UserRole
from hess.models.workflow_run import WorkflowRun
from hess.services.notification_service import EmailType
from tests.conftest import (
    create_member,
    create_organization,
    create_reassignment_request,
    fetch,
)

APPROVE_URL = "/api/functions/approve-reassignment-request"

DEPENDENT_MODELS = (
    Invoice,
    OrganizationInvitation,
    CustomSoftwareEntry,
    OrganizationProfileEditRequest,
    OrganizationTransferRequest,
    ReassignmentRequest,
)


async def seed_dependents(db: AsyncSession, organization: Organization, contact: Profile, admin_user):
    """One row of every table that references an organization."""
    today = date.today()
    db.add_all(
        [
            Invoice(
                organization_id=organization.id,
                invoice_number="INV-2026-01-ABC123",
                amount=Decimal("500"),
                invoice_date=today,
                due_date=today + timedelta(days=30),
            ),
            OrganizationInvitation(
                organization_id=organization.id,
                email="colleague@acme.edu",
                token_hash="hash-1",
                invited_by=admin_user.id,
                expires_at=datetime.now(UTC) + timedelta(days=7),
            ),
            CustomSoftwareEntry(
                organization_id=organization.id,
                system_field="financial_system",
                value="Homegrown ERP",
            ),
            OrganizationProfileEditRequest(
                organization_id=organization.id,
                requested_by=contact.user_id,
                updated_organization_data={"website": "https://acme.example"},
            ),
            OrganizationTransferRequest(
                organization_id=organization.id,
                current_contact_id=contact.id,
                new_contact_email="someone@acme.edu",
                transfer_token="transfer-1",
            ),
        ]
    )
    await db.flush()


@pytest.fixture()
def approve(client: AsyncClient, admin_headers):
    async def _approve(request_id, **extra):
        return await client.post(
            APPROVE_URL, json={"requestId": str(request_id), **extra}, headers=admin_headers
        )

    return _approve


def steps_by_name(run: WorkflowRun) -> dict[str, dict]:
    return {step["step"]: step for step in run.steps}


@pytest.mark.asyncio
class TestReassignmentNameSwap:
    """Replacing the contact of an organization that keeps its name."""

    async def test_organization_and_contact_are_replaced(
        self, db: AsyncSession, approve, admin_user, notifier
    ):
        old_user, old_profile = await create_member(db, "old.contact@acme.edu")
        old_organization = await create_organization(db, "Acme College", contact=old_profile)
        old_organization_id = old_organization.id
        await seed_dependents(db, old_organization, old_profile, admin_user)
        stale_request = await create_reassignment_request(
            db, old_organization, new_contact_email="other@acme.edu"
        )
        request = await create_reassignment_request(
            db,
            old_organization,
            new_organization_data={
                "name": "Acme College",
                "city": "Springfield",
                "website": "https://acme.edu",
                "secret_flag": True,
            },
            user_registration_data={"first_name": "Nia", "last_name": "New"},
        )

        response = await approve(request.id)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Reassignment request approved successfully"
        assert data["newOrganizationId"] != str(old_organization_id)

        organizations = await fetch(db, Organization, name="Acme College")
        assert len(organizations) == 1
        new_organization = organizations[0]
        assert str(new_organization.id) == data["newOrganizationId"]
        assert new_organization.website == "https://acme.edu"
        assert new_organization.membership_status == MembershipStatus.PENDING
        assert await fetch(db, Organization, id=old_organization_id) == []

        for model in DEPENDENT_MODELS:
            assert await fetch(db, model, organization_id=old_organization_id) == []
        assert await fetch(db, ReassignmentRequest, id=stale_request.id) == []

        assert await fetch(db, AuthUser, id=old_user.id) == []
        assert await fetch(db, Profile, id=old_profile.id) == []
        assert await fetch(db, UserRole, user_id=old_user.id) == []

        [new_user] = await fetch(db, AuthUser, email="new.contact@acme.edu")
        [new_profile] = await fetch(db, Profile, user_id=new_user.id)
        assert new_profile.first_name == "Nia"
        assert new_organization.contact_person_id == new_profile.id

        [approved] = await fetch(db, ReassignmentRequest, id=request.id)
        assert approved.status == RequestStatus.APPROVED
        assert approved.organization_id == new_organization.id
        assert approved.approved_by == admin_user.id

        [reset] = notifier.of_type(EmailType.PASSWORD_RESET)
        assert reset["to"] == "new.contact@acme.edu"
        assert "type=recovery" in reset["recovery_link"]
        [update] = notifier.of_type(EmailType.PROFILE_UPDATE_APPROVED)
        assert update["organization_name"] == "Acme College"

    async def test_temporary_name_is_recorded_and_released(self, db: AsyncSession, approve):
        _, old_profile = await create_member(db, "old.contact@acme.edu")
        old_organization = await create_organization(db, "Acme College", contact=old_profile)
        request = await create_reassignment_request(
            db, old_organization, new_organization_data={"name": "Acme College", "unknown": 1}
        )

        response = await approve(request.id)

        assert response.status_code == 200
        [run] = await fetch(db, WorkflowRun, subject_id=request.id)
        assert run.status == WorkflowStatus.COMPLETED
        assert run.result["temporary_name"].startswith("Acme College (reassigning-")
        steps = steps_by_name(run)
        assert steps["rename_organization"]["detail"]["name"] == "Acme College"
        assert steps["ignored_fields"]["detail"] == ["unknown"]
        assert steps["delete_organization"]["detail"] == {"rows": 1}

        [organization] = await fetch(db, Organization, name="Acme College")
        assert str(organization.id) == response.json()["newOrganizationId"]
        assert await fetch(db, Organization, name=run.result["temporary_name"]) == []

    async def test_new_name_needs_no_placeholder(self, db: AsyncSession, approve):
        _, old_profile = await create_member(db, "old.contact@acme.edu")
        old_organization = await create_organization(db, "Acme College", contact=old_profile)
        request = await create_reassignment_request(
            db, old_organization, new_organization_data={"name": "Acme University"}
        )

        response = await approve(request.id)

        assert response.status_code == 200
        assert await fetch(db, Organization, name="Acme College") == []
        [organization] = await fetch(db, Organization, name="Acme University")
        assert str(organization.id) == response.json()["newOrganizationId"]
        [run] = await fetch(db, WorkflowRun, subject_id=request.id)
        assert run.result["temporary_name"] is None
        assert "rename_organization" not in steps_by_name(run)


@pytest.mark.asyncio
class TestReassignmentContacts:
    async def test_same_contact_keeps_identity(self, db: AsyncSession, approve, notifier):
        old_user, old_profile = await create_member(db, "old.contact@acme.edu")
        old_organization = await create_organization(db, "Acme College", contact=old_profile)
        request = await create_reassignment_request(
            db, old_organization, new_contact_email="Old.Contact@acme.edu"
        )

        response = await approve(request.id)

        assert response.status_code == 200
        [user] = await fetch(db, AuthUser, id=old_user.id)
        [profile] = await fetch(db, Profile, id=old_profile.id)
        [organization] = await fetch(db, Organization, name="Acme College")
        assert organization.contact_person_id == profile.id
        assert organization.id != old_organization.id
        roles = await fetch(db, UserRole, user_id=user.id)
        assert [role.role for role in roles] == [AppRole.MEMBER]

        [run] = await fetch(db, WorkflowRun, subject_id=request.id)
        assert steps_by_name(run)["delete_contact_identity"]["outcome"] == StepOutcome.SKIPPED.value
        assert notifier.of_type(EmailType.PASSWORD_RESET) == []

    async def test_existing_identity_without_profile_is_reused(self, db: AsyncSession, approve):
        _, old_profile = await create_member(db, "old.contact@acme.edu")
        old_organization = await create_organization(db, "Acme College", contact=old_profile)
        identity = AuthUser(email="new.contact@acme.edu", user_metadata={})
        db.add(identity)
        await db.flush()
        request = await create_reassignment_request(
            db, old_organization, user_registration_data={"first_name": "Nia"}
        )

        response = await approve(request.id)

        assert response.status_code == 200
        assert len(await fetch(db, AuthUser, email="new.contact@acme.edu")) == 1
        [profile] = await fetch(db, Profile, user_id=identity.id)
        assert profile.first_name == "Nia"

    async def test_organization_without_contact(self, db: AsyncSession, approve):
        old_organization = await create_organization(db, "Acme College", contact=None)
        request = await create_reassignment_request(db, old_organization)

        response = await approve(request.id)

        assert response.status_code == 200
        [run] = await fetch(db, WorkflowRun, subject_id=request.id)
        detail = steps_by_name(run)["delete_contact_identity"]["detail"]
        assert detail == "organization had no contact"

    async def test_failing_notifications_still_succeed(
        self, db: AsyncSession, approve, notifier
    ):
        notifier.fail = True
        _, old_profile = await create_member(db, "old.contact@acme.edu")
        old_organization = await create_organization(db, "Acme College", contact=old_profile)
        request = await create_reassignment_request(db, old_organization)

        response = await approve(request.id)

        assert response.status_code == 200
        [run] = await fetch(db, WorkflowRun, subject_id=request.id)
        assert run.status == WorkflowStatus.COMPLETED_WITH_WARNINGS
        steps = steps_by_name(run)
        assert steps["send_password_reset"]["outcome"] == StepOutcome.FAILED.value
        assert steps["send_profile_update_email"]["outcome"] == StepOutcome.FAILED.value


@pytest.mark.asyncio
class TestReassignmentGuards:
    async def test_non_pending_request_returns_404(self, db: AsyncSession, approve):
        organization = await create_organization(db, "Acme College")
        request = await create_reassignment_request(
            db, organization, status=RequestStatus.APPROVED
        )

        response = await approve(request.id)

        assert response.status_code == 404
        assert response.json() == {"error": "Reassignment request not found"}
        [unchanged] = await fetch(db, Organization, id=organization.id)
        assert unchanged.name == "Acme College"

    async def test_unknown_request_returns_404(self, approve):
        response = await approve(uuid4())

        assert response.status_code == 404

    async def test_second_approval_returns_404(self, db: AsyncSession, approve):
        _, old_profile = await create_member(db, "old.contact@acme.edu")
        organization = await create_organization(db, "Acme College", contact=old_profile)
        request = await create_reassignment_request(db, organization)

        first = await approve(request.id)
        second = await approve(request.id)

        assert first.status_code == 200
        assert second.status_code == 404
        assert len(await fetch(db, Organization, name="Acme College")) == 1

    async def test_invalid_organization_data_returns_400(
        self, db: AsyncSession, approve, notifier
    ):
        _, old_profile = await create_member(db, "old.contact@acme.edu")
        organization = await create_organization(db, "Acme College", contact=old_profile)
        request = await create_reassignment_request(
            db, organization, new_organization_data={"name": "Acme College", "student_fte": "lots"}
        )

        response = await approve(request.id)

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid organization data")
        [pending] = await fetch(db, ReassignmentRequest, id=request.id)
        assert pending.status == RequestStatus.PENDING
        [kept] = await fetch(db, Organization, name="Acme College")
        assert kept.id == organization.id
        assert await fetch(db, AuthUser, email="new.contact@acme.edu") == []
        assert notifier.sent == []

    async def test_invalid_user_registration_data_returns_400(
        self, db: AsyncSession, approve, notifier
    ):
        _, old_profile = await create_member(db, "old.contact@acme.edu")
        organization = await create_organization(db, "Acme College", contact=old_profile)
        request = await create_reassignment_request(
            db, organization, user_registration_data={"first_name": "Nia", "student_fte": "lots"}
        )

        response = await approve(request.id)

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid user registration data")
        [pending] = await fetch(db, ReassignmentRequest, id=request.id)
        assert pending.status == RequestStatus.PENDING
        assert await fetch(db, AuthUser, email="new.contact@acme.edu") == []
        assert notifier.sent == []

    async def test_string_flags_in_user_registration_data(self, db: AsyncSession, approve):
        organization = await create_organization(db, "Acme College")
        request = await create_reassignment_request(
            db,
            organization,
            user_registration_data={
                "first_name": "Nia",
                "is_private_nonprofit": "false",
                "primary_office_dell": "true",
                "student_fte": "1500",
            },
        )

        response = await approve(request.id)

        assert response.status_code == 200
        [profile] = await fetch(db, Profile, email="new.contact@acme.edu")
        assert profile.is_private_nonprofit is False
        assert profile.primary_office_dell is True
        assert profile.student_fte == 1500

    async def test_explicit_admin_user_id_is_recorded(
        self, db: AsyncSession, approve, admin_user
    ):
        organization = await create_organization(db, "Acme College")
        request = await create_reassignment_request(db, organization)

        response = await approve(request.id, adminUserId=str(admin_user.id))

        assert response.status_code == 200
        [run] = await fetch(db, WorkflowRun, subject_id=request.id)
        assert run.actor_id == admin_user.id


@pytest.mark.asyncio
class TestReassignmentAdmin:
    async def test_list_pending_requests(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        organization = await create_organization(db, "Acme College")
        pending = await create_reassignment_request(db, organization)
        await create_reassignment_request(
            db, organization, new_contact_email="x@acme.edu", status=RequestStatus.REJECTED
        )

        response = await client.get("/api/admin/reassignment-requests", headers=admin_headers)

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == [str(pending.id)]

    async def test_reject_leaves_organization_untouched(
        self, client: AsyncClient, db: AsyncSession, admin_headers, approve
    ):
        _, contact = await create_member(db, "old.contact@acme.edu")
        organization = await create_organization(db, "Acme College", contact=contact)
        request = await create_reassignment_request(db, organization)

        response = await client.post(
            f"/api/admin/reassignment-requests/{request.id}/reject",
            json={"reason": "Could not verify the new contact"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        assert response.json()["rejection_reason"] == "Could not verify the new contact"
        [kept] = await fetch(db, Organization, id=organization.id)
        assert kept.contact_person_id == contact.id

        assert (await approve(request.id)).status_code == 404
