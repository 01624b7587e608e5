"""Integration tests for admin organization deletion."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from hess.models.audit_event import AuditEvent
from hess.models.auth_user import AuthUser
from hess.models.enums import AuditAction, StepOutcome, WorkflowStatus
from hess.models.invoice import Invoice
from hess.models.organization import Organization
from hess.models.profile import Profile
from hess.models.user_role import UserRole
from hess.models.workflow_run import WorkflowRun
from tests.conftest import create_member, create_organization, fetch

ORGANIZATIONS_URL = "/api/admin/organizations"


@pytest.mark.asyncio
class TestDeleteOrganization:
    async def test_delete_removes_dependents_and_contact(
        self, client: AsyncClient, db: AsyncSession, admin_user, admin_headers
    ):
        user, profile = await create_member(db, "old.contact@acme.edu")
        organization = await create_organization(db, contact=profile)
        db.add(
            Invoice(
                organization_id=organization.id,
                invoice_number="INV-2026-02-XYZ789",
                amount=Decimal("997"),
                invoice_date=date.today(),
                due_date=date.today() + timedelta(days=30),
            )
        )
        await db.flush()

        response = await client.delete(
            f"{ORGANIZATIONS_URL}/{organization.id}", headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Organization Acme College deleted"
        assert data["warnings"] == []

        assert await fetch(db, Organization) == []
        assert await fetch(db, Invoice) == []
        assert await fetch(db, AuthUser, id=user.id) == []
        assert await fetch(db, Profile, id=profile.id) == []
        assert await fetch(db, UserRole, user_id=user.id) == []

        [run] = await fetch(db, WorkflowRun, subject_id=organization.id)
        assert str(run.id) == data["workflow_run_id"]
        assert run.workflow == "delete_organization"
        assert run.status == WorkflowStatus.COMPLETED
        assert run.actor_id == admin_user.id
        steps = {step["step"]: step for step in run.steps}
        assert steps["delete_invoices"]["detail"] == {"rows": 1}
        assert steps["delete_organization"]["detail"] == {"rows": 1}
        assert steps["delete_identity"]["outcome"] == StepOutcome.OK.value

        [audit] = await fetch(db, AuditEvent, action=AuditAction.ORG_DELETE)
        assert audit.diff_json["name"] == "Acme College"

    async def test_delete_without_contact(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        organization = await create_organization(db)

        response = await client.delete(
            f"{ORGANIZATIONS_URL}/{organization.id}", headers=admin_headers
        )

        assert response.status_code == 200
        [run] = await fetch(db, WorkflowRun, subject_id=organization.id)
        [skipped] = [step for step in run.steps if step["step"] == "delete_contact_identity"]
        assert skipped["outcome"] == StepOutcome.SKIPPED.value
        assert skipped["detail"] == "organization had no contact"

    async def test_unknown_organization_returns_404(self, client: AsyncClient, admin_headers):
        response = await client.delete(f"{ORGANIZATIONS_URL}/{uuid4()}", headers=admin_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Organization not found"}

    async def test_requires_authentication(self, client: AsyncClient, db: AsyncSession):
        organization = await create_organization(db)

        response = await client.delete(f"{ORGANIZATIONS_URL}/{organization.id}")

        assert response.status_code in (401, 403)
        assert len(await fetch(db, Organization)) == 1
