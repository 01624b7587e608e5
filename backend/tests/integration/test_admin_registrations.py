"""Integration tests for admin triage of pending registrations."""

from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from hess.core.security import create_access_token
from hess.models.bulk_operation import BulkOperation
from hess.models.enums import ApprovalStatus, BulkOperationType, PriorityLevel, WorkflowStatus
from hess.models.organization import Organization
from hess.models.pending_registration import PendingRegistration
from hess.models.workflow_run import WorkflowRun
from hess.services.notification_service import EmailType
from tests.conftest import create_member, create_registration, fetch

ADMIN_URL = "/api/admin/registrations"


@pytest.mark.asyncio
class TestListRegistrations:
    async def test_pending_registrations_are_listed_by_priority(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        low = await create_registration(
            db, email="low@a.edu", organization_name="A College", priority_level=PriorityLevel.LOW
        )
        urgent = await create_registration(
            db, email="urgent@b.edu", organization_name="B College", priority_level=PriorityLevel.URGENT
        )
        normal = await create_registration(db, email="normal@c.edu", organization_name="C College")
        await create_registration(
            db,
            email="done@d.edu",
            organization_name="D College",
            approval_status=ApprovalStatus.APPROVED,
        )

        response = await client.get(ADMIN_URL, headers=admin_headers)

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == [
            str(urgent.id),
            str(normal.id),
            str(low.id),
        ]
        assert "password_hash" not in response.json()[0]

    async def test_status_and_priority_filters(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        approved = await create_registration(
            db, email="done@d.edu", approval_status=ApprovalStatus.APPROVED
        )
        await create_registration(
            db, email="urgent@b.edu", organization_name="B College", priority_level=PriorityLevel.URGENT
        )

        response = await client.get(ADMIN_URL, params={"status": "approved"}, headers=admin_headers)
        assert [item["id"] for item in response.json()] == [str(approved.id)]

        response = await client.get(ADMIN_URL, params={"priority": "low"}, headers=admin_headers)
        assert response.json() == []

    async def test_get_unknown_registration(self, client: AsyncClient, admin_headers):
        response = await client.get(f"{ADMIN_URL}/{uuid4()}", headers=admin_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Registration not found"}

    async def test_members_cannot_list(self, client: AsyncClient, db: AsyncSession):
        member, _ = await create_member(db, "member@acme.edu")
        token = create_access_token({"sub": str(member.id)})

        response = await client.get(ADMIN_URL, headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 403


@pytest.mark.asyncio
class TestRejectRegistration:
    async def test_reject_transitions_and_notifies(
        self, client: AsyncClient, db: AsyncSession, admin_user, admin_headers, notifier
    ):
        registration = await create_registration(db)

        response = await client.post(
            f"{ADMIN_URL}/{registration.id}/reject",
            json={"reason": "Not a higher education institution"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["approval_status"] == "rejected"
        assert data["rejection_reason"] == "Not a higher education institution"
        assert data["approved_by"] == str(admin_user.id)

        [email] = notifier.of_type(EmailType.REGISTRATION_REJECTED)
        assert email["to"] == "jane.doe@acme.edu"
        assert email["reason"] == "Not a higher education institution"

        [run] = await fetch(db, WorkflowRun, subject_id=registration.id)
        assert run.workflow == "reject_pending_registration"
        assert run.status == WorkflowStatus.COMPLETED

    async def test_reject_twice_returns_404(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        registration = await create_registration(db)
        url = f"{ADMIN_URL}/{registration.id}/reject"

        first = await client.post(url, json={"reason": "Duplicate"}, headers=admin_headers)
        second = await client.post(url, json={"reason": "Duplicate"}, headers=admin_headers)

        assert first.status_code == 200
        assert second.status_code == 404

    async def test_rejected_registration_cannot_be_approved(
        self, client: AsyncClient, db: AsyncSession, admin_user, admin_headers
    ):
        registration = await create_registration(db)
        await client.post(
            f"{ADMIN_URL}/{registration.id}/reject", json={"reason": "No"}, headers=admin_headers
        )

        response = await client.post(
            "/api/functions/approve-pending-registration",
            json={"registrationId": str(registration.id), "adminUserId": str(admin_user.id)},
            headers=admin_headers,
        )

        assert response.status_code == 404
        assert await fetch(db, Organization) == []


@pytest.mark.asyncio
class TestPriority:
    async def test_update_priority(self, client: AsyncClient, db: AsyncSession, admin_headers):
        registration = await create_registration(db)

        response = await client.patch(
            f"{ADMIN_URL}/{registration.id}/priority",
            json={"priority_level": "urgent", "admin_notes": "Board referral"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["priority_level"] == "urgent"
        assert response.json()["admin_notes"] == "Board referral"

    async def test_invalid_priority_returns_400(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        registration = await create_registration(db)

        response = await client.patch(
            f"{ADMIN_URL}/{registration.id}/priority",
            json={"priority_level": "critical"},
            headers=admin_headers,
        )

        assert response.status_code == 400


@pytest.mark.asyncio
class TestBulkOperations:
    async def test_bulk_approve_reports_per_id_results(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        first = await create_registration(db, email="a@a.edu", organization_name="A College")
        second = await create_registration(db, email="b@b.edu", organization_name="B College")
        missing = uuid4()

        response = await client.post(
            f"{ADMIN_URL}/bulk",
            json={
                "operation": "approve",
                "registration_ids": [str(first.id), str(missing), str(second.id)],
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["operation"] == "approve"
        assert data["processed"] == 2
        assert data["failed"] == 1
        assert [item["success"] for item in data["results"]] == [True, False, True]
        assert data["results"][0]["organizationId"] is not None
        assert data["errors"] == [{"id": str(missing), "error": "Pending registration not found"}]

        assert len(await fetch(db, Organization, name="A College")) == 1
        assert len(await fetch(db, Organization, name="B College")) == 1

        [log] = await fetch(db, BulkOperation)
        assert log.operation_type == BulkOperationType.APPROVE
        assert log.operation_data["processed"] == 2

    async def test_bulk_reject_requires_reason(
        self, client: AsyncClient, db: AsyncSession, admin_headers
    ):
        registration = await create_registration(db)

        response = await client.post(
            f"{ADMIN_URL}/bulk",
            json={"operation": "reject", "registration_ids": [str(registration.id)]},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Rejection reason is required"}

    async def test_bulk_reject(self, client: AsyncClient, db: AsyncSession, admin_headers, notifier):
        first = await create_registration(db, email="a@a.edu", organization_name="A College")
        second = await create_registration(db, email="b@b.edu", organization_name="B College")

        response = await client.post(
            f"{ADMIN_URL}/bulk",
            json={
                "operation": "reject",
                "registration_ids": [str(first.id), str(second.id)],
                "reason": "Outside membership criteria",
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["processed"] == 2
        rejected = await fetch(db, PendingRegistration, approval_status=ApprovalStatus.REJECTED)
        assert len(rejected) == 2
        assert len(notifier.of_type(EmailType.REGISTRATION_REJECTED)) == 2

    async def test_bulk_priority_update(self, client: AsyncClient, db: AsyncSession, admin_headers):
        registration = await create_registration(db)

        response = await client.post(
            f"{ADMIN_URL}/bulk",
            json={
                "operation": "priority_update",
                "registration_ids": [str(registration.id)],
                "priority": "high",
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        [updated] = await fetch(db, PendingRegistration, id=registration.id)
        assert updated.priority_level == PriorityLevel.HIGH

    @pytest.mark.parametrize(
        "body,error",
        [
            ({"operation": "archive", "registration_ids": ["00000000-0000-0000-0000-000000000001"]},
             "Invalid operation: archive"),
            ({"operation": "approve", "registration_ids": []}, "No registration IDs provided"),
            ({"operation": "priority_update",
              "registration_ids": ["00000000-0000-0000-0000-000000000001"],
              "priority": "critical"},
             "Invalid priority level: critical"),
        ],
    )
    async def test_bulk_validation(self, client: AsyncClient, admin_headers, body, error):
        response = await client.post(f"{ADMIN_URL}/bulk", json=body, headers=admin_headers)

        assert response.status_code == 400
        assert response.json() == {"error": error}
