"""Organization lookup, construction and administrative deletion."""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hess.core.config import get_settings
from hess.models.enums import AuditAction, MembershipStatus, OrganizationType
from hess.models.mixins import BOOLEAN_FIELDS, DESCRIPTIVE_FIELDS, as_bool
from hess.models.organization import Organization
from hess.models.pending_registration import PendingRegistration
from hess.services.audit_service import AuditService
from hess.services.organization_purge import OrganizationPurge
from hess.services.profile_service import ProfileService
from hess.services.workflow_service import ORGANIZATION_DELETE_WORKFLOW, WorkflowRecorder

logger = logging.getLogger(__name__)

# Fields a reassignment request may set on the replacement organization
ORGANIZATION_DATA_FIELDS = frozenset(
    (
        "name",
        "address_line_1",
        "address_line_2",
        "zip_code",
        "country",
        "phone",
        "email",
        "website",
        "notes",
        "annual_fee_amount",
        "organization_type",
        *DESCRIPTIVE_FIELDS,
    )
)

SNAPSHOT_FIELDS = (
    "name",
    "address_line_1",
    "address_line_2",
    "city",
    "state",
    "zip_code",
    "country",
    "phone",
    "email",
    "website",
    *DESCRIPTIVE_FIELDS,
)


def coerce_organization_value(field: str, value: Any) -> Any:
    """Convert a JSON payload value to the column's Python type.

    Raises:
        ValueError: If the value cannot be converted.
    """
    if field in BOOLEAN_FIELDS:
        return as_bool(value)
    if value in (None, ""):
        return None
    if field == "student_fte":
        return int(value)
    if field == "annual_fee_amount":
        try:
            return Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"Invalid annual_fee_amount: {value!r}") from exc
    if field == "organization_type":
        return OrganizationType(value)
    return value


def organization_fields_from_data(data: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """Split a replacement payload into accepted column values and ignored keys."""
    accepted: dict[str, Any] = {}
    ignored: list[str] = []
    for key, value in data.items():
        if key in ORGANIZATION_DATA_FIELDS:
            accepted[key] = coerce_organization_value(key, value)
        else:
            ignored.append(key)
    return accepted, sorted(ignored)


def organization_fields_from_registration(registration: PendingRegistration) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "name": registration.organization_name,
        "address_line_1": registration.address,
        "zip_code": registration.zip,
        "country": get_settings().default_country,
        "email": registration.email,
        "organization_type": OrganizationType.MEMBER,
    }
    for field in DESCRIPTIVE_FIELDS:
        value = getattr(registration, field)
        fields[field] = as_bool(value) if field in BOOLEAN_FIELDS else value
    return fields


def organization_snapshot(organization: Organization) -> dict[str, Any]:
    """Plain-JSON view of an organization for emails and audit trails."""
    snapshot: dict[str, Any] = {}
    for field in SNAPSHOT_FIELDS:
        value = getattr(organization, field)
        if isinstance(value, (Decimal, date)):
            value = str(value)
        snapshot[field] = value
    return snapshot


class OrganizationService:
    """Service for organization records."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit_service = AuditService(db)

    async def get_by_id(self, organization_id: UUID, for_update: bool = False) -> Organization | None:
        stmt = select(Organization).where(Organization.id == organization_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str, for_update: bool = False) -> Organization | None:
        stmt = select(Organization).where(Organization.name == name)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_active_without_contact(self) -> list[Organization]:
        result = await self.db.execute(
            select(Organization)
            .where(
                Organization.membership_status == MembershipStatus.ACTIVE,
                Organization.contact_person_id.is_(None),
            )
            .order_by(Organization.name)
        )
        return list(result.scalars().all())

    async def delete(
        self,
        organization_id: UUID,
        admin_user_id: UUID,
        ip_address: str | None = None,
    ) -> dict[str, Any]:
        """Delete an organization, its dependents and its primary contact.

        Raises:
            HTTPException: 404 if the organization does not exist
            HTTPException: 500 if the organization row itself could not be removed
        """
        organization = await self.get_by_id(organization_id, for_update=True)
        if not organization:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Organization not found",
            )

        contact = None
        if organization.contact_person_id:
            contact = await ProfileService(self.db).get_by_id(organization.contact_person_id)

        name = organization.name
        recorder = WorkflowRecorder(
            self.db, ORGANIZATION_DELETE_WORKFLOW, organization_id, actor_id=admin_user_id
        )
        purge = OrganizationPurge(self.db, recorder)
        removed = await purge.run(organization_id, contact)
        if not removed:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to delete organization",
            )

        await self.audit_service.log(
            action=AuditAction.ORG_DELETE,
            entity_type="organization",
            entity_id=organization_id,
            actor_id=admin_user_id,
            organization_id=organization_id,
            ip_address=ip_address,
            diff_json={"name": name, "contact_profile_id": str(contact.id) if contact else None},
        )
        run = await recorder.finish({"organization_id": str(organization_id)})
        return {
            "success": True,
            "message": f"Organization {name} deleted",
            "warnings": [step["step"] for step in recorder.warnings],
            "workflow_run_id": run.id,
        }
