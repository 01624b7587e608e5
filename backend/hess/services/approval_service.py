"""Approval orchestrator for pending registrations.

Turns one pending registration into a usable member account: an identity
carrying the registrant's password, its profile, the member role and an
active organization owned by that profile. The whole run shares the request
transaction; identity, profile and organization failures abort it, the
remaining steps degrade to warnings on the workflow run.
"""

import logging
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hess.core.request_context import actor_context
from hess.core.structured_logging import log_json
from hess.models.auth_user import AuthUser
from hess.models.enums import (
    AppRole,
    ApprovalStatus,
    AuditAction,
    MembershipStatus,
    RequestStatus,
)
from hess.models.member_registration_update import MemberRegistrationUpdate
from hess.models.organization import Organization
from hess.models.pending_registration import PendingRegistration
from hess.models.profile import Profile
from hess.services.audit_service import AuditService
from hess.services.identity_service import IdentityExistsError, IdentityService
from hess.services.invoice_service import InvoiceService
from hess.services.notification_service import EmailType, NotificationService
from hess.services.organization_service import (
    OrganizationService,
    organization_fields_from_registration,
    organization_snapshot,
)
from hess.services.profile_service import ProfileService, registration_metadata
from hess.services.workflow_service import APPROVAL_WORKFLOW, WorkflowRecorder

logger = logging.getLogger(__name__)

MEMBER_UPDATE_RESOLVED_NOTE = "Auto-resolved: new registration approved, member update no longer needed"


class ApprovalService:
    """Approves pending registrations."""

    def __init__(self, db: AsyncSession, notifier: NotificationService):
        """Initialize approval service.

        Args:
            db: Database session
            notifier: Notification dispatcher used for the welcome email
        """
        self.db = db
        self.notifier = notifier
        self.identities = IdentityService(db)
        self.profiles = ProfileService(db)
        self.organizations = OrganizationService(db)
        self.audit_service = AuditService(db)

    async def _get_pending(self, registration_id: UUID) -> PendingRegistration:
        result = await self.db.execute(
            select(PendingRegistration)
            .where(
                PendingRegistration.id == registration_id,
                PendingRegistration.approval_status == ApprovalStatus.PENDING,
            )
            .with_for_update()
        )
        registration = result.scalar_one_or_none()
        if not registration:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Pending registration not found",
            )
        return registration

    async def approve(
        self,
        registration_id: UUID,
        admin_user_id: UUID,
        selected_fee_tier: Decimal | None = None,
        ip_address: str | None = None,
    ) -> dict[str, Any]:
        """Approve a pending registration.

        Args:
            registration_id: Registration to approve (must be pending)
            admin_user_id: Approving admin
            selected_fee_tier: Annual fee; creates a draft membership invoice
            ip_address: Client IP address for the audit trail

        Returns:
            Dict with success, message, userId and organizationId

        Raises:
            HTTPException: 404 if no pending registration has this id
            HTTPException: 409 if the organization name belongs to another contact
            HTTPException: 500 if identity, profile or organization setup fails
        """
        with actor_context(str(admin_user_id)):
            try:
                return await self._approve(
                    registration_id, admin_user_id, selected_fee_tier, ip_address
                )
            except HTTPException:
                raise
            except Exception as exc:
                log_json(
                    logger,
                    logging.ERROR,
                    "approval_failed",
                    registration_id=str(registration_id),
                    error=f"{type(exc).__name__}: {exc}",
                )
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Internal server error during approval",
                ) from exc

    async def _approve(
        self,
        registration_id: UUID,
        admin_user_id: UUID,
        selected_fee_tier: Decimal | None,
        ip_address: str | None,
    ) -> dict[str, Any]:
        registration = await self._get_pending(registration_id)
        recorder = WorkflowRecorder(self.db, APPROVAL_WORKFLOW, registration.id, admin_user_id)

        user = await self._ensure_identity(registration, recorder)

        try:
            profile = await self.profiles.provision(user)
        except SQLAlchemyError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to create user profile: {exc}",
            ) from exc
        recorder.record("provision_profile", detail={"profile_id": str(profile.id)})

        async with recorder.best_effort("assign_member_role") as entry:
            granted = await self.identities.assign_role(user.id, AppRole.MEMBER)
            entry["detail"] = "granted" if granted else "already assigned"

        organization = await self._ensure_organization(registration, profile, recorder)

        today = date.today()
        organization.membership_status = MembershipStatus.ACTIVE
        organization.membership_start_date = today
        if selected_fee_tier is not None:
            organization.annual_fee_amount = selected_fee_tier
        await self.db.flush()
        recorder.record("activate_membership", detail={"start_date": today.isoformat()})

        if selected_fee_tier is not None:
            async with recorder.best_effort("create_invoice") as entry:
                invoice = await InvoiceService(self.db).create_membership_draft(
                    organization, selected_fee_tier, today
                )
                entry["detail"] = {
                    "invoice_number": invoice.invoice_number,
                    "amount": str(invoice.amount),
                }
        else:
            recorder.skip("create_invoice", "no fee tier selected")

        registration.approval_status = ApprovalStatus.APPROVED
        registration.approved_by = admin_user_id
        registration.approved_at = datetime.now(UTC)
        await self.db.flush()
        recorder.record("mark_registration_approved")

        async with recorder.best_effort("resolve_member_updates") as entry:
            resolved = await self.db.execute(
                update(MemberRegistrationUpdate)
                .where(
                    func.lower(MemberRegistrationUpdate.submitted_email) == registration.email.lower(),
                    MemberRegistrationUpdate.status == RequestStatus.PENDING,
                )
                .values(
                    status=RequestStatus.APPROVED,
                    reviewed_by=admin_user_id,
                    reviewed_at=datetime.now(UTC),
                    admin_notes=MEMBER_UPDATE_RESOLVED_NOTE,
                )
                .execution_options(synchronize_session=False)
            )
            entry["detail"] = {"rows": resolved.rowcount or 0}

        async with recorder.best_effort("send_welcome_email") as entry:
            sent = await self.notifier.send(
                EmailType.WELCOME_APPROVED,
                registration.email,
                organization.name,
                contact_name=profile.full_name,
                organization_data=organization_snapshot(organization),
                secondary_email=registration.secondary_contact_email,
            )
            entry["detail"] = "sent" if sent else "email disabled"

        await self.audit_service.log(
            action=AuditAction.REGISTRATION_APPROVE,
            entity_type="pending_registration",
            entity_id=registration.id,
            actor_id=admin_user_id,
            organization_id=organization.id,
            ip_address=ip_address,
            diff_json={
                "user_id": str(user.id),
                "organization_id": str(organization.id),
                "selected_fee_tier": str(selected_fee_tier) if selected_fee_tier is not None else None,
            },
        )

        result = {
            "success": True,
            "message": "Registration approved successfully",
            "userId": user.id,
            "organizationId": organization.id,
        }
        await recorder.finish(
            {"user_id": str(user.id), "organization_id": str(organization.id)}
        )
        return result

    async def _ensure_identity(
        self, registration: PendingRegistration, recorder: WorkflowRecorder
    ) -> AuthUser:
        """Create the registrant's identity or fold the registration into an existing one."""
        metadata = registration_metadata(registration)
        try:
            user = await self.identities.get_by_email(registration.email)
            if user is None:
                try:
                    user = await self.identities.create_user(
                        registration.email,
                        password_hash=registration.password_hash,
                        metadata=metadata,
                    )
                    recorder.record("ensure_identity", detail="created")
                    await self.audit_service.log(
                        action=AuditAction.IDENTITY_CREATE,
                        entity_type="identity",
                        entity_id=user.id,
                        actor_id=recorder.actor_id,
                    )
                    return user
                except IdentityExistsError:
                    # Created concurrently; continue as an update
                    user = await self.identities.get_by_email(registration.email)
                    if user is None:
                        raise

            await self.identities.merge_metadata(user, metadata)
            await self.identities.set_password_hash(user, registration.password_hash)
            recorder.record("ensure_identity", detail="updated existing")
            return user
        except (SQLAlchemyError, IdentityExistsError) as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to create user: {exc}",
            ) from exc

    async def _ensure_organization(
        self,
        registration: PendingRegistration,
        profile: Profile,
        recorder: WorkflowRecorder,
    ) -> Organization:
        """Reuse, adopt or create the organization named by the registration."""
        fields = organization_fields_from_registration(registration)
        organization = await self.organizations.get_by_name(
            registration.organization_name, for_update=True
        )

        if organization is not None:
            if organization.contact_person_id not in (None, profile.id):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=(
                        f"Organization {registration.organization_name} is already "
                        "managed by another contact"
                    ),
                )
            action = "reused" if organization.contact_person_id == profile.id else "adopted"
            for key, value in fields.items():
                if key != "name" and value is not None:
                    setattr(organization, key, value)
            organization.contact_person_id = profile.id
            await self.db.flush()
            recorder.record("ensure_organization", detail={"action": action, "organization_id": str(organization.id)})
            return organization

        organization = Organization(contact_person_id=profile.id, **fields)
        try:
            async with self.db.begin_nested():
                self.db.add(organization)
                await self.db.flush()
        except IntegrityError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Organization {registration.organization_name} already exists",
            ) from exc
        except SQLAlchemyError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to create organization: {exc}",
            ) from exc

        recorder.record("ensure_organization", detail={"action": "created", "organization_id": str(organization.id)})
        await self.audit_service.log(
            action=AuditAction.ORG_CREATE,
            entity_type="organization",
            entity_id=organization.id,
            actor_id=recorder.actor_id,
            organization_id=organization.id,
        )
        return organization
