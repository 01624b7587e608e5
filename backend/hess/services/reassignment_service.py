"""Reassignment orchestrator.

Replaces an organization's primary contact by creating a new organization
row owned by the new contact, repointing the request at it and then purging
the old organization with its dependents and old contact identity.
"""

import asyncio
import logging
import secrets
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hess.core.config import get_settings
from hess.core.request_context import actor_context
from hess.core.structured_logging import log_json
from hess.models.auth_user import AuthUser
from hess.models.enums import AuditAction, MembershipStatus, RequestStatus
from hess.models.organization import Organization
from hess.models.profile import Profile
from hess.models.reassignment_request import ReassignmentRequest
from hess.services.audit_service import AuditService
from hess.services.identity_service import IdentityExistsError, IdentityService
from hess.services.notification_service import EmailType, NotificationService
from hess.services.organization_purge import OrganizationPurge
from hess.services.organization_service import (
    OrganizationService,
    organization_fields_from_data,
)
from hess.services.profile_service import PROFILE_FIELDS, ProfileService, coerce_profile_value
from hess.services.workflow_service import REASSIGNMENT_WORKFLOW, WorkflowRecorder

logger = logging.getLogger(__name__)


def temporary_name(name: str, suffix: str) -> str:
    """Unique placeholder name held by the new row until the old one is gone."""
    return f"{name} ({suffix}-{secrets.token_hex(4)})"


def registration_data_metadata(data: dict[str, Any] | None) -> dict[str, Any]:
    """Profile fields of a request's registration data, converted to column types.

    Raises:
        ValueError: If a value cannot be converted.
    """
    if not data:
        return {}
    return {
        key: coerce_profile_value(key, value)
        for key, value in data.items()
        if key in PROFILE_FIELDS
    }


class ReassignmentService:
    """Approves, rejects and lists organization reassignment requests."""

    def __init__(self, db: AsyncSession, notifier: NotificationService | None = None):
        self.db = db
        self.notifier = notifier
        self.identities = IdentityService(db)
        self.profiles = ProfileService(db)
        self.organizations = OrganizationService(db)
        self.audit_service = AuditService(db)

    async def list_requests(
        self, request_status: RequestStatus | None = RequestStatus.PENDING
    ) -> list[ReassignmentRequest]:
        stmt = select(ReassignmentRequest)
        if request_status is not None:
            stmt = stmt.where(ReassignmentRequest.status == request_status)
        result = await self.db.execute(stmt.order_by(ReassignmentRequest.created_at.desc()))
        return list(result.scalars().all())

    async def _get_pending(self, request_id: UUID) -> ReassignmentRequest:
        result = await self.db.execute(
            select(ReassignmentRequest)
            .where(
                ReassignmentRequest.id == request_id,
                ReassignmentRequest.status == RequestStatus.PENDING,
            )
            .with_for_update()
        )
        request = result.scalar_one_or_none()
        if not request:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Reassignment request not found",
            )
        return request

    async def reject(
        self,
        request_id: UUID,
        admin_user_id: UUID,
        reason: str | None = None,
        ip_address: str | None = None,
    ) -> ReassignmentRequest:
        """Reject a pending request. The organization is left untouched."""
        request = await self._get_pending(request_id)
        request.status = RequestStatus.REJECTED
        request.rejection_reason = reason
        request.approved_by = admin_user_id
        request.approved_at = datetime.now(UTC)
        await self.db.flush()

        await self.audit_service.log(
            action=AuditAction.REASSIGNMENT_REJECT,
            entity_type="reassignment_request",
            entity_id=request.id,
            actor_id=admin_user_id,
            organization_id=request.organization_id,
            ip_address=ip_address,
            diff_json={"reason": reason},
        )
        return request

    async def approve(
        self,
        request_id: UUID,
        admin_user_id: UUID,
        ip_address: str | None = None,
    ) -> dict[str, Any]:
        """Approve a pending reassignment request.

        Returns:
            Dict with success, message and newOrganizationId

        Raises:
            HTTPException: 404 if the request is not pending or its organization is gone
            HTTPException: 500 if the new contact, the new organization or the
                final rename cannot be set up
        """
        with actor_context(str(admin_user_id)):
            try:
                return await self._approve(request_id, admin_user_id, ip_address)
            except HTTPException:
                raise
            except Exception as exc:
                log_json(
                    logger,
                    logging.ERROR,
                    "reassignment_failed",
                    request_id=str(request_id),
                    error=f"{type(exc).__name__}: {exc}",
                )
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Internal server error during reassignment",
                ) from exc

    async def _approve(
        self,
        request_id: UUID,
        admin_user_id: UUID,
        ip_address: str | None,
    ) -> dict[str, Any]:
        request = await self._get_pending(request_id)
        recorder = WorkflowRecorder(self.db, REASSIGNMENT_WORKFLOW, request.id, admin_user_id)

        old_organization = await self.organizations.get_by_id(request.organization_id, for_update=True)
        if not old_organization:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Organization not found",
            )
        old_organization_id = old_organization.id
        old_name = old_organization.name
        old_contact = None
        if old_organization.contact_person_id:
            old_contact = await self.profiles.get_by_id(old_organization.contact_person_id)

        try:
            fields, ignored = organization_fields_from_data(request.new_organization_data or {})
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid organization data: {exc}",
            ) from exc
        try:
            metadata = registration_data_metadata(request.user_registration_data)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid user registration data: {exc}",
            ) from exc
        desired_name = fields.pop("name", None) or old_name

        new_contact, created_user = await self._resolve_new_contact(request, metadata, recorder)

        new_organization, placeholder = await self._insert_organization(
            desired_name, fields, new_contact, recorder
        )
        if ignored:
            recorder.record("ignored_fields", detail=ignored)

        request.status = RequestStatus.APPROVED
        request.approved_by = admin_user_id
        request.approved_at = datetime.now(UTC)
        request.organization_id = new_organization.id
        await self.db.flush()
        recorder.record("mark_request_approved", detail={"organization_id": str(new_organization.id)})

        purge = OrganizationPurge(self.db, recorder)
        await purge.run(old_organization_id, old_contact, keep_profile_id=new_contact.id)

        if placeholder is not None:
            await self._rename(new_organization.id, desired_name, recorder)

        if created_user is not None:
            async with recorder.best_effort("send_password_reset") as entry:
                link = self.identities.generate_recovery_link(created_user)
                sent = await self.notifier.send(
                    EmailType.PASSWORD_RESET,
                    created_user.email,
                    desired_name,
                    contact_name=new_contact.full_name,
                    recovery_link=link,
                )
                entry["detail"] = "sent" if sent else "email disabled"

        async with recorder.best_effort("send_profile_update_email") as entry:
            sent = await self.notifier.send(
                EmailType.PROFILE_UPDATE_APPROVED,
                request.new_contact_email,
                desired_name,
                contact_name=new_contact.full_name,
            )
            entry["detail"] = "sent" if sent else "email disabled"

        await self.audit_service.log(
            action=AuditAction.REASSIGNMENT_APPROVE,
            entity_type="reassignment_request",
            entity_id=request.id,
            actor_id=admin_user_id,
            organization_id=new_organization.id,
            ip_address=ip_address,
            diff_json={
                "old_organization_id": str(old_organization_id),
                "new_organization_id": str(new_organization.id),
                "old_contact_profile_id": str(old_contact.id) if old_contact else None,
                "new_contact_profile_id": str(new_contact.id),
                "temporary_name": placeholder,
            },
        )
        await recorder.finish(
            {
                "new_organization_id": str(new_organization.id),
                "temporary_name": placeholder,
            }
        )
        return {
            "success": True,
            "message": "Reassignment request approved successfully",
            "newOrganizationId": new_organization.id,
        }

    async def _resolve_new_contact(
        self,
        request: ReassignmentRequest,
        metadata: dict[str, Any],
        recorder: WorkflowRecorder,
    ) -> tuple[Profile, AuthUser | None]:
        """Find or create the incoming contact's profile.

        Returns:
            Tuple of (profile, identity) where identity is set only when a new
            identity was created and still needs onboarding.
        """
        try:
            profile = await self.profiles.get_by_email(request.new_contact_email)
            if profile is not None:
                recorder.record("resolve_new_contact", detail="existing profile")
                return profile, None

            created = None
            user = await self.identities.get_by_email(request.new_contact_email)
            if user is None:
                try:
                    user = await self.identities.create_user_with_temporary_password(
                        request.new_contact_email, metadata
                    )
                    created = user
                except IdentityExistsError:
                    user = await self.identities.get_by_email(request.new_contact_email)
                    if user is None:
                        raise
            if created is None and metadata:
                await self.identities.merge_metadata(user, metadata)

            profile = await self.profiles.provision(user)
        except (SQLAlchemyError, IdentityExistsError) as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to create new contact: {exc}",
            ) from exc

        recorder.record(
            "resolve_new_contact",
            detail="created identity" if created is not None else "existing identity",
        )
        if created is not None:
            await self.audit_service.log(
                action=AuditAction.IDENTITY_CREATE,
                entity_type="identity",
                entity_id=created.id,
                actor_id=recorder.actor_id,
            )
        return profile, created

    async def _insert_organization(
        self,
        desired_name: str,
        fields: dict[str, Any],
        contact: Profile,
        recorder: WorkflowRecorder,
    ) -> tuple[Organization, str | None]:
        """Insert the replacement organization, under a placeholder name if the name is taken."""
        settings = get_settings()
        placeholder = None
        for name in (desired_name, temporary_name(desired_name, settings.temporary_name_suffix)):
            organization = Organization(
                name=name,
                contact_person_id=contact.id,
                membership_status=MembershipStatus.PENDING,
                **fields,
            )
            try:
                async with self.db.begin_nested():
                    self.db.add(organization)
                    await self.db.flush()
            except IntegrityError as exc:
                if name != desired_name:
                    raise HTTPException(
                        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                        detail=f"Failed to create new organization: {exc.orig}",
                    ) from exc
                continue
            except SQLAlchemyError as exc:
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=f"Failed to create new organization: {exc}",
                ) from exc

            if name != desired_name:
                placeholder = name
            recorder.record(
                "create_organization",
                detail={"organization_id": str(organization.id), "temporary_name": placeholder},
            )
            await self.audit_service.log(
                action=AuditAction.ORG_CREATE,
                entity_type="organization",
                entity_id=organization.id,
                actor_id=recorder.actor_id,
                organization_id=organization.id,
            )
            return organization, placeholder

    async def _rename(
        self, organization_id: UUID, desired_name: str, recorder: WorkflowRecorder
    ) -> None:
        """Give the new organization its final name, retrying until the old row has released it."""
        settings = get_settings()
        attempts = max(settings.rename_max_attempts, 1)
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                async with self.db.begin_nested():
                    await self.db.execute(
                        update(Organization)
                        .where(Organization.id == organization_id)
                        .values(name=desired_name)
                        .execution_options(synchronize_session="fetch")
                    )
            except SQLAlchemyError as exc:
                last_error = exc
                log_json(
                    logger,
                    logging.WARNING,
                    "organization_rename_retry",
                    organization_id=str(organization_id),
                    attempt=attempt,
                    error=str(exc),
                )
                if attempt < attempts and settings.rename_retry_delay_seconds:
                    await asyncio.sleep(settings.rename_retry_delay_seconds)
                continue

            recorder.record("rename_organization", detail={"name": desired_name, "attempts": attempt})
            return

        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to rename organization to {desired_name}: {last_error}",
        )
