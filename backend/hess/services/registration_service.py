"""Registration intake and admin triage of pending registrations.

Handles public self-registration (with insert-time duplicate prevention),
rejection, priority changes and bulk operations over registrations.
"""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hess.core.config import get_settings
from hess.core.security import PasswordValidationError, hash_password, validate_password
from hess.core.structured_logging import log_json
from hess.models.bulk_operation import BulkOperation
from hess.models.enums import (
    ApprovalStatus,
    AuditAction,
    BulkOperationType,
    MembershipStatus,
    PriorityLevel,
)
from hess.models.mixins import BOOLEAN_FIELDS, DESCRIPTIVE_FIELDS
from hess.models.organization import Organization
from hess.models.pending_registration import PendingRegistration
from hess.schemas.registration import RegistrationCreate
from hess.services.approval_service import ApprovalService
from hess.services.audit_service import AuditService
from hess.services.identity_service import normalize_email
from hess.services.notification_service import EmailType, NotificationService
from hess.services.workflow_service import WorkflowRecorder

logger = logging.getLogger(__name__)

REJECTION_WORKFLOW = "reject_pending_registration"

REGISTRATION_FIELDS = frozenset(
    (
        "first_name",
        "last_name",
        "state_association",
        "address",
        "zip",
        *DESCRIPTIVE_FIELDS,
    )
)


class RegistrationService:
    """Service for pending registrations."""

    def __init__(self, db: AsyncSession, notifier: NotificationService | None = None):
        """Initialize registration service.

        Args:
            db: Database session
            notifier: Notification dispatcher (needed for rejection and bulk approval)
        """
        self.db = db
        self.notifier = notifier
        self.audit_service = AuditService(db)

    async def submit(
        self, data: RegistrationCreate, ip_address: str | None = None
    ) -> PendingRegistration:
        """Accept a public self-registration.

        Raises:
            HTTPException: 400 if the password is too weak
            HTTPException: 409 if a pending registration already exists for the
                email or organization, or the organization is already a member
        """
        try:
            validate_password(data.password)
        except PasswordValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e)
            )

        email = normalize_email(data.email)
        organization_name = data.organization_name.strip()

        existing = await self.db.execute(
            select(PendingRegistration.id).where(
                PendingRegistration.approval_status == ApprovalStatus.PENDING,
                func.lower(PendingRegistration.email) == email,
            )
        )
        if existing.first() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A registration for this email is already pending review",
            )

        existing = await self.db.execute(
            select(PendingRegistration.id).where(
                PendingRegistration.approval_status == ApprovalStatus.PENDING,
                func.lower(PendingRegistration.organization_name) == organization_name.lower(),
            )
        )
        if existing.first() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"A registration for {organization_name} is already pending review",
            )

        existing = await self.db.execute(
            select(Organization.id).where(
                func.lower(Organization.name) == organization_name.lower(),
                Organization.membership_status == MembershipStatus.ACTIVE,
            )
        )
        if existing.first() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"{organization_name} is already a member organization",
            )

        previous_rejections = await self.db.scalar(
            select(func.count(PendingRegistration.id)).where(
                func.lower(PendingRegistration.email) == email,
                PendingRegistration.approval_status == ApprovalStatus.REJECTED,
            )
        )

        values = data.model_dump(exclude={"password", "email", "organization_name"})
        for field in BOOLEAN_FIELDS:
            values[field] = bool(values.get(field))
        registration = PendingRegistration(
            email=email,
            organization_name=organization_name,
            password_hash=hash_password(data.password),
            approval_status=ApprovalStatus.PENDING,
            priority_level=PriorityLevel.NORMAL,
            resubmission_count=previous_rejections or 0,
            **{key: value for key, value in values.items() if key in REGISTRATION_FIELDS},
        )
        self.db.add(registration)
        await self.db.flush()

        await self.audit_service.log(
            action=AuditAction.REGISTRATION_SUBMIT,
            entity_type="pending_registration",
            entity_id=registration.id,
            ip_address=ip_address,
            diff_json={"organization_name": organization_name},
        )
        log_json(
            logger,
            logging.INFO,
            "registration_submitted",
            registration_id=str(registration.id),
            organization_name=organization_name,
        )
        return registration

    async def list_registrations(
        self,
        approval_status: ApprovalStatus | None = ApprovalStatus.PENDING,
        priority: PriorityLevel | None = None,
    ) -> list[PendingRegistration]:
        """Registrations ordered urgent first, newest first within a priority."""
        stmt = select(PendingRegistration)
        if approval_status is not None:
            stmt = stmt.where(PendingRegistration.approval_status == approval_status)
        if priority is not None:
            stmt = stmt.where(PendingRegistration.priority_level == priority)
        result = await self.db.execute(stmt.order_by(PendingRegistration.created_at.desc()))
        registrations = list(result.scalars().all())
        registrations.sort(key=lambda r: PriorityLevel.sort_rank(r.priority_level))
        return registrations

    async def get(self, registration_id: UUID) -> PendingRegistration:
        result = await self.db.execute(
            select(PendingRegistration).where(PendingRegistration.id == registration_id)
        )
        registration = result.scalar_one_or_none()
        if not registration:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Registration not found",
            )
        return registration

    async def reject(
        self,
        registration_id: UUID,
        admin_user_id: UUID,
        reason: str,
        ip_address: str | None = None,
    ) -> PendingRegistration:
        """Reject a pending registration and notify the registrant.

        Raises:
            HTTPException: 404 if no pending registration has this id
        """
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

        recorder = WorkflowRecorder(self.db, REJECTION_WORKFLOW, registration.id, admin_user_id)
        registration.approval_status = ApprovalStatus.REJECTED
        registration.rejection_reason = reason
        registration.approved_by = admin_user_id
        registration.approved_at = datetime.now(UTC)
        await self.db.flush()
        recorder.record("mark_registration_rejected")

        if self.notifier is not None:
            async with recorder.best_effort("send_rejection_email") as entry:
                sent = await self.notifier.send(
                    EmailType.REGISTRATION_REJECTED,
                    registration.email,
                    registration.organization_name,
                    reason=reason,
                )
                entry["detail"] = "sent" if sent else "email disabled"
        else:
            recorder.skip("send_rejection_email", "no notifier configured")

        await self.audit_service.log(
            action=AuditAction.REGISTRATION_REJECT,
            entity_type="pending_registration",
            entity_id=registration.id,
            actor_id=admin_user_id,
            ip_address=ip_address,
            diff_json={"reason": reason},
        )
        await recorder.finish({"registration_id": str(registration.id)})
        return registration

    async def update_priority(
        self,
        registration_id: UUID,
        priority: PriorityLevel,
        admin_user_id: UUID,
        admin_notes: str | None = None,
        ip_address: str | None = None,
    ) -> PendingRegistration:
        registration = await self.get(registration_id)
        previous = registration.priority_level
        registration.priority_level = priority
        if admin_notes is not None:
            registration.admin_notes = admin_notes
        await self.db.flush()

        await self.audit_service.log(
            action=AuditAction.REGISTRATION_PRIORITY,
            entity_type="pending_registration",
            entity_id=registration.id,
            actor_id=admin_user_id,
            ip_address=ip_address,
            diff_json={"before": previous.value, "after": priority.value},
        )
        return registration

    async def bulk(
        self,
        operation: str,
        registration_ids: list[UUID],
        admin_user_id: UUID,
        reason: str | None = None,
        priority: str | None = None,
        ip_address: str | None = None,
    ) -> dict[str, Any]:
        """Apply one operation to many registrations.

        Each registration is processed in its own SAVEPOINT so one failure
        does not undo the others.

        Raises:
            HTTPException: 400 for an unknown operation, an empty id list, a
                missing rejection reason or an invalid priority
        """
        try:
            operation_type = BulkOperationType(operation)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid operation: {operation}",
            )
        if not registration_ids:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No registration IDs provided",
            )

        priority_level = None
        if operation_type is BulkOperationType.REJECT and not (reason and reason.strip()):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Rejection reason is required",
            )
        if operation_type is BulkOperationType.PRIORITY_UPDATE:
            try:
                priority_level = PriorityLevel(priority)
            except ValueError:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Invalid priority level: {priority}",
                )

        settings = get_settings()
        approvals = ApprovalService(self.db, self.notifier)
        results: list[dict[str, Any]] = []
        errors: list[dict[str, Any]] = []

        for index, registration_id in enumerate(registration_ids):
            try:
                async with self.db.begin_nested():
                    if operation_type is BulkOperationType.APPROVE:
                        outcome = await approvals.approve(
                            registration_id, admin_user_id, ip_address=ip_address
                        )
                        results.append(
                            {
                                "id": registration_id,
                                "success": True,
                                "organizationId": outcome["organizationId"],
                            }
                        )
                    elif operation_type is BulkOperationType.REJECT:
                        await self.reject(registration_id, admin_user_id, reason, ip_address)
                        results.append({"id": registration_id, "success": True})
                    else:
                        await self.update_priority(
                            registration_id, priority_level, admin_user_id, ip_address=ip_address
                        )
                        results.append({"id": registration_id, "success": True})
            except HTTPException as exc:
                errors.append({"id": registration_id, "error": exc.detail})
                results.append({"id": registration_id, "success": False, "error": exc.detail})

            if (
                operation_type is BulkOperationType.APPROVE
                and settings.bulk_approval_delay_seconds
                and index < len(registration_ids) - 1
            ):
                await asyncio.sleep(settings.bulk_approval_delay_seconds)

        processed = sum(1 for r in results if r["success"])
        operation_log = BulkOperation(
            operation_type=operation_type,
            performed_by=admin_user_id,
            registration_ids=[str(i) for i in registration_ids],
            operation_data={
                "reason": reason,
                "priority": priority_level.value if priority_level else None,
                "processed": processed,
                "failed": len(errors),
            },
        )
        self.db.add(operation_log)
        await self.db.flush()

        await self.audit_service.log(
            action=AuditAction.BULK_OPERATION,
            entity_type="bulk_operation",
            entity_id=operation_log.id,
            actor_id=admin_user_id,
            ip_address=ip_address,
            diff_json={"operation": operation_type.value, "count": len(registration_ids)},
        )
        log_json(
            logger,
            logging.INFO if not errors else logging.WARNING,
            "bulk_operation_finished",
            operation=operation_type.value,
            processed=processed,
            failed=len(errors),
        )
        return {
            "success": not errors,
            "operation": operation_type.value,
            "processed": processed,
            "failed": len(errors),
            "results": results,
            "errors": errors,
        }

