"""Admin endpoints for pending registration triage."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hess.api.deps import get_client_ip, require_admin
from hess.core.database import get_db
from hess.models.auth_user import AuthUser
from hess.models.enums import ApprovalStatus, PriorityLevel
from hess.schemas.registration import (
    BulkOperationRequest,
    BulkOperationResponse,
    PriorityUpdateRequest,
    RegistrationResponse,
    RejectRegistrationRequest,
)
from hess.services.notification_service import NotificationService, get_notifier
from hess.services.registration_service import RegistrationService

router = APIRouter()


@router.get("", response_model=list[RegistrationResponse])
async def list_registrations(
    approval_status: ApprovalStatus | None = Query(ApprovalStatus.PENDING, alias="status"),
    priority: PriorityLevel | None = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(require_admin()),
) -> list[RegistrationResponse]:
    """List registrations, urgent first (pending by default)."""
    service = RegistrationService(db)
    registrations = await service.list_registrations(approval_status, priority)
    return [RegistrationResponse.model_validate(r) for r in registrations]


@router.post("/bulk", response_model=BulkOperationResponse)
async def bulk_operation(
    body: BulkOperationRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    current_user: AuthUser = Depends(require_admin()),
) -> BulkOperationResponse:
    """Approve, reject or re-prioritize several registrations at once."""
    service = RegistrationService(db, notifier)
    result = await service.bulk(
        operation=body.operation,
        registration_ids=body.registration_ids,
        admin_user_id=current_user.id,
        reason=body.reason,
        priority=body.priority,
        ip_address=get_client_ip(request),
    )
    return BulkOperationResponse.model_validate(result)


@router.get("/{registration_id}", response_model=RegistrationResponse)
async def get_registration(
    registration_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(require_admin()),
) -> RegistrationResponse:
    service = RegistrationService(db)
    return RegistrationResponse.model_validate(await service.get(registration_id))


@router.post("/{registration_id}/reject", response_model=RegistrationResponse)
async def reject_registration(
    registration_id: UUID,
    body: RejectRegistrationRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    current_user: AuthUser = Depends(require_admin()),
) -> RegistrationResponse:
    """Reject a pending registration and email the registrant."""
    service = RegistrationService(db, notifier)
    registration = await service.reject(
        registration_id, current_user.id, body.reason, ip_address=get_client_ip(request)
    )
    return RegistrationResponse.model_validate(registration)


@router.patch("/{registration_id}/priority", response_model=RegistrationResponse)
async def update_priority(
    registration_id: UUID,
    body: PriorityUpdateRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(require_admin()),
) -> RegistrationResponse:
    service = RegistrationService(db)
    registration = await service.update_priority(
        registration_id,
        body.priority_level,
        current_user.id,
        admin_notes=body.admin_notes,
        ip_address=get_client_ip(request),
    )
    return RegistrationResponse.model_validate(registration)
