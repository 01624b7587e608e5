"""Approval and reassignment workflow endpoints.

Both endpoints answer CORS preflight with open headers (see the CORS
middleware in ``hess.main``) and report errors as ``{"error": message}``.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hess.api.deps import get_client_ip, require_admin
from hess.core.database import get_db
from hess.models.auth_user import AuthUser
from hess.schemas.errors import ErrorResponse
from hess.schemas.functions import (
    ApproveReassignmentRequest,
    ApproveReassignmentResponse,
    ApproveRegistrationRequest,
    ApproveRegistrationResponse,
)
from hess.services.approval_service import ApprovalService
from hess.services.notification_service import NotificationService, get_notifier
from hess.services.reassignment_service import ReassignmentService

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post(
    "/approve-pending-registration",
    response_model=ApproveRegistrationResponse,
    responses=ERROR_RESPONSES,
    summary="Approve a pending registration",
)
async def approve_pending_registration(
    body: ApproveRegistrationRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    current_user: AuthUser = Depends(require_admin()),
) -> ApproveRegistrationResponse:
    """Create the member identity, profile and active organization for a registration."""
    service = ApprovalService(db, notifier)
    result = await service.approve(
        registration_id=body.registration_id,
        admin_user_id=body.admin_user_id,
        selected_fee_tier=body.selected_fee_tier,
        ip_address=get_client_ip(request),
    )
    return ApproveRegistrationResponse.model_validate(result)


@router.post(
    "/approve-reassignment-request",
    response_model=ApproveReassignmentResponse,
    responses=ERROR_RESPONSES,
    summary="Approve an organization reassignment request",
)
async def approve_reassignment_request(
    body: ApproveReassignmentRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    current_user: AuthUser = Depends(require_admin()),
) -> ApproveReassignmentResponse:
    """Replace an organization and its primary contact with the requested ones."""
    service = ReassignmentService(db, notifier)
    result = await service.approve(
        request_id=body.request_id,
        admin_user_id=body.admin_user_id or current_user.id,
        ip_address=get_client_ip(request),
    )
    return ApproveReassignmentResponse.model_validate(result)
