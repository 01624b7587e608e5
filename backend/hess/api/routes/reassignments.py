"""Admin endpoints for organization reassignment requests."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hess.api.deps import get_client_ip, require_admin
from hess.core.database import get_db
from hess.models.auth_user import AuthUser
from hess.models.enums import RequestStatus
from hess.schemas.reassignment import ReassignmentRequestResponse, RejectReassignmentRequest
from hess.services.reassignment_service import ReassignmentService

router = APIRouter()


@router.get("", response_model=list[ReassignmentRequestResponse])
async def list_reassignment_requests(
    request_status: RequestStatus | None = Query(RequestStatus.PENDING, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(require_admin()),
) -> list[ReassignmentRequestResponse]:
    service = ReassignmentService(db)
    requests = await service.list_requests(request_status)
    return [ReassignmentRequestResponse.model_validate(r) for r in requests]


@router.post("/{request_id}/reject", response_model=ReassignmentRequestResponse)
async def reject_reassignment_request(
    request_id: UUID,
    body: RejectReassignmentRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(require_admin()),
) -> ReassignmentRequestResponse:
    """Reject a pending reassignment request; the organization is unchanged."""
    service = ReassignmentService(db)
    reassignment = await service.reject(
        request_id, current_user.id, body.reason, ip_address=get_client_ip(request)
    )
    return ReassignmentRequestResponse.model_validate(reassignment)
