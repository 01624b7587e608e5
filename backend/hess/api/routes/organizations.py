"""Admin organization endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hess.api.deps import get_client_ip, require_admin
from hess.core.database import get_db
from hess.models.auth_user import AuthUser
from hess.schemas.errors import ErrorResponse
from hess.schemas.organization import OrganizationDeleteResponse
from hess.services.organization_service import OrganizationService

router = APIRouter()


@router.delete(
    "/{organization_id}",
    response_model=OrganizationDeleteResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Delete organization (admin only)",
)
async def delete_organization(
    organization_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(require_admin()),
) -> OrganizationDeleteResponse:
    """Delete an organization with its dependent rows and primary contact.

    Raises:
        HTTPException: 404 if organization not found
        HTTPException: 500 if the organization row could not be removed
    """
    service = OrganizationService(db)
    result = await service.delete(
        organization_id, current_user.id, ip_address=get_client_ip(request)
    )
    return OrganizationDeleteResponse.model_validate(result)
