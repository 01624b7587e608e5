"""Public registration intake endpoint."""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from hess.api.deps import get_client_ip
from hess.core.database import get_db
from hess.schemas.errors import ErrorResponse
from hess.schemas.registration import RegistrationCreate, RegistrationSubmitted
from hess.services.registration_service import RegistrationService

router = APIRouter()


@router.post(
    "",
    response_model=RegistrationSubmitted,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Submit a membership registration",
)
async def submit_registration(
    body: RegistrationCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> RegistrationSubmitted:
    """Queue a self-registration for admin review.

    Raises:
        HTTPException: 400 if the password is too weak
        HTTPException: 409 if the email or organization already has a pending
            registration, or the organization is already a member
    """
    service = RegistrationService(db)
    registration = await service.submit(body, ip_address=get_client_ip(request))
    return RegistrationSubmitted(id=registration.id, approval_status=registration.approval_status)
