"""Authentication endpoints."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from hess.api.deps import get_client_ip
from hess.core.config import get_settings
from hess.core.database import get_db
from hess.schemas.auth import LoginRequest, TokenResponse
from hess.services.identity_service import IdentityService

settings = get_settings()
router = APIRouter()


@router.post("/login", response_model=TokenResponse, status_code=status.HTTP_200_OK)
async def login(
    login_data: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Exchange email and password for a bearer access token.

    Raises:
        HTTPException: 401 if credentials are invalid
    """
    access_token, _ = await IdentityService(db).login(
        email=login_data.email,
        password=login_data.password,
        ip_address=get_client_ip(request),
    )
    return TokenResponse(
        access_token=access_token,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )
