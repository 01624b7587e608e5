"""FastAPI dependencies for authentication and authorization."""
from collections.abc import Callable
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from hess.core.database import get_db
from hess.core.security import RECOVERY_TOKEN_TYPE, decode_token
from hess.models.auth_user import AuthUser
from hess.models.enums import AppRole
from hess.services.identity_service import IdentityService

# HTTP Bearer token security scheme
security = HTTPBearer()


def get_client_ip(request: Request) -> str | None:
    """Extract client IP address from request.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address or None
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> AuthUser:
    """Get current authenticated identity from JWT token.

    Raises:
        HTTPException: 401 if token is invalid or identity not found
    """
    payload = decode_token(credentials.credentials)
    if not payload or payload.get("type") == RECOVERY_TOKEN_TYPE:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    try:
        user = await IdentityService(db).get_by_id(UUID(str(user_id)))
    except ValueError:
        user = None
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def require_role(role: AppRole) -> Callable:
    """Dependency factory requiring the caller to hold ``role`` in ``user_roles``.

    Example:
        @router.get("/admin/registrations")
        async def list_registrations(
            user: AuthUser = Depends(require_admin())
        ):
            pass
    """

    async def check_role(
        current_user: AuthUser = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> AuthUser:
        if not await IdentityService(db).has_role(current_user.id, role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Requires {role.value} role.",
            )
        return current_user

    return check_role


def require_admin() -> Callable:
    """Dependency for endpoints that require the admin role."""
    return require_role(AppRole.ADMIN)
