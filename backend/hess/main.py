"""FastAPI application entry point."""

from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from hess.api.deps import get_current_user
from hess.api.middleware import (
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from hess.api.routes import (
    admin_registrations,
    auth,
    functions,
    metrics,
    organizations,
    orphans,
    reassignments,
    registrations,
    workflow_runs,
)
from hess.core.config import get_settings
from hess.core.database import get_db
from hess.core.structured_logging import configure_logging
from hess.models.auth_user import AuthUser
from hess.schemas.auth import MeResponse
from hess.services.identity_service import IdentityService

configure_logging()

settings = get_settings()
docs_enabled = settings.api_docs_enabled
if docs_enabled is None:
    docs_enabled = settings.environment != "production"

app = FastAPI(
    title="HESS Consortium API",
    description="Membership registration, approval and reassignment API",
    version="1.0.0",
    docs_url="/api/docs" if docs_enabled else None,
    redoc_url="/api/redoc" if docs_enabled else None,
    openapi_url="/api/openapi.json" if docs_enabled else None,
)

# Middleware configuration (order matters - applied in reverse order)
# 1. Request logging (outermost - logs all requests)
app.add_middleware(RequestLoggingMiddleware)

# 2. Security headers
app.add_middleware(SecurityHeadersMiddleware)

# 3. Rate limiting (applied before routing)
app.add_middleware(RateLimitMiddleware)

# 4. CORS (innermost, answers preflight requests)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render every error body as ``{"error": message}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Invalid request body",
            "details": jsonable_encoder(exc.errors()),
        },
    )


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


app.include_router(functions.router, prefix="/api/functions", tags=["functions"])
app.include_router(registrations.router, prefix="/api/registrations", tags=["registrations"])
app.include_router(
    admin_registrations.router, prefix="/api/admin/registrations", tags=["admin"]
)
app.include_router(
    reassignments.router, prefix="/api/admin/reassignment-requests", tags=["admin"]
)
app.include_router(organizations.router, prefix="/api/admin/organizations", tags=["admin"])
app.include_router(workflow_runs.router, prefix="/api/admin/workflow-runs", tags=["admin"])
app.include_router(orphans.router, prefix="/api/admin/orphaned-profiles", tags=["admin"])
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(metrics.router, prefix="/api", tags=["metrics"])


@app.get("/api/me", response_model=MeResponse, tags=["auth"])
async def get_current_user_info(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get current identity with its granted roles."""
    roles = await IdentityService(db).get_roles(current_user.id)
    return MeResponse(
        id=current_user.id,
        email=current_user.email,
        roles=[role.value for role in roles],
        last_sign_in_at=current_user.last_sign_in_at,
        created_at=current_user.created_at,
    )
