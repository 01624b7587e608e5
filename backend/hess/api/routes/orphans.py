"""Admin endpoints for orphaned profile detection and repair."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hess.api.deps import require_admin
from hess.core.database import get_db
from hess.models.auth_user import AuthUser
from hess.schemas.orphan import OrphanDetectionResponse, OrphanFixRequest, OrphanFixResponse
from hess.services.orphan_service import OrphanService

router = APIRouter()


@router.get("", response_model=OrphanDetectionResponse)
async def detect_orphaned_profiles(
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(require_admin()),
) -> OrphanDetectionResponse:
    result = await OrphanService(db).detect()
    return OrphanDetectionResponse.model_validate(result)


@router.post("/fix", response_model=OrphanFixResponse)
async def fix_orphaned_profiles(
    body: OrphanFixRequest,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(require_admin()),
) -> OrphanFixResponse:
    """Sync, relink or recreate the identities of the given profiles."""
    result = await OrphanService(db).fix(body.profile_ids, admin_user_id=current_user.id)
    return OrphanFixResponse.model_validate(result)
