"""Admin endpoint exposing the workflow ledger."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hess.api.deps import require_admin
from hess.core.database import get_db
from hess.models.auth_user import AuthUser
from hess.schemas.workflow import WorkflowRunResponse
from hess.services.workflow_service import list_workflow_runs

router = APIRouter()


@router.get("", response_model=list[WorkflowRunResponse])
async def get_workflow_runs(
    workflow: str | None = Query(None),
    warnings_only: bool = Query(False),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(require_admin()),
) -> list[WorkflowRunResponse]:
    """Most recent orchestrator runs; ``warnings_only`` keeps runs with failed best-effort steps."""
    runs = await list_workflow_runs(
        db, workflow=workflow, warnings_only=warnings_only, limit=limit
    )
    return [WorkflowRunResponse.model_validate(run) for run in runs]
