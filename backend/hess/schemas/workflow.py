"""Pydantic schemas for the workflow ledger."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from hess.models.enums import WorkflowStatus


class WorkflowStep(BaseModel):
    step: str
    outcome: str
    detail: Any = None


class WorkflowRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    workflow: str
    subject_id: UUID
    actor_id: UUID | None = None
    status: WorkflowStatus
    steps: list[WorkflowStep]
    result: dict[str, Any] | None = None
    created_at: datetime
    finished_at: datetime | None = None
