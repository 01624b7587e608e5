"""Pydantic schemas for organization administration."""

from uuid import UUID

from pydantic import BaseModel


class OrganizationDeleteResponse(BaseModel):
    success: bool
    message: str
    warnings: list[str] = []
    workflow_run_id: UUID
