"""Pydantic schemas for reassignment request administration."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from hess.models.enums import RequestStatus


class ReassignmentRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    new_contact_email: str
    new_organization_data: dict[str, Any]
    user_registration_data: dict[str, Any] | None = None
    status: RequestStatus
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime


class RejectReassignmentRequest(BaseModel):
    reason: str | None = None
