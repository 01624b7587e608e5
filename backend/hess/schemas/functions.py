"""Schemas for the approval and reassignment workflow endpoints.

The wire format of these two endpoints is camelCase.
"""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ApproveRegistrationRequest(BaseModel):
    """Request body for POST /functions/approve-pending-registration."""

    model_config = ConfigDict(populate_by_name=True)

    registration_id: UUID = Field(..., alias="registrationId")
    admin_user_id: UUID = Field(..., alias="adminUserId")
    selected_fee_tier: Decimal | None = Field(
        None,
        alias="selectedFeeTier",
        ge=0,
        description="Annual membership fee; creates a draft prorated invoice",
    )


class ApproveRegistrationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    user_id: UUID = Field(..., alias="userId")
    organization_id: UUID = Field(..., alias="organizationId")


class ApproveReassignmentRequest(BaseModel):
    """Request body for POST /functions/approve-reassignment-request.

    ``adminUserId`` defaults to the authenticated caller.
    """

    model_config = ConfigDict(populate_by_name=True)

    request_id: UUID = Field(..., alias="requestId")
    admin_user_id: UUID | None = Field(None, alias="adminUserId")


class ApproveReassignmentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    new_organization_id: UUID = Field(..., alias="newOrganizationId")
