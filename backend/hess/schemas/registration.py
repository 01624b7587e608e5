"""Pydantic schemas for registration intake and admin triage."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from hess.models.enums import ApprovalStatus, PriorityLevel


class RegistrationFields(BaseModel):
    """Self-declared profile and organization attributes."""

    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    organization_name: str = Field(..., min_length=1, max_length=255)
    state_association: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    student_fte: int | None = Field(None, ge=0)
    is_private_nonprofit: bool = False

    primary_contact_title: str | None = None
    secondary_first_name: str | None = None
    secondary_last_name: str | None = None
    secondary_contact_title: str | None = None
    secondary_contact_email: EmailStr | None = None

    student_information_system: str | None = None
    financial_system: str | None = None
    financial_aid: str | None = None
    hcm_hr: str | None = None
    payroll_system: str | None = None
    purchasing_system: str | None = None
    housing_management: str | None = None
    learning_management: str | None = None
    admissions_crm: str | None = None
    alumni_advancement_crm: str | None = None

    primary_office_apple: bool = False
    primary_office_asus: bool = False
    primary_office_dell: bool = False
    primary_office_hp: bool = False
    primary_office_microsoft: bool = False
    primary_office_other: bool = False
    primary_office_other_details: str | None = None
    other_software_comments: str | None = None

    @field_validator("first_name", "last_name", "organization_name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()


class RegistrationCreate(RegistrationFields):
    """Request schema for POST /registrations (public)."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)


class RegistrationSubmitted(BaseModel):
    id: UUID
    approval_status: ApprovalStatus
    message: str = "Registration submitted for review"


class RegistrationResponse(RegistrationFields):
    """Admin view of a registration (never exposes the password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    approval_status: ApprovalStatus
    priority_level: PriorityLevel
    rejection_reason: str | None = None
    admin_notes: str | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    resubmission_count: int = 0
    created_at: datetime


class RejectRegistrationRequest(BaseModel):
    reason: str = Field(..., min_length=1, description="Reason shown to the registrant")


class PriorityUpdateRequest(BaseModel):
    priority_level: PriorityLevel
    admin_notes: str | None = None


class BulkOperationRequest(BaseModel):
    """Request schema for POST /admin/registrations/bulk."""

    operation: str = Field(..., description="approve, reject or priority_update")
    registration_ids: list[UUID] = Field(default_factory=list)
    reason: str | None = None
    priority: str | None = None


class BulkItemResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    success: bool
    organization_id: UUID | None = Field(None, alias="organizationId")
    error: str | None = None


class BulkOperationResponse(BaseModel):
    success: bool
    operation: str
    processed: int
    failed: int
    results: list[BulkItemResult]
    errors: list[dict]
