"""Pydantic schemas for orphaned profile repair."""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class OrphanedProfile(CamelModel):
    profile_id: UUID = Field(..., alias="profileId")
    user_id: UUID = Field(..., alias="userId")
    email: str
    first_name: str | None = Field(None, alias="firstName")
    last_name: str | None = Field(None, alias="lastName")
    organization_id: UUID | None = Field(None, alias="organizationId")
    organization_name: str | None = Field(None, alias="organizationName")
    issue: Literal["no_auth_user", "email_mismatch"]
    auth_email: str | None = Field(None, alias="authEmail")


class IdentityWithoutProfile(CamelModel):
    user_id: UUID = Field(..., alias="userId")
    email: str


class OrganizationWithoutContact(CamelModel):
    organization_id: UUID = Field(..., alias="organizationId")
    name: str


class OrphanDetectionResponse(CamelModel):
    success: bool
    total_profiles: int = Field(..., alias="totalProfiles")
    orphaned_profiles: list[OrphanedProfile] = Field(..., alias="orphanedProfiles")
    identities_without_profile: list[IdentityWithoutProfile] = Field(
        ..., alias="identitiesWithoutProfile"
    )
    organizations_without_contact: list[OrganizationWithoutContact] = Field(
        ..., alias="organizationsWithoutContact"
    )


class OrphanFixRequest(CamelModel):
    profile_ids: list[UUID] = Field(..., alias="profileIds", min_length=1)


class OrphanFixResult(CamelModel):
    profile_id: UUID = Field(..., alias="profileId")
    success: bool
    email: str | None = None
    action: str | None = None
    auth_user_id: UUID | None = Field(None, alias="authUserId")
    note: str | None = None
    error: str | None = None


class OrphanFixResponse(CamelModel):
    success: bool
    results: list[OrphanFixResult]
