"""Pydantic schemas for authentication endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    """Request schema for user login.

    Used for POST /auth/login endpoint.
    """

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")


class TokenResponse(BaseModel):
    """Response schema for POST /auth/login."""

    access_token: str = Field(..., description="JWT access token for API authentication")
    token_type: str = Field(default="bearer", description="Token type (always 'bearer')")
    expires_in: int | None = Field(default=None, description="Seconds until access token expires")


class MeResponse(BaseModel):
    """Response schema for GET /me."""

    id: UUID = Field(..., description="Identity unique identifier")
    email: str = Field(..., description="Identity email address")
    roles: list[str] = Field(default_factory=list, description="Granted application roles")
    last_sign_in_at: datetime | None = Field(None, description="Last login timestamp")
    created_at: datetime = Field(..., description="Account creation timestamp")
