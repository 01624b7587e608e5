"""Configuration settings using Pydantic Settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str

    # JWT Configuration
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60
    recovery_token_expire_minutes: int = 24 * 60

    # Security
    bcrypt_rounds: int = 12
    environment: Literal["development", "production"] = "development"
    api_docs_enabled: bool | None = None

    # CORS (workflow endpoints answer preflight with open headers; auth is bearer-only)
    cors_allow_origins: list[str] = ["*"]
    cors_allow_methods: list[str] = ["GET", "POST", "PATCH", "DELETE", "OPTIONS"]
    cors_allow_headers: list[str] = [
        "authorization",
        "x-client-info",
        "apikey",
        "content-type",
        "x-request-id",
        "x-metrics-token",
    ]
    cors_allow_credentials: bool = False

    # Rate limiting (production-only safeguard)
    rate_limit_login_per_minute: int = 10
    rate_limit_registration_per_hour: int = 20

    # Prometheus scrape token; required whenever set, /api/metrics is hidden in production without it
    metrics_token: str | None = None

    @field_validator(
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        "email_welcome_cc",
        mode="before",
    )
    @classmethod
    def _parse_csv_lists(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    # Email (Resend HTTP API)
    resend_api_key: str | None = None
    resend_api_url: str = "https://api.resend.com/emails"
    email_from: str = "HESS Consortium <noreply@hessconsortium.org>"
    email_reply_to: str | None = None
    support_email: str = "support@hessconsortium.org"
    app_url: str = "http://localhost:3000"
    email_welcome_cc: list[str] = []
    email_timeout_seconds: float = 20.0
    email_max_attempts: int = 3

    # Approval / reassignment workflow
    temporary_name_suffix: str = "reassigning"
    rename_max_attempts: int = 3
    rename_retry_delay_seconds: float = 0.2
    bulk_approval_delay_seconds: float = 0.0
    default_country: str = "United States"

    @model_validator(mode="after")
    def _validate_production_settings(self) -> Settings:
        if self.environment != "production":
            return self

        insecure_jwt_secrets = {
            "dev-secret-change-in-production",
            "your-secret-key-change-in-production",
            "change-me",
            "changeme",
        }
        if self.jwt_secret in insecure_jwt_secrets or len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be a strong secret in production")

        if not self.resend_api_key:
            raise ValueError("RESEND_API_KEY must be set in production")

        if self.rename_max_attempts < 1:
            raise ValueError("RENAME_MAX_ATTEMPTS must be at least 1")

        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
