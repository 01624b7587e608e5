"""Identity provider user model."""
from sqlalchemy import Column, DateTime, String

from hess.models.base import BaseModel, JSONType


class AuthUser(BaseModel):
    """Credential record owned by the identity provider.

    One row per login identity. ``user_metadata`` carries the registrant's
    self-declared attributes and is merged, never replaced, on re-approval.
    Emails are stored lower-cased so uniqueness is case-insensitive.
    """

    __tablename__ = "auth_users"

    email = Column(
        String(255),
        nullable=False,
        unique=True,
        index=True
    )
    encrypted_password = Column(
        String(255),
        nullable=True
    )
    user_metadata = Column(
        JSONType,
        nullable=False,
        default=dict
    )
    email_confirmed_at = Column(
        DateTime(timezone=True),
        nullable=True
    )
    last_sign_in_at = Column(
        DateTime(timezone=True),
        nullable=True
    )

    def __repr__(self) -> str:
        return f"<AuthUser(id={self.id}, email={self.email})>"
