"""Organization invitation model."""
from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid

from hess.models.base import BaseModel


class OrganizationInvitation(BaseModel):
    """Invitation for a person to manage an organization's account.

    Tokens are stored hashed, expire after 7 days and are single-use.
    """

    __tablename__ = "organization_invitations"

    organization_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id"),
        nullable=False,
        index=True
    )
    email = Column(String(255), nullable=False)
    token_hash = Column(
        String(255),
        nullable=False,
        unique=True
    )
    invited_by = Column(
        Uuid(as_uuid=True),
        ForeignKey("auth_users.id", ondelete="SET NULL"),
        nullable=True
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<OrganizationInvitation(id={self.id}, email={self.email})>"
