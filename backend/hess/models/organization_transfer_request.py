"""Organization primary-contact transfer request model."""
from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid

from hess.models.base import BaseModel, enum_type
from hess.models.enums import RequestStatus


class OrganizationTransferRequest(BaseModel):
    """Contact-initiated hand-over of an organization to another person."""

    __tablename__ = "organization_transfer_requests"

    organization_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id"),
        nullable=False,
        index=True
    )
    current_contact_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True
    )
    new_contact_email = Column(String(255), nullable=False)
    transfer_token = Column(String(255), nullable=True, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(
        enum_type(RequestStatus, "transfer_status"),
        nullable=False,
        default=RequestStatus.PENDING
    )

    def __repr__(self) -> str:
        return f"<OrganizationTransferRequest(id={self.id}, status={self.status})>"
