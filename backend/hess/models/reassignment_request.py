"""Organization reassignment request model."""
from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid

from hess.models.base import BaseModel, JSONType, enum_type
from hess.models.enums import RequestStatus


class ReassignmentRequest(BaseModel):
    """Proposed replacement of an organization's primary contact.

    ``new_organization_data`` is the full field set of the replacement
    organization row. On approval ``organization_id`` is repointed at the new
    organization before the old one is deleted.
    """

    __tablename__ = "organization_reassignment_requests"

    organization_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id"),
        nullable=False,
        index=True
    )
    new_contact_email = Column(String(255), nullable=False)
    new_organization_data = Column(JSONType, nullable=False, default=dict)
    user_registration_data = Column(JSONType, nullable=True)
    status = Column(
        enum_type(RequestStatus, "request_status"),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True
    )
    approved_by = Column(Uuid(as_uuid=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ReassignmentRequest(id={self.id}, organization_id={self.organization_id}, "
            f"status={self.status})>"
        )
