"""Organization profile edit request model."""
from sqlalchemy import Column, ForeignKey, Text, Uuid

from hess.models.base import BaseModel, JSONType, enum_type
from hess.models.enums import RequestStatus


class OrganizationProfileEditRequest(BaseModel):
    """Member-submitted change to an organization's profile awaiting review."""

    __tablename__ = "organization_profile_edit_requests"

    organization_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id"),
        nullable=False,
        index=True
    )
    requested_by = Column(
        Uuid(as_uuid=True),
        ForeignKey("auth_users.id", ondelete="SET NULL"),
        nullable=True
    )
    original_data = Column(JSONType, nullable=True)
    updated_organization_data = Column(JSONType, nullable=False, default=dict)
    status = Column(
        enum_type(RequestStatus, "edit_request_status"),
        nullable=False,
        default=RequestStatus.PENDING
    )
    admin_notes = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<OrganizationProfileEditRequest(id={self.id}, status={self.status})>"
