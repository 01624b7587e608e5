"""Member registration update model."""
from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid

from hess.models.base import BaseModel, JSONType, enum_type
from hess.models.enums import RequestStatus


class MemberRegistrationUpdate(BaseModel):
    """Existing member's resubmitted registration awaiting review.

    Approving a new registration for the same email resolves these so the
    same person is not approved twice.
    """

    __tablename__ = "member_registration_updates"

    submitted_email = Column(String(255), nullable=False, index=True)
    submission_type = Column(String(50), nullable=False, default="member_update")
    existing_organization_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True
    )
    existing_organization_name = Column(String(255), nullable=True)
    registration_data = Column(JSONType, nullable=False, default=dict)
    organization_data = Column(JSONType, nullable=False, default=dict)
    status = Column(
        enum_type(RequestStatus, "member_update_status"),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True
    )
    reviewed_by = Column(
        Uuid(as_uuid=True),
        ForeignKey("auth_users.id", ondelete="SET NULL"),
        nullable=True
    )
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    admin_notes = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<MemberRegistrationUpdate(id={self.id}, status={self.status})>"
