"""Pending registration model."""
from sqlalchemy import Column, DateTime, Integer, String, Text, Uuid

from hess.models.base import BaseModel, enum_type
from hess.models.enums import ApprovalStatus, PriorityLevel
from hess.models.mixins import ContactFieldsMixin, SystemFieldsMixin


class PendingRegistration(ContactFieldsMixin, SystemFieldsMixin, BaseModel):
    """Self-submitted membership application awaiting admin review.

    ``password_hash`` is the bcrypt hash of the password the registrant chose
    on the public form; approval installs it on the new identity as-is so the
    member can log in with it.
    """

    __tablename__ = "pending_registrations"

    email = Column(
        String(255),
        nullable=False,
        index=True
    )
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    organization_name = Column(
        String(255),
        nullable=False,
        index=True
    )
    state_association = Column(String(255), nullable=True)
    address = Column(String(255), nullable=True)
    zip = Column(String(20), nullable=True)

    approval_status = Column(
        enum_type(ApprovalStatus, "approval_status"),
        nullable=False,
        default=ApprovalStatus.PENDING,
        index=True
    )
    priority_level = Column(
        enum_type(PriorityLevel, "priority_level"),
        nullable=False,
        default=PriorityLevel.NORMAL
    )
    rejection_reason = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)
    approved_by = Column(Uuid(as_uuid=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    resubmission_count = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<PendingRegistration(id={self.id}, email={self.email}, "
            f"status={self.approval_status})>"
        )
