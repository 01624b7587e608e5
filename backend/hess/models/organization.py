"""Organization model."""
from sqlalchemy import CheckConstraint, Column, Date, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from hess.models.base import BaseModel, enum_type
from hess.models.enums import MembershipStatus, OrganizationType
from hess.models.mixins import ContactFieldsMixin, SystemFieldsMixin


class Organization(ContactFieldsMixin, SystemFieldsMixin, BaseModel):
    """Member institution of the consortium.

    The name is unique across all organizations. ``contact_person_id`` points
    at the primary contact's profile. A reassignment replaces the whole row
    instead of repointing the contact in place.
    """

    __tablename__ = "organizations"

    name = Column(
        String(255),
        nullable=False,
        unique=True,
        index=True
    )
    contact_person_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    membership_status = Column(
        enum_type(MembershipStatus, "membership_status"),
        nullable=False,
        default=MembershipStatus.PENDING
    )
    membership_start_date = Column(Date, nullable=True)
    membership_end_date = Column(Date, nullable=True)
    annual_fee_amount = Column(Numeric(10, 2), nullable=True)
    organization_type = Column(
        enum_type(OrganizationType, "organization_type"),
        nullable=False,
        default=OrganizationType.MEMBER
    )

    address_line_1 = Column(String(255), nullable=True)
    address_line_2 = Column(String(255), nullable=True)
    zip_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    website = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    # Relationships
    contact_person = relationship(
        "Profile",
        foreign_keys=[contact_person_id],
        lazy="raise"
    )

    __table_args__ = (
        CheckConstraint(
            "LENGTH(name) > 0",
            name="organization_name_not_empty"
        ),
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name})>"
