"""Profile model."""
from sqlalchemy import Column, ForeignKey, String, Uuid

from hess.models.base import BaseModel
from hess.models.mixins import ContactFieldsMixin, SystemFieldsMixin


class Profile(ContactFieldsMixin, SystemFieldsMixin, BaseModel):
    """Contact attributes of a human identity.

    Exactly one profile per identity provider user. A profile is the primary
    contact of an organization when referenced by
    ``organizations.contact_person_id``; otherwise it is an ordinary member.
    """

    __tablename__ = "profiles"

    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("auth_users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True
    )
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    email = Column(
        String(255),
        nullable=False,
        index=True
    )
    phone = Column(String(50), nullable=True)
    organization = Column(String(255), nullable=True)
    address = Column(String(255), nullable=True)
    zip = Column(String(20), nullable=True)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, email={self.email})>"
