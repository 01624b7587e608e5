"""Custom software entry model."""
from sqlalchemy import Column, ForeignKey, String, Uuid

from hess.models.base import BaseModel, enum_type
from hess.models.enums import RequestStatus


class CustomSoftwareEntry(BaseModel):
    """Free-text "other" answer to a system field, queued for admin review."""

    __tablename__ = "custom_software_entries"

    organization_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id"),
        nullable=False,
        index=True
    )
    system_field = Column(String(100), nullable=False)
    value = Column(String(255), nullable=False)
    status = Column(
        enum_type(RequestStatus, "custom_entry_status"),
        nullable=False,
        default=RequestStatus.PENDING
    )

    def __repr__(self) -> str:
        return f"<CustomSoftwareEntry(id={self.id}, field={self.system_field})>"
