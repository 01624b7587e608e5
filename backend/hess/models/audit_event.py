"""AuditEvent model."""

from sqlalchemy import Column, String, Uuid

from hess.models.base import BaseModel, JSONType, enum_type
from hess.models.enums import AuditAction


class AuditEvent(BaseModel):
    """Append-only trail of administrative actions.

    Entities are referenced by id without foreign keys: the rows an event
    talks about (organizations, identities) are routinely deleted by
    reassignment and the trail must outlive them.
    """

    __tablename__ = "audit_events"

    organization_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    actor_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    action = Column(
        enum_type(AuditAction, "audit_action"),
        nullable=False,
    )
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(Uuid(as_uuid=True), nullable=False)
    diff_json = Column(JSONType, nullable=True)
    ip_address = Column(String(45), nullable=True)

    def __repr__(self) -> str:
        return f"<AuditEvent(id={self.id}, action={self.action}, entity_type={self.entity_type})>"
