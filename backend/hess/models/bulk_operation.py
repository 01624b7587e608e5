"""Bulk registration operation log model."""
from sqlalchemy import Column, Uuid

from hess.models.base import BaseModel, JSONType, enum_type
from hess.models.enums import BulkOperationType


class BulkOperation(BaseModel):
    """Record of one bulk approve/reject/priority run over registrations."""

    __tablename__ = "bulk_operations"

    operation_type = Column(
        enum_type(BulkOperationType, "bulk_operation_type"),
        nullable=False
    )
    performed_by = Column(Uuid(as_uuid=True), nullable=True)
    registration_ids = Column(JSONType, nullable=False, default=list)
    operation_data = Column(JSONType, nullable=True)

    def __repr__(self) -> str:
        return f"<BulkOperation(id={self.id}, type={self.operation_type})>"
