"""Invoice model."""
from sqlalchemy import Column, Date, ForeignKey, Numeric, String, Text, Uuid

from hess.models.base import BaseModel, enum_type
from hess.models.enums import InvoiceStatus


class Invoice(BaseModel):
    """Membership invoice issued to an organization."""

    __tablename__ = "invoices"

    organization_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id"),
        nullable=False,
        index=True
    )
    invoice_number = Column(
        String(50),
        nullable=False,
        unique=True
    )
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(
        enum_type(InvoiceStatus, "invoice_status"),
        nullable=False,
        default=InvoiceStatus.DRAFT
    )
    invoice_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    period_start_date = Column(Date, nullable=True)
    period_end_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.invoice_number}, status={self.status})>"
