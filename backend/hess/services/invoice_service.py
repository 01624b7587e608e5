"""Membership invoice drafting."""

import secrets
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from hess.models.enums import InvoiceStatus
from hess.models.invoice import Invoice
from hess.models.organization import Organization

PAYMENT_TERMS_DAYS = 30
MINIMUM_PRORATION = Decimal("0.25")


def membership_period_end(start: date) -> date:
    """Memberships renew on June 30th; the first period ends at the next one."""
    renewal = date(start.year, 6, 30)
    if start > renewal:
        renewal = date(start.year + 1, 6, 30)
    return renewal


def prorated_fee(annual_fee: Decimal, start: date) -> Decimal:
    """Annual fee scaled to the days left until renewal, never below 25%."""
    period_end = membership_period_end(start)
    full_period_days = (period_end - date(period_end.year - 1, 6, 30)).days
    remaining_days = (period_end - start).days
    ratio = max(Decimal(remaining_days) / Decimal(full_period_days), MINIMUM_PRORATION)
    amount = min(annual_fee * ratio, annual_fee)
    return amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def generate_invoice_number(today: date) -> str:
    return f"INV-{today.year}-{today.month:02d}-{secrets.token_hex(3).upper()}"


class InvoiceService:
    """Service for organization invoices."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_membership_draft(
        self,
        organization: Organization,
        annual_fee: Decimal,
        today: date | None = None,
    ) -> Invoice:
        """Create a draft invoice for the first (prorated) membership period."""
        today = today or date.today()
        amount = prorated_fee(annual_fee, today)
        invoice = Invoice(
            organization_id=organization.id,
            invoice_number=generate_invoice_number(today),
            amount=amount,
            status=InvoiceStatus.DRAFT,
            invoice_date=today,
            due_date=today + timedelta(days=PAYMENT_TERMS_DAYS),
            period_start_date=today,
            period_end_date=membership_period_end(today),
            notes=f"Prorated membership fee for {organization.name}",
        )
        self.db.add(invoice)
        await self.db.flush()
        return invoice
