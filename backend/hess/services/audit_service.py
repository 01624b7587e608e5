"""Audit service for logging administrative actions."""
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from hess.models.audit_event import AuditEvent
from hess.models.enums import AuditAction


class AuditService:
    """Service for creating audit trail entries."""

    def __init__(self, db: AsyncSession):
        """Initialize audit service.

        Args:
            db: Database session
        """
        self.db = db

    async def log(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: UUID,
        actor_id: Optional[UUID] = None,
        organization_id: Optional[UUID] = None,
        diff_json: Optional[dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> AuditEvent:
        """Create an audit log entry.

        Args:
            action: Action being performed
            entity_type: Type of entity being acted upon
            entity_id: ID of entity being acted upon
            actor_id: Identity performing the action (None for system actions)
            organization_id: Organization the action concerns, if any
            diff_json: Action details (before/after values, reasons)
            ip_address: Client IP address

        Returns:
            Created AuditEvent instance
        """
        audit_event = AuditEvent(
            organization_id=organization_id,
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            diff_json=diff_json,
            ip_address=ip_address,
        )
        self.db.add(audit_event)
        await self.db.flush()
        return audit_event
