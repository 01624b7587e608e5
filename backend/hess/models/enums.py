"""Enumerations for membership, workflow and audit state."""

from enum import Enum


class ApprovalStatus(str, Enum):
    """Lifecycle of a self-submitted pending registration."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PriorityLevel(str, Enum):
    """Admin triage priority for pending registrations."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def sort_rank(cls, level: "PriorityLevel") -> int:
        """Rank used to list urgent registrations first (lower sorts first)."""
        ranks = {
            cls.URGENT: 0,
            cls.HIGH: 1,
            cls.NORMAL: 2,
            cls.LOW: 3,
        }
        return ranks.get(level, len(ranks))


class MembershipStatus(str, Enum):
    """Organization membership lifecycle."""

    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class OrganizationType(str, Enum):
    MEMBER = "member"
    SYSTEM = "system"


class RequestStatus(str, Enum):
    """Status shared by reassignment, transfer and edit requests.

    Only pending -> approved and pending -> rejected are valid transitions.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    def can_transition_to(self, target: "RequestStatus") -> bool:
        return self is RequestStatus.PENDING and target is not RequestStatus.PENDING


class AppRole(str, Enum):
    """Application role granted to an identity."""

    ADMIN = "admin"
    MEMBER = "member"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class WorkflowStatus(str, Enum):
    """Final status of an orchestrator run recorded in the workflow ledger."""

    COMPLETED = "completed"
    COMPLETED_WITH_WARNINGS = "completed_with_warnings"


class StepOutcome(str, Enum):
    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


class BulkOperationType(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    PRIORITY_UPDATE = "priority_update"


class AuditAction(str, Enum):
    """Audit action enumeration for tracking administrative actions."""

    # Registration
    REGISTRATION_SUBMIT = "registration.submit"
    REGISTRATION_APPROVE = "registration.approve"
    REGISTRATION_REJECT = "registration.reject"
    REGISTRATION_PRIORITY = "registration.priority_change"

    # Reassignment
    REASSIGNMENT_APPROVE = "reassignment.approve"
    REASSIGNMENT_REJECT = "reassignment.reject"

    # Organization
    ORG_CREATE = "organization.create"
    ORG_DELETE = "organization.delete"

    # Identity
    IDENTITY_CREATE = "identity.create"
    IDENTITY_DELETE = "identity.delete"
    IDENTITY_LOGIN = "identity.login"

    # Repair tooling
    ORPHAN_FIX = "orphan.fix"

    # Bulk
    BULK_OPERATION = "bulk.operation"
