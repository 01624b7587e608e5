"""SQLAlchemy models."""

from hess.models.audit_event import AuditEvent
from hess.models.auth_user import AuthUser
from hess.models.base import Base, BaseModel
from hess.models.bulk_operation import BulkOperation
from hess.models.custom_software_entry import CustomSoftwareEntry
from hess.models.enums import (
    AppRole,
    ApprovalStatus,
    AuditAction,
    BulkOperationType,
    InvoiceStatus,
    MembershipStatus,
    OrganizationType,
    PriorityLevel,
    RequestStatus,
    StepOutcome,
    WorkflowStatus,
)
from hess.models.invoice import Invoice
from hess.models.member_registration_update import MemberRegistrationUpdate
from hess.models.organization import Organization
from hess.models.organization_invitation import OrganizationInvitation
from hess.models.organization_profile_edit_request import OrganizationProfileEditRequest
from hess.models.organization_transfer_request import OrganizationTransferRequest
from hess.models.pending_registration import PendingRegistration
from hess.models.profile import Profile
from hess.models.reassignment_request import ReassignmentRequest
from hess.models.user_role import UserRole
from hess.models.workflow_run import WorkflowRun

__all__ = [
    "Base",
    "BaseModel",
    "AppRole",
    "ApprovalStatus",
    "AuditAction",
    "BulkOperationType",
    "InvoiceStatus",
    "MembershipStatus",
    "OrganizationType",
    "PriorityLevel",
    "RequestStatus",
    "StepOutcome",
    "WorkflowStatus",
    "AuthUser",
    "Profile",
    "UserRole",
    "Organization",
    "PendingRegistration",
    "MemberRegistrationUpdate",
    "ReassignmentRequest",
    "Invoice",
    "OrganizationInvitation",
    "CustomSoftwareEntry",
    "OrganizationProfileEditRequest",
    "OrganizationTransferRequest",
    "AuditEvent",
    "WorkflowRun",
    "BulkOperation",
]
