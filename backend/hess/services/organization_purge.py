"""Ordered removal of an organization, its dependent rows and its contact.

Rows that reference the organization are removed first so no foreign key is
ever left pointing at a deleted organization. Every deletion is a best-effort
step of the surrounding workflow: a failing step is rolled back to its
SAVEPOINT, recorded and the remaining steps still run.
"""

from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from hess.models.auth_user import AuthUser
from hess.models.custom_software_entry import CustomSoftwareEntry
from hess.models.invoice import Invoice
from hess.models.organization import Organization
from hess.models.organization_invitation import OrganizationInvitation
from hess.models.organization_profile_edit_request import OrganizationProfileEditRequest
from hess.models.organization_transfer_request import OrganizationTransferRequest
from hess.models.profile import Profile
from hess.models.reassignment_request import ReassignmentRequest
from hess.models.user_role import UserRole
from hess.services.workflow_service import WorkflowRecorder

DEPENDENT_TABLES = (
    ("delete_invoices", Invoice),
    ("delete_invitations", OrganizationInvitation),
    ("delete_custom_software_entries", CustomSoftwareEntry),
    ("delete_profile_edit_requests", OrganizationProfileEditRequest),
    ("delete_transfer_requests", OrganizationTransferRequest),
    ("delete_reassignment_requests", ReassignmentRequest),
)


class OrganizationPurge:
    """Runs the ordered deletion as steps of a workflow recorder."""

    def __init__(self, db: AsyncSession, recorder: WorkflowRecorder):
        self.db = db
        self.recorder = recorder

    async def _delete(self, step: str, stmt) -> bool:
        """Run one delete statement as a best-effort step. Returns True on success."""
        failed_before = len(self.recorder.warnings)
        async with self.recorder.best_effort(step) as entry:
            result = await self.db.execute(stmt.execution_options(synchronize_session=False))
            entry["detail"] = {"rows": result.rowcount or 0}
        return len(self.recorder.warnings) == failed_before

    async def run(
        self,
        organization_id: UUID,
        contact: Profile | None,
        keep_profile_id: UUID | None = None,
    ) -> bool:
        """Delete the organization and, unless it is kept, its contact identity.

        Args:
            organization_id: Organization to remove
            contact: Its primary contact profile, if any
            keep_profile_id: Profile that must survive (the incoming contact
                when it is the same person as the outgoing one)

        Returns:
            True if the organization row itself was removed
        """
        for step, model in DEPENDENT_TABLES:
            await self._delete(step, delete(model).where(model.organization_id == organization_id))

        removed = await self._delete(
            "delete_organization",
            delete(Organization).where(Organization.id == organization_id),
        )

        if contact is None:
            self.recorder.skip("delete_contact_identity", "organization had no contact")
            return removed
        if keep_profile_id is not None and contact.id == keep_profile_id:
            self.recorder.skip("delete_contact_identity", "new contact is the previous contact")
            return removed

        user_id = contact.user_id
        await self._delete("delete_user_roles", delete(UserRole).where(UserRole.user_id == user_id))
        await self._delete("delete_identity", delete(AuthUser).where(AuthUser.id == user_id))
        await self._delete("delete_profile", delete(Profile).where(Profile.id == contact.id))
        return removed
