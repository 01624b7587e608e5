"""Workflow ledger model."""
from sqlalchemy import Column, DateTime, String, Uuid

from hess.models.base import BaseModel, JSONType, enum_type
from hess.models.enums import WorkflowStatus


class WorkflowRun(BaseModel):
    """One approval or reassignment orchestrator run.

    ``steps`` is the ordered list of ``{"step", "outcome", "detail"}`` entries.
    Runs with failed best-effort steps are ``completed_with_warnings`` and
    are what the repair tooling works from.
    """

    __tablename__ = "workflow_runs"

    workflow = Column(String(64), nullable=False, index=True)
    subject_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    actor_id = Column(Uuid(as_uuid=True), nullable=True)
    status = Column(
        enum_type(WorkflowStatus, "workflow_status"),
        nullable=False,
        default=WorkflowStatus.COMPLETED,
        index=True
    )
    steps = Column(JSONType, nullable=False, default=list)
    result = Column(JSONType, nullable=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<WorkflowRun(id={self.id}, workflow={self.workflow}, status={self.status})>"
