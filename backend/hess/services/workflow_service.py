"""Workflow ledger for the approval and reassignment orchestrators.

Every orchestrator run records the ordered outcome of its steps. Critical
steps either succeed or abort the whole request; best-effort steps run inside
a SAVEPOINT so a failing statement can be rolled back on its own, and their
failures are logged, counted and kept on the run instead of failing it.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hess.core.metrics import observe_step_failure, observe_workflow_run
from hess.core.structured_logging import log_json
from hess.models.enums import StepOutcome, WorkflowStatus
from hess.models.workflow_run import WorkflowRun

logger = logging.getLogger(__name__)

APPROVAL_WORKFLOW = "approve_pending_registration"
REASSIGNMENT_WORKFLOW = "approve_reassignment_request"
ORGANIZATION_DELETE_WORKFLOW = "delete_organization"


class WorkflowRecorder:
    """Collects step outcomes for one orchestrator run."""

    def __init__(
        self,
        db: AsyncSession,
        workflow: str,
        subject_id: UUID,
        actor_id: UUID | None = None,
    ):
        self.db = db
        self.workflow = workflow
        self.subject_id = subject_id
        self.actor_id = actor_id
        self.steps: list[dict[str, Any]] = []

    @property
    def has_warnings(self) -> bool:
        return any(step["outcome"] == StepOutcome.FAILED.value for step in self.steps)

    @property
    def warnings(self) -> list[dict[str, Any]]:
        return [step for step in self.steps if step["outcome"] == StepOutcome.FAILED.value]

    def record(
        self,
        step: str,
        outcome: StepOutcome = StepOutcome.OK,
        detail: Any = None,
    ) -> dict[str, Any]:
        entry = {"step": step, "outcome": outcome.value, "detail": detail}
        self.steps.append(entry)
        log_json(
            logger,
            logging.INFO,
            "workflow_step",
            workflow=self.workflow,
            subject_id=str(self.subject_id),
            step=step,
            outcome=outcome.value,
            detail=detail,
        )
        return entry

    def skip(self, step: str, reason: str) -> dict[str, Any]:
        return self.record(step, StepOutcome.SKIPPED, reason)

    @asynccontextmanager
    async def best_effort(self, step: str) -> AsyncIterator[dict[str, Any]]:
        """Run a step that may fail without failing the workflow.

        Yields the step entry so the body can attach a ``detail``. Any
        exception rolls back the step's SAVEPOINT and is recorded as a
        ``failed`` outcome.
        """
        entry: dict[str, Any] = {"step": step, "outcome": StepOutcome.OK.value, "detail": None}
        try:
            async with self.db.begin_nested():
                yield entry
        except Exception as exc:
            entry["outcome"] = StepOutcome.FAILED.value
            entry["detail"] = f"{type(exc).__name__}: {exc}"
            self.steps.append(entry)
            observe_step_failure(workflow=self.workflow, step=step)
            log_json(
                logger,
                logging.WARNING,
                "workflow_step_failed",
                workflow=self.workflow,
                subject_id=str(self.subject_id),
                step=step,
                error=entry["detail"],
            )
            return

        self.steps.append(entry)
        log_json(
            logger,
            logging.INFO,
            "workflow_step",
            workflow=self.workflow,
            subject_id=str(self.subject_id),
            step=step,
            outcome=entry["outcome"],
            detail=entry["detail"],
        )

    async def finish(self, result: dict[str, Any] | None = None) -> WorkflowRun:
        """Persist the run in the ledger and count it."""
        status = (
            WorkflowStatus.COMPLETED_WITH_WARNINGS
            if self.has_warnings
            else WorkflowStatus.COMPLETED
        )
        run = WorkflowRun(
            workflow=self.workflow,
            subject_id=self.subject_id,
            actor_id=self.actor_id,
            status=status,
            steps=list(self.steps),
            result=result,
            finished_at=datetime.now(UTC),
        )
        self.db.add(run)
        await self.db.flush()

        observe_workflow_run(workflow=self.workflow, status=status.value)
        log_json(
            logger,
            logging.WARNING if self.has_warnings else logging.INFO,
            "workflow_finished",
            workflow=self.workflow,
            subject_id=str(self.subject_id),
            status=status.value,
            warnings=len(self.warnings),
        )
        return run


async def list_workflow_runs(
    db: AsyncSession,
    *,
    workflow: str | None = None,
    warnings_only: bool = False,
    limit: int = 100,
) -> list[WorkflowRun]:
    """Most recent runs first."""
    stmt = select(WorkflowRun)
    if workflow:
        stmt = stmt.where(WorkflowRun.workflow == workflow)
    if warnings_only:
        stmt = stmt.where(WorkflowRun.status == WorkflowStatus.COMPLETED_WITH_WARNINGS)
    stmt = stmt.order_by(WorkflowRun.created_at.desc()).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
