"""Nightly orphaned profile detection."""

import asyncio
import logging
import time
from typing import Any

from hess.core.database import AsyncSessionLocal
from hess.core.structured_logging import log_json
from hess.services.orphan_service import OrphanService
from hess.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="hess.tasks.orphan_task.detect_orphans")
def detect_orphans() -> dict[str, int]:
    """Report profiles, identities and organizations that lost their counterpart.

    Read-only; repair stays an admin action. Runs nightly via Celery Beat
    (see `hess.tasks.celery_app`).
    """

    started = time.perf_counter()
    log_json(logger, logging.INFO, "orphan_detection_start")

    async def _run() -> dict[str, Any]:
        async with AsyncSessionLocal() as session:
            try:
                return await OrphanService(session).detect()
            finally:
                await session.close()

    try:
        report = asyncio.run(_run())
    except Exception as exc:
        duration_ms = (time.perf_counter() - started) * 1000
        log_json(
            logger,
            logging.ERROR,
            "orphan_detection_error",
            duration_ms=round(duration_ms, 2),
            error=str(exc),
            exception=exc.__class__.__name__,
        )
        raise

    summary = {
        "total_profiles": report["totalProfiles"],
        "orphaned_profiles": len(report["orphanedProfiles"]),
        "identities_without_profile": len(report["identitiesWithoutProfile"]),
        "organizations_without_contact": len(report["organizationsWithoutContact"]),
    }
    duration_ms = (time.perf_counter() - started) * 1000
    level = logging.WARNING if summary["orphaned_profiles"] else logging.INFO
    log_json(
        logger,
        level,
        "orphan_detection_done",
        duration_ms=round(duration_ms, 2),
        **summary,
    )
    return summary
