"""Small structured logging helper.

Workflow and request events are logged as single JSON lines so partial
failures of the approval pipeline can be picked out of any log collector.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from hess.core.request_context import get_actor_id, get_request_id


def log_json(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """Emit a single JSON log line with correlation and actor IDs when set."""

    payload: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "event": event,
    }
    request_id = get_request_id()
    if request_id:
        payload["request_id"] = request_id
    actor_id = get_actor_id()
    if actor_id:
        payload["actor_id"] = actor_id

    payload.update(fields)
    logger.log(level, json.dumps(payload, default=str))


def configure_logging(level: int = logging.INFO) -> None:
    """Install a plain message formatter on the root logger (JSON lines pass through)."""

    root = logging.getLogger()
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(level)
