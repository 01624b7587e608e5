"""Retrying wrapper for outbound calls to the email provider."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

import httpx

from hess.core.metrics import observe_outbound_retry
from hess.core.structured_logging import log_json

logger = logging.getLogger(__name__)

DEFAULT_RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


def retry_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    response: httpx.Response | None = None,
) -> float:
    """Seconds to wait before retrying ``attempt`` (zero-based).

    A numeric ``Retry-After`` from the provider wins over exponential
    backoff with jitter; both are capped at ``max_delay``.
    """
    if response is not None:
        retry_after = response.headers.get("Retry-After", "").strip()
        if retry_after.isdigit():
            return min(max_delay, float(retry_after))

    delay = min(max_delay, base_delay * (2**attempt))
    if delay:
        delay = min(max_delay, delay + random.uniform(0, delay / 2))
    return delay


async def request_with_retries(
    request_fn: Callable[[], Awaitable[httpx.Response]],
    *,
    operation: str = "email",
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 4.0,
    retry_statuses: frozenset[int] | set[int] | None = None,
) -> httpx.Response:
    """Call ``request_fn`` until it yields a final response.

    Transport errors and ``retry_statuses`` are retried up to
    ``max_attempts`` calls; the last response is returned and the last
    transport error re-raised. Every retry is logged as ``http_retry``
    and counted per ``operation``.
    """
    statuses = DEFAULT_RETRY_STATUSES if retry_statuses is None else retry_statuses
    attempts = max(1, max_attempts)

    for attempt in range(attempts - 1):
        try:
            response = await request_fn()
        except httpx.RequestError as exc:
            delay = retry_delay(attempt, base_delay, max_delay)
            reason = type(exc).__name__
            status_code = None
        else:
            if response.status_code not in statuses:
                return response
            delay = retry_delay(attempt, base_delay, max_delay, response)
            reason = str(response.status_code)
            status_code = response.status_code

        observe_outbound_retry(operation=operation, reason=reason)
        log_json(
            logger,
            logging.WARNING,
            "http_retry",
            operation=operation,
            attempt=attempt + 1,
            max_attempts=attempts,
            status_code=status_code,
            reason=reason,
            delay_seconds=round(delay, 3),
        )
        if delay:
            await asyncio.sleep(delay)

    return await request_fn()
