"""Prometheus metrics endpoint.

Exposes request, workflow-run and email counters from ``hess.core.metrics``.
Scrapers authenticate with ``METRICS_TOKEN`` as a bearer token or in the
``X-Metrics-Token`` header.
"""

from __future__ import annotations

import hmac

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from hess.core.config import Settings, get_settings

router = APIRouter()


def _presented_token(authorization: str | None, x_metrics_token: str | None) -> str | None:
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return x_metrics_token


async def require_metrics_access(
    authorization: str | None = Header(default=None),
    x_metrics_token: str | None = Header(default=None, alias="X-Metrics-Token"),
    settings: Settings = Depends(get_settings),
) -> None:
    """Gate the scrape endpoint.

    Without a configured token the endpoint is open in development and
    reported as missing in production.
    """
    expected = settings.metrics_token
    if not expected:
        if settings.environment == "production":
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
        return

    token = _presented_token(authorization, x_metrics_token)
    if not token or not hmac.compare_digest(token, expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


@router.get(
    "/metrics",
    include_in_schema=False,
    summary="Prometheus metrics",
    dependencies=[Depends(require_metrics_access)],
)
async def metrics_endpoint() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
