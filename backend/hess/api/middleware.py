"""Middleware for security headers, rate limiting and request logging."""

import logging
import time
from datetime import UTC, datetime, timedelta

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from hess.core.config import get_settings
from hess.core.metrics import observe_http_request
from hess.core.request_context import new_request_id, request_id_context
from hess.core.structured_logging import log_json

logger = logging.getLogger(__name__)
settings = get_settings()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add basic security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")

        if settings.environment == "production":
            forwarded_proto = request.headers.get("x-forwarded-proto")
            scheme = forwarded_proto or request.url.scheme
            if scheme == "https":
                response.headers.setdefault(
                    "Strict-Transport-Security",
                    "max-age=63072000; includeSubDomains",
                )

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory rate limiting for the unauthenticated endpoints.

    Rate limits (per client IP, production only):
    - Login: ``rate_limit_login_per_minute``
    - Public registration intake: ``rate_limit_registration_per_hour``
    """

    # Longest window in use; keys idle for longer hold nothing countable
    SWEEP_INTERVAL = timedelta(hours=1)

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self._requests: dict[tuple[str, str], list[datetime]] = {}
        self._last_sweep = datetime.now(UTC)

    def _sweep(self, now: datetime) -> None:
        """Drop keys whose newest request is older than the longest window."""
        cutoff = now - self.SWEEP_INTERVAL
        for key in [k for k, stamps in self._requests.items() if not stamps or stamps[-1] <= cutoff]:
            del self._requests[key]
        self._last_sweep = now

    def _hit(
        self,
        endpoint: str,
        identifier: str,
        window: timedelta,
        limit: int,
        now: datetime | None = None,
    ) -> bool:
        """Record a request; return False if the limit is already reached."""
        now = now or datetime.now(UTC)
        if now - self._last_sweep >= self.SWEEP_INTERVAL:
            self._sweep(now)

        key = (endpoint, identifier)
        cutoff = now - window
        recent = [ts for ts in self._requests.get(key, []) if ts > cutoff]
        if len(recent) >= limit:
            self._requests[key] = recent
            return False
        recent.append(now)
        self._requests[key] = recent
        return True

    async def dispatch(self, request: Request, call_next):
        if settings.environment != "production":
            return await call_next(request)

        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        if path == "/api/auth/login" and request.method == "POST":
            if not self._hit(
                "login", client_ip, timedelta(minutes=1), settings.rate_limit_login_per_minute
            ):
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={"error": "Too many login attempts. Please try again later."},
                )

        elif path == "/api/registrations" and request.method == "POST":
            if not self._hit(
                "registration",
                client_ip,
                timedelta(hours=1),
                settings.rate_limit_registration_per_hour,
            ):
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={"error": "Too many registrations. Please try again later."},
                )

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Request logging middleware with structured logging.

    Logs method, path, status code, duration and client IP as one JSON line
    per request, and propagates ``X-Request-ID``.
    """

    async def dispatch(self, request: Request, call_next):
        incoming_request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
        )
        request_id = None
        if incoming_request_id:
            candidate = incoming_request_id.strip()
            if candidate and len(candidate) <= 128 and "\n" not in candidate and "\r" not in candidate:
                request_id = candidate

        if not request_id:
            request_id = new_request_id()

        request.state.request_id = request_id

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path

        with request_id_context(request_id):
            try:
                response = await call_next(request)
            except Exception as exc:
                duration_ms = (time.perf_counter() - start_time) * 1000
                log_json(
                    logger,
                    logging.ERROR,
                    "request_error",
                    method=method,
                    path=path,
                    status_code=500,
                    duration_ms=round(duration_ms, 2),
                    client_ip=client_ip,
                    error=str(exc),
                    exception=exc.__class__.__name__,
                )
                raise

            response.headers.setdefault("X-Request-ID", request_id)
            duration_ms = (time.perf_counter() - start_time) * 1000

            route_obj = request.scope.get("route")
            route_template = getattr(route_obj, "path", None) if route_obj else None
            if not route_template:
                route_template = "unmatched"

            observe_http_request(
                method=method,
                route=route_template,
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

            if response.status_code >= 500:
                level = logging.ERROR
            elif response.status_code >= 400:
                level = logging.WARNING
            else:
                level = logging.INFO

            log_json(
                logger,
                level,
                "request",
                method=method,
                path=path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
                client_ip=client_ip,
            )

            return response
