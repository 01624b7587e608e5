"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

HTTP_REQUESTS_TOTAL = Counter(
    "hess_http_requests_total",
    "Total number of HTTP requests.",
    ["method", "route", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "hess_http_request_duration_seconds",
    "HTTP request duration in seconds.",
    ["method", "route", "status"],
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

WORKFLOW_RUNS_TOTAL = Counter(
    "hess_workflow_runs_total",
    "Approval/reassignment orchestrator runs by final status.",
    ["workflow", "status"],
)

WORKFLOW_STEP_FAILURES_TOTAL = Counter(
    "hess_workflow_step_failures_total",
    "Best-effort workflow steps that failed and were skipped.",
    ["workflow", "step"],
)

EMAILS_SENT_TOTAL = Counter(
    "hess_emails_total",
    "Organization emails by type and delivery outcome.",
    ["type", "outcome"],
)


def observe_http_request(
    *,
    method: str,
    route: str,
    status_code: int,
    duration_ms: float,
) -> None:
    status = str(status_code)
    HTTP_REQUESTS_TOTAL.labels(method=method, route=route, status=status).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(
        method=method, route=route, status=status
    ).observe(duration_ms / 1000.0)


def observe_workflow_run(*, workflow: str, status: str) -> None:
    WORKFLOW_RUNS_TOTAL.labels(workflow=workflow, status=status).inc()


def observe_step_failure(*, workflow: str, step: str) -> None:
    WORKFLOW_STEP_FAILURES_TOTAL.labels(workflow=workflow, step=step).inc()


def observe_email(*, email_type: str, outcome: str) -> None:
    EMAILS_SENT_TOTAL.labels(type=email_type, outcome=outcome).inc()


OUTBOUND_RETRIES_TOTAL = Counter(
    "hess_outbound_retries_total",
    "Retried outbound HTTP calls by operation and reason.",
    ["operation", "reason"],
)


def observe_outbound_retry(*, operation: str, reason: str) -> None:
    OUTBOUND_RETRIES_TOTAL.labels(operation=operation, reason=reason).inc()
