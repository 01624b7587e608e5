"""Request/task context utilities.

Carries a correlation ID and the acting admin's identity into logs across API
requests and Celery worker tasks.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from uuid import uuid4

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
_actor_id_var: ContextVar[str | None] = ContextVar("actor_id", default=None)


def get_request_id() -> str | None:
    """Get the current request/task correlation ID (if any)."""

    return _request_id_var.get()


def set_request_id(request_id: str | None) -> Token[str | None]:
    """Set the current request/task correlation ID and return the reset token."""

    return _request_id_var.set(request_id)


def reset_request_id(token: Token[str | None]) -> None:
    """Reset the correlation ID to the previous value using the token."""

    _request_id_var.reset(token)


def new_request_id() -> str:
    """Generate a new correlation ID."""

    return str(uuid4())


def get_actor_id() -> str | None:
    """Get the identity ID of the admin acting in the current context."""

    return _actor_id_var.get()


@contextmanager
def request_id_context(request_id: str | None):
    """Context manager that sets the correlation ID for the duration."""

    token = set_request_id(request_id)
    try:
        yield
    finally:
        reset_request_id(token)


@contextmanager
def actor_context(actor_id: str | None):
    """Context manager that tags log lines with the acting admin."""

    token = _actor_id_var.set(actor_id)
    try:
        yield
    finally:
        _actor_id_var.reset(token)
