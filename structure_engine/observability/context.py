"""
Correlation context for logs (HTTP requests and structure jobs).
"""

import contextvars
import uuid
from typing import Optional

_request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


def get_request_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _request_id_var.get()


def set_request_id(request_id: str) -> contextvars.Token:
    """Set the correlation ID in context. Returns token for reset."""
    return _request_id_var.set(request_id)


def generate_request_id() -> str:
    return f"req-{uuid.uuid4().hex[:16]}"


def job_request_id(job_id: str) -> str:
    """Correlation ID used for every log line of one structure job run."""
    return f"job-{job_id}"


class RequestContext:
    """
    Context manager for correlated operations.

    Usage:
        with RequestContext() as ctx:
            logger.info("Processing")  # carries ctx.request_id

        with RequestContext(request_id=job_request_id(job.id)):
            run_structure_cycle(...)
    """

    def __init__(self, request_id: Optional[str] = None):
        self.request_id = request_id or generate_request_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> "RequestContext":
        self._token = set_request_id(self.request_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _request_id_var.reset(self._token)
