"""
Observability: structured logging, correlation IDs, metrics.

Usage:
    from structure_engine.observability import RequestContext, job_request_id

    logger = logging.getLogger(__name__)
    with RequestContext(request_id=job_request_id(job_id)):
        logger.info("Structure cycle started", extra={"user_id": user_id})

Metrics:
    from structure_engine.observability import REGISTRY, jobs_succeeded

    jobs_succeeded.inc()
"""

from .context import (
    RequestContext,
    generate_request_id,
    get_request_id,
    job_request_id,
    set_request_id,
)
from .logging import HumanFormatter, JSONFormatter, configure_logging
from .metrics import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    cycle_duration,
    jobs_debounced,
    jobs_enqueued,
    jobs_failed,
    jobs_stuck,
    jobs_succeeded,
    jobs_swept,
    pulses_emitted,
    snapshots_written,
    timed,
)
from .middleware import CorrelationIdMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "JSONFormatter",
    "HumanFormatter",
    # Context
    "RequestContext",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    "job_request_id",
    "CorrelationIdMiddleware",
    # Metrics
    "REGISTRY",
    "Counter",
    "Gauge",
    "Histogram",
    "timed",
    "jobs_enqueued",
    "jobs_debounced",
    "jobs_succeeded",
    "jobs_failed",
    "jobs_swept",
    "jobs_stuck",
    "snapshots_written",
    "pulses_emitted",
    "cycle_duration",
]
