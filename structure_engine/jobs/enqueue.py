"""
Enqueue structure jobs with debouncing.

The debounce query and the insert share one BEGIN IMMEDIATE transaction, so
two writers cannot both pass the check before either inserts. A debounced
request is a normal outcome (EnqueueResult.debounced), not an exception.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from structure_engine.config import DEFAULT_CONFIG, StructureConfig
from structure_engine.jobs.dedupe import find_inflight_job
from structure_engine.jobs.types import JobStatus, JobType, StructureJobPayload
from structure_engine.observability import metrics
from structure_engine.store import StructureStore
from structure_engine.timeutil import format_iso, utc_now

logger = logging.getLogger(__name__)


@dataclass
class EnqueueResult:
    debounce_key: str
    job_id: Optional[str]  # new job, or the in-flight job that absorbed the request
    debounced: bool = False

    @property
    def status(self) -> str:
        return "debounced" if self.debounced else "queued"

    def to_dict(self) -> dict:
        return {"status": self.status, "job_id": self.job_id, "debounce_key": self.debounce_key}


def generate_debounce_key(scope: str, reason: str) -> str:
    return f"{scope}:{reason}"


def enqueue_structure_job(
    store: StructureStore,
    payload: StructureJobPayload,
    now: Optional[datetime] = None,
    config: StructureConfig = DEFAULT_CONFIG,
) -> EnqueueResult:
    """
    Insert a queued recompute_structure job unless one is already in flight.

    debounce_key defaults to "<scope>:<reason>". Storage errors propagate.
    """
    now = now or utc_now()
    debounce_key = payload.debounce_key or generate_debounce_key(payload.scope, payload.reason)
    payload.debounce_key = debounce_key

    with store.connection(immediate=True) as conn:
        existing = find_inflight_job(
            conn, payload.user_id, debounce_key, config.debounce_window_seconds, now
        )
        if existing:
            metrics.jobs_debounced.inc()
            logger.debug(
                "Structure job debounced",
                extra={"user_id": payload.user_id, "debounce_key": debounce_key, "job_id": existing},
            )
            return EnqueueResult(debounce_key=debounce_key, job_id=existing, debounced=True)

        job_id = f"job_{uuid.uuid4().hex[:16]}"
        conn.execute(
            """
            INSERT INTO structure_jobs (
                id, user_id, scope, type, status, payload, debounce_key, queued_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                job_id,
                payload.user_id,
                str(payload.scope),
                str(JobType.RECOMPUTE_STRUCTURE),
                str(JobStatus.QUEUED),
                json.dumps(payload.to_dict(), sort_keys=True),
                debounce_key,
                format_iso(now),
            ),
        )

    metrics.jobs_enqueued.inc()
    logger.info(
        "Structure job queued",
        extra={"job_id": job_id, "user_id": payload.user_id, "reason": str(payload.reason)},
    )
    return EnqueueResult(debounce_key=debounce_key, job_id=job_id)
