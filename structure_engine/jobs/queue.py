"""
Queue runner shared by the HTTP routes, the cron route and the CLI.

Selects up to `limit` queued jobs oldest-first and runs each through the
processor. One job failing never aborts the batch. Jobs another worker
claimed between selection and claim are skipped: they appear in neither
job_ids nor failed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from structure_engine.config import DEFAULT_CONFIG, StructureConfig
from structure_engine.errors import JobNotFoundError, JobStateError
from structure_engine.jobs.processor import run_structure_job
from structure_engine.jobs.sweep import sweep_stuck_jobs
from structure_engine.jobs.types import JobStatus
from structure_engine.store import StructureStore

logger = logging.getLogger(__name__)


@dataclass
class ProcessQueueResult:
    processed: int = 0
    job_ids: list[str] = field(default_factory=list)
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    swept: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "job_ids": self.job_ids,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "swept": self.swept,
        }


def select_queued_job_ids(store: StructureStore, limit: int) -> list[str]:
    with store.connection() as conn:
        rows = conn.execute(
            """
            SELECT id FROM structure_jobs
            WHERE status = ?
            ORDER BY queued_at ASC, rowid ASC
            LIMIT ?
            """,
            (JobStatus.QUEUED, limit),
        ).fetchall()
    return [row["id"] for row in rows]


def process_structure_job_queue(
    store: StructureStore,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
    config: StructureConfig = DEFAULT_CONFIG,
    sweep: bool = True,
) -> ProcessQueueResult:
    """Sweep stuck jobs (by default), then drain up to `limit` queued jobs."""
    result = ProcessQueueResult()
    if sweep:
        result.swept = sweep_stuck_jobs(store, config.stuck_after_seconds, now=now)

    for job_id in select_queued_job_ids(store, config.clamp_batch_limit(limit)):
        try:
            run_structure_job(store, job_id, now=now, config=config)
        except (JobNotFoundError, JobStateError) as e:
            # Claimed by another worker after selection; not ours to report
            logger.info("Structure job skipped", extra={"job_id": job_id, "reason": str(e)})
            continue
        except Exception as e:
            result.job_ids.append(job_id)
            result.failed.append(job_id)
            logger.error(f"Structure job {job_id} failed: {e}")
            continue
        result.job_ids.append(job_id)
        result.succeeded.append(job_id)

    result.processed = len(result.job_ids)
    logger.info(
        "Structure job queue processed",
        extra={
            "processed": result.processed,
            "succeeded": len(result.succeeded),
            "failed": len(result.failed),
            "swept": len(result.swept),
        },
    )
    return result
