"""
Stuck-job sweep.

A worker that dies mid-cycle leaves its job in 'running' forever. The sweep
fails running jobs whose started_at is older than the stuck threshold; the
running -> failed edge is the only legal exit, so swept jobs are never
re-queued. A later dispatch enqueues fresh work.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from structure_engine.config import DEFAULT_CONFIG
from structure_engine.jobs.types import JobStatus
from structure_engine.observability import metrics
from structure_engine.store import StructureStore
from structure_engine.timeutil import format_iso, utc_now

logger = logging.getLogger(__name__)


def stuck_error_message(stuck_after_seconds: int) -> str:
    return f"Job exceeded stuck threshold ({stuck_after_seconds}s) while running; failed by sweep"


def sweep_stuck_jobs(
    store: StructureStore,
    stuck_after_seconds: int = DEFAULT_CONFIG.stuck_after_seconds,
    now: Optional[datetime] = None,
) -> list[str]:
    """Fail running jobs older than the threshold. Returns the swept job ids."""
    now = now or utc_now()
    cutoff = format_iso(now - timedelta(seconds=stuck_after_seconds))

    with store.connection(immediate=True) as conn:
        rows = conn.execute(
            """
            SELECT id FROM structure_jobs
            WHERE status = ? AND started_at IS NOT NULL AND started_at < ?
            ORDER BY started_at
            """,
            (JobStatus.RUNNING, cutoff),
        ).fetchall()
        job_ids = [row["id"] for row in rows]

        if job_ids:
            conn.executemany(
                """
                UPDATE structure_jobs SET status = ?, finished_at = ?, error = ?
                WHERE id = ? AND status = ?
                """,
                [
                    (
                        JobStatus.FAILED,
                        format_iso(now),
                        stuck_error_message(stuck_after_seconds),
                        job_id,
                        JobStatus.RUNNING,
                    )
                    for job_id in job_ids
                ],
            )

    if job_ids:
        metrics.jobs_swept.inc(len(job_ids))
        logger.warning(
            f"Swept {len(job_ids)} stuck structure job(s)",
            extra={"job_ids": job_ids, "stuck_after_seconds": stuck_after_seconds},
        )
    return job_ids
