"""
Structure health summary.

Read-only diagnostics over structure_jobs and snapshot_state: queue depth,
stuck jobs, snapshot freshness. Never returns payloads, never mutates.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from structure_engine.config import DEFAULT_CONFIG
from structure_engine.jobs.types import JobStatus
from structure_engine.observability import metrics
from structure_engine.snapshot.load import LATEST_ORDER_BY
from structure_engine.store import StructureStore
from structure_engine.timeutil import format_iso, parse_iso, utc_now

logger = logging.getLogger(__name__)

PROJECT_SAMPLE_SIZE = 10


@dataclass
class JobsHealth:
    queued: int = 0
    running: int = 0
    failed: int = 0
    stuck: int = 0
    oldest_queued_age_seconds: Optional[int] = None
    oldest_running_age_seconds: Optional[int] = None
    stuck_threshold_seconds: int = DEFAULT_CONFIG.stuck_after_seconds


@dataclass
class SnapshotFreshness:
    last_generated_at: Optional[str] = None
    last_state_hash: Optional[str] = None
    project_id: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"last_generated_at": self.last_generated_at, "last_state_hash": self.last_state_hash}
        if self.project_id is not None:
            data["project_id"] = self.project_id
        return data


@dataclass
class StructureHealth:
    now: str
    ok: bool
    jobs: JobsHealth
    global_snapshot: SnapshotFreshness
    projects_sample: list[SnapshotFreshness] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "now": self.now,
            "ok": self.ok,
            "jobs": {
                "queued": self.jobs.queued,
                "running": self.jobs.running,
                "failed": self.jobs.failed,
                "stuck": self.jobs.stuck,
                "oldest_queued_age_seconds": self.jobs.oldest_queued_age_seconds,
                "oldest_running_age_seconds": self.jobs.oldest_running_age_seconds,
                "stuck_threshold_seconds": self.jobs.stuck_threshold_seconds,
            },
            "snapshots": {
                "global": self.global_snapshot.to_dict(),
                "projects_sample": [s.to_dict() for s in self.projects_sample],
            },
            "warnings": self.warnings,
        }


def _age_seconds(now: datetime, iso: str) -> int:
    return max(0, int((now - parse_iso(iso)).total_seconds()))


def structure_health_summary(
    store: StructureStore,
    now: Optional[datetime] = None,
    stuck_threshold_seconds: int = DEFAULT_CONFIG.stuck_after_seconds,
) -> StructureHealth:
    now = now or utc_now()
    jobs = JobsHealth(stuck_threshold_seconds=stuck_threshold_seconds)
    warnings: list[str] = []

    with store.connection() as conn:
        counts = dict(
            conn.execute(
                "SELECT status, COUNT(*) FROM structure_jobs GROUP BY status"
            ).fetchall()
        )
        jobs.queued = counts.get(JobStatus.QUEUED, 0)
        jobs.running = counts.get(JobStatus.RUNNING, 0)
        jobs.failed = counts.get(JobStatus.FAILED, 0)

        oldest_queued = conn.execute(
            "SELECT MIN(queued_at) FROM structure_jobs WHERE status = ?", (JobStatus.QUEUED,)
        ).fetchone()[0]
        if oldest_queued:
            jobs.oldest_queued_age_seconds = _age_seconds(now, oldest_queued)

        running_started = [
            row["started_at"]
            for row in conn.execute(
                "SELECT started_at FROM structure_jobs WHERE status = ? AND started_at IS NOT NULL",
                (JobStatus.RUNNING,),
            ).fetchall()
        ]
        if running_started:
            ages = [_age_seconds(now, started) for started in running_started]
            jobs.oldest_running_age_seconds = max(ages)
            jobs.stuck = sum(1 for age in ages if age > stuck_threshold_seconds)

        latest_global = conn.execute(
            f"""
            SELECT state_hash, generated_at, created_at FROM snapshot_state
            WHERE scope = 'global'
            ORDER BY {LATEST_ORDER_BY}
            LIMIT 1
            """  # noqa: S608 - constant ordering clause
        ).fetchone()

        project_rows = conn.execute(
            f"""
            SELECT project_id, state_hash, generated_at, created_at FROM snapshot_state
            WHERE scope = 'project' AND project_id IS NOT NULL
            ORDER BY {LATEST_ORDER_BY}
            LIMIT ?
            """,  # noqa: S608 - constant ordering clause
            (PROJECT_SAMPLE_SIZE,),
        ).fetchall()

    if jobs.stuck > 0:
        warnings.append("stuck_jobs_detected")
    metrics.jobs_stuck.set(jobs.stuck)

    if latest_global is None:
        warnings.append("no_global_snapshots")
        global_snapshot = SnapshotFreshness()
    else:
        global_snapshot = SnapshotFreshness(
            last_generated_at=latest_global["generated_at"] or latest_global["created_at"],
            last_state_hash=latest_global["state_hash"],
        )

    projects_sample = [
        SnapshotFreshness(
            project_id=row["project_id"],
            last_generated_at=row["generated_at"] or row["created_at"],
            last_state_hash=row["state_hash"],
        )
        for row in project_rows
    ]

    return StructureHealth(
        now=format_iso(now),
        ok=jobs.stuck == 0,
        jobs=jobs,
        global_snapshot=global_snapshot,
        projects_sample=projects_sample,
        warnings=warnings,
    )
