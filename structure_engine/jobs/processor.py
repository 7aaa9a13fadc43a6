"""
Structure job processor.

One job = one structure cycle for a user, end to end:

    collect signals -> sort -> infer arcs/phases (upsert) -> hash
        -> compare with latest snapshot -> [write snapshot + pulses]

Hash gating: when the computed hash equals the latest snapshot's hash the
job still succeeds but nothing is written to snapshot_state or pulse. The
comparison runs inside the write transaction, so concurrent workers that
compute the same hash write one snapshot between them.

Failure: any exception marks the job failed (error truncated) and is
re-raised. ValueErrors from signal collection are re-raised as
MissingThinkingTimeError.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from structure_engine.config import DEFAULT_CONFIG, StructureConfig
from structure_engine.errors import JobNotFoundError, JobStateError, MissingThinkingTimeError
from structure_engine.hashing.compute import compute_state_hash
from structure_engine.inference.arcs import infer_arcs_and_build_state
from structure_engine.jobs.types import JobStatus, StructureJobRow, can_transition, load_job
from structure_engine.observability import RequestContext, job_request_id, metrics, timed
from structure_engine.signals.collector import collect_structural_signals
from structure_engine.signals.sort import sort_signals
from structure_engine.snapshot.load import load_latest_snapshot
from structure_engine.snapshot.pulse import create_minimal_pulses
from structure_engine.snapshot.write import write_snapshot_state
from structure_engine.store import StructureStore
from structure_engine.timeutil import format_iso, utc_now

logger = logging.getLogger(__name__)


@dataclass
class StructureCycleResult:
    user_id: str
    scope: str
    signal_count: int
    state_hash: str
    changed: bool
    snapshot_id: Optional[str] = None
    pulse_types: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "scope": self.scope,
            "signal_count": self.signal_count,
            "state_hash": self.state_hash,
            "changed": self.changed,
            "snapshot_id": self.snapshot_id,
            "pulse_types": self.pulse_types,
        }


def truncate_error(message: str, max_chars: int = DEFAULT_CONFIG.error_max_chars) -> str:
    if len(message) > max_chars:
        return message[: max_chars - 3] + "..."
    return message


@timed(metrics.cycle_duration)
def run_structure_cycle(
    store: StructureStore,
    user_id: str,
    scope: str,
    now: Optional[datetime] = None,
    config: StructureConfig = DEFAULT_CONFIG,
) -> StructureCycleResult:
    """Run one full structure cycle for (user_id, scope)."""
    now_iso = format_iso(now or utc_now())

    with store.connection() as conn:
        try:
            signals = collect_structural_signals(conn, user_id)
        except MissingThinkingTimeError:
            raise
        except ValueError as e:
            raise MissingThinkingTimeError(str(e), context={"user_id": user_id}) from e

    sorted_signals = sort_signals(signals)

    with store.connection(immediate=True) as conn:
        payload = infer_arcs_and_build_state(conn, user_id, sorted_signals, now_iso, config)

    state_hash = compute_state_hash(payload)

    with store.connection(immediate=True) as conn:
        latest = load_latest_snapshot(conn, user_id, scope)
        if latest is not None and latest.state_hash == state_hash:
            logger.info(
                "Structure hash unchanged",
                extra={
                    "user_id": user_id,
                    "signals": len(signals),
                    "state_hash": state_hash[:16],
                },
            )
            return StructureCycleResult(
                user_id=user_id,
                scope=scope,
                signal_count=len(signals),
                state_hash=state_hash,
                changed=False,
            )

        prev_payload = latest.state_payload if latest is not None else None
        snapshot_id = write_snapshot_state(conn, user_id, scope, state_hash, payload, now_iso)
        pulse_types = create_minimal_pulses(
            conn, user_id, scope, prev_payload, payload, state_hash, now_iso
        )

    metrics.snapshots_written.inc()
    metrics.pulses_emitted.inc(len(pulse_types))
    logger.info(
        "Structure snapshot written",
        extra={
            "user_id": user_id,
            "signals": len(signals),
            "state_hash": state_hash[:16],
            "snapshot_id": snapshot_id,
            "pulses": len(pulse_types),
        },
    )
    return StructureCycleResult(
        user_id=user_id,
        scope=scope,
        signal_count=len(signals),
        state_hash=state_hash,
        changed=True,
        snapshot_id=snapshot_id,
        pulse_types=pulse_types,
    )


def _claim_job(store: StructureStore, job_id: str, now: datetime) -> StructureJobRow:
    """queued -> running. Raises JobNotFoundError / JobStateError."""
    with store.connection(immediate=True) as conn:
        job = load_job(conn, job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if not can_transition(job.status, JobStatus.RUNNING):
            raise JobStateError(job_id, JobStatus.QUEUED, job.status)

        cursor = conn.execute(
            """
            UPDATE structure_jobs SET status = ?, started_at = ?
            WHERE id = ? AND status = ?
            """,
            (JobStatus.RUNNING, format_iso(now), job_id, job.status),
        )
        if cursor.rowcount == 0:
            raise JobStateError(job_id, JobStatus.QUEUED, "claimed by another worker")

    job.status = JobStatus.RUNNING
    job.started_at = format_iso(now)
    return job


def _finish_job(
    store: StructureStore, job_id: str, status: JobStatus, error: Optional[str], now: datetime
) -> None:
    """running -> succeeded | failed."""
    if not can_transition(JobStatus.RUNNING, status):
        raise ValueError(f"invalid job transition {JobStatus.RUNNING} -> {status}")

    with store.connection(immediate=True) as conn:
        cursor = conn.execute(
            """
            UPDATE structure_jobs SET status = ?, finished_at = ?, error = ?
            WHERE id = ? AND status = ?
            """,
            (status, format_iso(now), error, job_id, JobStatus.RUNNING),
        )
        updated = cursor.rowcount
    if updated == 0:
        logger.warning(
            "Structure job was no longer running when finishing",
            extra={"job_id": job_id, "target_status": str(status)},
        )


def run_structure_job(
    store: StructureStore,
    job_id: str,
    now: Optional[datetime] = None,
    config: StructureConfig = DEFAULT_CONFIG,
) -> StructureCycleResult:
    """
    Process one queued job.

    Raises JobNotFoundError / JobStateError before any state change, and
    re-raises whatever failed the cycle after recording it on the job.
    """
    job = _claim_job(store, job_id, now or utc_now())

    with RequestContext(request_id=job_request_id(job_id)):
        logger.info("Structure job started", extra={"job_id": job_id, "user_id": job.user_id})
        try:
            result = run_structure_cycle(store, job.user_id, job.scope, now=now, config=config)
        except Exception as e:
            error = truncate_error(str(e) or type(e).__name__, config.error_max_chars)
            _finish_job(store, job_id, JobStatus.FAILED, error, now or utc_now())
            metrics.jobs_failed.inc()
            logger.error(
                f"Structure job failed: {type(e).__name__}",
                extra={"job_id": job_id, "user_id": job.user_id},
                exc_info=not isinstance(e, MissingThinkingTimeError),
            )
            raise

        _finish_job(store, job_id, JobStatus.SUCCEEDED, None, now or utc_now())
        metrics.jobs_succeeded.inc()
        logger.info(
            "Structure job succeeded",
            extra={"job_id": job_id, "changed": result.changed, "pulses": len(result.pulse_types)},
        )
        return result
