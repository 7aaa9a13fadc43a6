"""
Arc inference.

1. Segment sorted signals into arcs (new arc after a gap > 14 days)
2. Upsert each arc by (user_id, stable_key) and reconcile its project links
3. Infer phases inside each arc
4. Build the StructuralStatePayload (bucketed timestamps, rounded densities)

Arc status is derived from (last_signal_at, now) on every run. A compressed
arc becomes active again when a new signal lands in its window; there is no
separate reactivation step. Rows left behind when an arc is re-keyed stay
out of the payload, but their status (and their phases') is still refreshed.
"""

import hashlib
import logging
import sqlite3
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from structure_engine.config import DEFAULT_CONFIG, StructureConfig
from structure_engine.hashing.bucket import bucket_timestamp, day_bucket
from structure_engine.hashing.types import StructuralStatePayload
from structure_engine.inference.density import (
    compute_decision_density_bucket,
    compute_result_density_bucket,
    compute_span_days,
)
from structure_engine.inference.phases import (
    infer_phases_for_arcs,
    refresh_untouched_phase_statuses,
)
from structure_engine.inference.segment import (
    RecencyStatus,
    compute_recency_status,
    group_signals_by_window,
    segment_by_gap,
)
from structure_engine.signals.types import StructuralSignal

logger = logging.getLogger(__name__)

ARC_GAP_DAYS = DEFAULT_CONFIG.arc_gap_days
ARC_ACTIVE_WINDOW_DAYS = DEFAULT_CONFIG.arc_active_window_days


class ArcScope(StrEnum):
    PERSONAL = "personal"
    PROJECT_SPANNING = "project_spanning"


@dataclass
class ArcSegment:
    segment_key: str  # stable upsert identity
    start_at: str
    end_at: str
    last_signal_at: str
    project_ids: list[str] = field(default_factory=list)
    decision_count: int = 0
    result_count: int = 0

    @property
    def scope(self) -> ArcScope:
        if len(self.project_ids) > 1:
            return ArcScope.PROJECT_SPANNING
        return ArcScope.PERSONAL


@dataclass
class ArcUpsertResult:
    arc_id: str
    links_added: list[str] = field(default_factory=list)
    links_removed: list[str] = field(default_factory=list)


def generate_segment_key(user_id: str, start_at: str) -> str:
    return hashlib.sha256(f"{user_id}:{day_bucket(start_at)}".encode()).hexdigest()


def segment_signals_into_arcs(
    signals: Sequence[StructuralSignal],
    user_id: str,
    gap_days: float = ARC_GAP_DAYS,
) -> list[ArcSegment]:
    """Segment sorted signals into arcs. Empty input gives no arcs."""
    return [
        ArcSegment(
            segment_key=generate_segment_key(user_id, segment.start_at),
            start_at=segment.start_at,
            end_at=segment.end_at,
            last_signal_at=segment.last_signal_at,
            project_ids=segment.project_ids,
            decision_count=segment.decision_count,
            result_count=segment.result_count,
        )
        for segment in segment_by_gap(signals, gap_days)
    ]


def compute_arc_status(
    last_signal_at: str, now_iso: str, window_days: float = ARC_ACTIVE_WINDOW_DAYS
) -> RecencyStatus:
    return compute_recency_status(last_signal_at, now_iso, window_days)


def upsert_arc_and_links(
    conn: sqlite3.Connection,
    user_id: str,
    segment: ArcSegment,
    now_iso: str,
    window_days: float = ARC_ACTIVE_WINDOW_DAYS,
) -> ArcUpsertResult:
    """
    Idempotently persist one arc and reconcile arc_project_link.

    Links are diffed against the segment's project_ids: only additions are
    inserted and only removals deleted, so unchanged links keep their
    last_linked_at. summary is never touched.
    """
    status = compute_arc_status(segment.last_signal_at, now_iso, window_days)

    conn.execute(
        """
        INSERT INTO arc (
            id, user_id, status, scope, last_signal_at, stable_key, created_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT (user_id, stable_key) DO UPDATE SET
            status = excluded.status,
            scope = excluded.scope,
            last_signal_at = excluded.last_signal_at,
            updated_at = excluded.updated_at
        """,
        (
            f"arc_{uuid.uuid4().hex[:16]}",
            user_id,
            str(status),
            str(segment.scope),
            segment.last_signal_at,
            segment.segment_key,
            now_iso,
            now_iso,
        ),
    )
    arc_id = conn.execute(
        "SELECT id FROM arc WHERE user_id = ? AND stable_key = ?",
        (user_id, segment.segment_key),
    ).fetchone()["id"]

    existing = {
        row["project_id"]
        for row in conn.execute(
            "SELECT project_id FROM arc_project_link WHERE arc_id = ?", (arc_id,)
        ).fetchall()
    }
    wanted = set(segment.project_ids)
    to_insert = sorted(wanted - existing)
    to_delete = sorted(existing - wanted)

    if to_insert:
        conn.executemany(
            """
            INSERT OR IGNORE INTO arc_project_link (arc_id, project_id, last_linked_at)
            VALUES (?, ?, ?)
            """,
            [(arc_id, project_id, now_iso) for project_id in to_insert],
        )

    if to_delete:
        placeholders = ",".join("?" for _ in to_delete)
        conn.execute(
            f"DELETE FROM arc_project_link WHERE arc_id = ? AND project_id IN ({placeholders})",  # noqa: S608
            [arc_id, *to_delete],
        )

    return ArcUpsertResult(arc_id=arc_id, links_added=to_insert, links_removed=to_delete)


def refresh_untouched_arc_statuses(
    conn: sqlite3.Connection,
    user_id: str,
    touched_arc_ids: Sequence[str],
    now_iso: str,
    window_days: float = ARC_ACTIVE_WINDOW_DAYS,
) -> int:
    """
    Recompute status for the user's arcs this run did not upsert.

    An arc whose start day moved is re-keyed, leaving the old row behind.
    Old rows stay out of the payload but their status still follows
    last_signal_at. Returns the number of rows changed.
    """
    touched = set(touched_arc_ids)
    rows = conn.execute(
        "SELECT id, status, last_signal_at FROM arc WHERE user_id = ?", (user_id,)
    ).fetchall()

    updates = []
    for row in rows:
        if row["id"] in touched:
            continue
        status = str(compute_arc_status(row["last_signal_at"], now_iso, window_days))
        if status != row["status"]:
            updates.append((status, now_iso, row["id"]))

    if updates:
        conn.executemany("UPDATE arc SET status = ?, updated_at = ? WHERE id = ?", updates)
    return len(updates)


def infer_arcs_and_build_state(
    conn: sqlite3.Connection,
    user_id: str,
    signals: Sequence[StructuralSignal],
    now_iso: str,
    config: StructureConfig = DEFAULT_CONFIG,
) -> StructuralStatePayload:
    """
    Run arc + phase inference for sorted signals and build the payload.

    The payload holds ids, statuses, hour buckets and density buckets only:
    no editorial text and no raw timestamps. pulse_types is left empty here.
    """
    segments = segment_signals_into_arcs(signals, user_id, config.arc_gap_days)
    grouped = group_signals_by_window(signals, segments)

    arc_ids: list[str] = []
    statuses: dict[str, str] = {}
    buckets: dict[str, str] = {}
    arc_signals: dict[str, list[StructuralSignal]] = {}

    for segment, segment_signals in zip(segments, grouped, strict=True):
        result = upsert_arc_and_links(
            conn, user_id, segment, now_iso, config.arc_active_window_days
        )
        arc_id = result.arc_id
        arc_ids.append(arc_id)
        arc_signals[arc_id] = segment_signals
        statuses[arc_id] = str(
            compute_arc_status(segment.last_signal_at, now_iso, config.arc_active_window_days)
        )
        buckets[arc_id] = bucket_timestamp(segment.last_signal_at, "hour")

    phase_state = infer_phases_for_arcs(conn, user_id, arc_signals, now_iso, config)
    stale_arcs = refresh_untouched_arc_statuses(
        conn, user_id, arc_ids, now_iso, config.arc_active_window_days
    )
    stale_phases = refresh_untouched_phase_statuses(
        conn, user_id, list(phase_state.phase_statuses), now_iso, config.phase_active_window_days
    )

    span_days = compute_span_days(segments)
    total_decisions = sum(s.decision_count for s in segments)
    total_results = sum(s.result_count for s in segments)

    ordered = sorted(arc_ids)
    logger.debug(
        "Arcs inferred",
        extra={
            "user_id": user_id,
            "arcs": len(arc_ids),
            "phases": len(phase_state.phase_statuses),
            "stale_arcs_refreshed": stale_arcs,
            "stale_phases_refreshed": stale_phases,
        },
    )

    return StructuralStatePayload(
        active_arc_ids=[aid for aid in ordered if statuses[aid] == RecencyStatus.ACTIVE],
        arc_statuses={aid: statuses[aid] for aid in ordered},
        arc_last_signal_buckets={aid: buckets[aid] for aid in ordered},
        active_phase_ids=phase_state.active_phase_ids,
        phase_statuses=phase_state.phase_statuses,
        phase_last_signal_buckets=phase_state.phase_last_signal_buckets,
        tension_edges=[],
        friction_score_buckets={},
        decision_density_bucket=compute_decision_density_bucket(total_decisions, span_days),
        result_density_bucket=compute_result_density_bucket(total_results, span_days),
        pulse_types=[],
    )
