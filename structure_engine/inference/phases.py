"""
Phase inference - finer-grained segments inside one Arc.

Same gap algorithm as arcs with tighter thresholds (7-day gap, 21-day
active window), keyed by sha256(user_id:arc_id:day_bucket(start_at)).

Status vocabulary differs between payload and storage:
- payload / internal: active | compressed (consistent with arcs)
- phase.status column: active | dormant
"""

import hashlib
import logging
import sqlite3
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from structure_engine.config import DEFAULT_CONFIG, StructureConfig
from structure_engine.hashing.bucket import bucket_timestamp, day_bucket
from structure_engine.inference.segment import RecencyStatus, compute_recency_status, segment_by_gap
from structure_engine.signals.types import StructuralSignal

logger = logging.getLogger(__name__)

PHASE_GAP_DAYS = DEFAULT_CONFIG.phase_gap_days
PHASE_ACTIVE_WINDOW_DAYS = DEFAULT_CONFIG.phase_active_window_days

_TO_STORAGE = {
    RecencyStatus.ACTIVE: "active",
    RecencyStatus.COMPRESSED: "dormant",
}
_FROM_STORAGE = {stored: status for status, stored in _TO_STORAGE.items()}


@dataclass
class PhaseSegment:
    phase_key: str
    arc_id: str
    start_at: str
    end_at: str
    last_signal_at: str
    project_ids: list[str] = field(default_factory=list)
    decision_count: int = 0
    result_count: int = 0


@dataclass
class PhaseState:
    """Phase part of the structural payload."""

    active_phase_ids: list[str] = field(default_factory=list)
    phase_statuses: dict[str, str] = field(default_factory=dict)
    phase_last_signal_buckets: dict[str, str] = field(default_factory=dict)


def generate_phase_key(user_id: str, arc_id: str, start_at: str) -> str:
    return hashlib.sha256(f"{user_id}:{arc_id}:{day_bucket(start_at)}".encode()).hexdigest()


def to_phase_storage_status(status: str) -> str:
    """Map internal active|compressed to the stored active|dormant."""
    try:
        return _TO_STORAGE[RecencyStatus(status)]
    except ValueError:
        raise ValueError(f"unknown phase status: {status!r}") from None


def from_phase_storage_status(stored: str) -> RecencyStatus:
    """Map stored active|dormant back to internal active|compressed."""
    if stored not in _FROM_STORAGE:
        raise ValueError(f"unknown stored phase status: {stored!r}")
    return _FROM_STORAGE[stored]


def segment_arc_into_phases(
    arc_id: str,
    user_id: str,
    signals: Sequence[StructuralSignal],
    gap_days: float = PHASE_GAP_DAYS,
) -> list[PhaseSegment]:
    """Segment one arc's sorted signals into phases."""
    return [
        PhaseSegment(
            phase_key=generate_phase_key(user_id, arc_id, segment.start_at),
            arc_id=arc_id,
            start_at=segment.start_at,
            end_at=segment.end_at,
            last_signal_at=segment.last_signal_at,
            project_ids=segment.project_ids,
            decision_count=segment.decision_count,
            result_count=segment.result_count,
        )
        for segment in segment_by_gap(signals, gap_days)
    ]


def compute_phase_status(
    last_signal_at: str, now_iso: str, window_days: float = PHASE_ACTIVE_WINDOW_DAYS
) -> RecencyStatus:
    return compute_recency_status(last_signal_at, now_iso, window_days)


def upsert_phase(
    conn: sqlite3.Connection,
    segment: PhaseSegment,
    status: str,
    now_iso: str,
) -> str:
    """
    Idempotently persist one phase, keyed by (arc_id, stable_key).

    phase_index is max(existing)+1 for the arc on first insert and is never
    changed by later updates. summary is never touched.
    """
    conn.execute(
        """
        INSERT INTO phase (
            id, arc_id, phase_index, status, started_at, last_signal_at,
            stable_key, created_at, updated_at
        )
        VALUES (
            ?, ?, (SELECT COALESCE(MAX(phase_index) + 1, 0) FROM phase WHERE arc_id = ?),
            ?, ?, ?, ?, ?, ?
        )
        ON CONFLICT (arc_id, stable_key) DO UPDATE SET
            status = excluded.status,
            started_at = excluded.started_at,
            last_signal_at = excluded.last_signal_at,
            updated_at = excluded.updated_at
        """,
        (
            f"phase_{uuid.uuid4().hex[:16]}",
            segment.arc_id,
            segment.arc_id,
            to_phase_storage_status(status),
            segment.start_at,
            segment.last_signal_at,
            segment.phase_key,
            now_iso,
            now_iso,
        ),
    )
    row = conn.execute(
        "SELECT id FROM phase WHERE arc_id = ? AND stable_key = ?",
        (segment.arc_id, segment.phase_key),
    ).fetchone()
    return row["id"]


def infer_phases_for_arcs(
    conn: sqlite3.Connection,
    user_id: str,
    arc_signals: Mapping[str, Sequence[StructuralSignal]],
    now_iso: str,
    config: StructureConfig = DEFAULT_CONFIG,
) -> PhaseState:
    """Segment, upsert and summarize the phases of every arc."""
    phase_ids: list[str] = []
    statuses: dict[str, str] = {}
    buckets: dict[str, str] = {}

    for arc_id, signals in arc_signals.items():
        if not signals:
            continue

        for segment in segment_arc_into_phases(arc_id, user_id, signals, config.phase_gap_days):
            status = compute_phase_status(
                segment.last_signal_at, now_iso, config.phase_active_window_days
            )
            phase_id = upsert_phase(conn, segment, status, now_iso)

            phase_ids.append(phase_id)
            # Payload keeps the internal vocabulary, not the stored "dormant"
            statuses[phase_id] = str(status)
            buckets[phase_id] = bucket_timestamp(segment.last_signal_at, "hour")

    ordered = sorted(phase_ids)
    return PhaseState(
        active_phase_ids=[pid for pid in ordered if statuses[pid] == RecencyStatus.ACTIVE],
        phase_statuses={pid: statuses[pid] for pid in ordered},
        phase_last_signal_buckets={pid: buckets[pid] for pid in ordered},
    )


def refresh_untouched_phase_statuses(
    conn: sqlite3.Connection,
    user_id: str,
    touched_phase_ids: Sequence[str],
    now_iso: str,
    window_days: float = PHASE_ACTIVE_WINDOW_DAYS,
) -> int:
    """
    Recompute status for the user's phases this run did not upsert.

    These rows are historical (their start day no longer keys a live
    segment) and stay out of the payload, but status still follows
    last_signal_at. Returns the number of rows changed.
    """
    touched = set(touched_phase_ids)
    rows = conn.execute(
        """
        SELECT phase.id, phase.status, phase.last_signal_at FROM phase
        JOIN arc ON arc.id = phase.arc_id
        WHERE arc.user_id = ?
        """,
        (user_id,),
    ).fetchall()

    updates = []
    for row in rows:
        if row["id"] in touched:
            continue
        stored = to_phase_storage_status(
            compute_phase_status(row["last_signal_at"], now_iso, window_days)
        )
        if stored != row["status"]:
            updates.append((stored, now_iso, row["id"]))

    if updates:
        conn.executemany("UPDATE phase SET status = ?, updated_at = ? WHERE id = ?", updates)
    return len(updates)
