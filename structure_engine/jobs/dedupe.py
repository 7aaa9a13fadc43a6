"""Debounce check for structure jobs."""

import sqlite3
from datetime import datetime, timedelta
from typing import Optional

from structure_engine.jobs.types import IN_FLIGHT_STATUSES
from structure_engine.timeutil import format_iso


def find_inflight_job(
    conn: sqlite3.Connection,
    user_id: str,
    debounce_key: str,
    window_seconds: float,
    now: datetime,
) -> Optional[str]:
    """Id of a queued/running job for user + debounce_key queued inside the window."""
    window_start = format_iso(now - timedelta(seconds=window_seconds))
    placeholders = ",".join("?" for _ in IN_FLIGHT_STATUSES)
    row = conn.execute(
        f"""
        SELECT id FROM structure_jobs
        WHERE user_id = ? AND debounce_key = ?
          AND status IN ({placeholders})
          AND queued_at >= ?
        ORDER BY queued_at DESC
        LIMIT 1
        """,  # noqa: S608 - placeholders only
        (user_id, debounce_key, *IN_FLIGHT_STATUSES, window_start),
    ).fetchone()
    return row["id"] if row else None
