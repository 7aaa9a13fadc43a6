"""
Minimal pulses.

A pulse row records THAT structure changed, typed by the closed change
rules. No text is generated; headline stays NULL.
"""

import sqlite3
import uuid
from collections.abc import Mapping
from typing import Optional

from structure_engine.changes import pulse_types_for
from structure_engine.snapshot.load import map_scope_to_snapshot_scope


def create_minimal_pulses(
    conn: sqlite3.Connection,
    user_id: str,
    scope: str,
    prev_payload: Optional[Mapping],
    new_payload: Mapping,
    state_hash: str,
    now_iso: str,
) -> list[str]:
    """Write one pulse per detected change and return the pulse types."""
    pulse_types = pulse_types_for(prev_payload, new_payload)
    if not pulse_types:
        return []

    pulse_scope = map_scope_to_snapshot_scope(scope)
    conn.executemany(
        """
        INSERT INTO pulse (id, user_id, scope, pulse_type, state_hash, occurred_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        [
            (f"pulse_{uuid.uuid4().hex[:16]}", user_id, pulse_scope, pulse_type, state_hash, now_iso)
            for pulse_type in pulse_types
        ],
    )
    return pulse_types
