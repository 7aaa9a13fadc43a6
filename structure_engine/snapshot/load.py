"""
Snapshot loading.

"Latest" is defined once, here, and shared by the engine and the read-only
consumption loaders: generated_at descending with NULLs last, then
created_at descending, then insertion order (rowid) descending.
"""

import json
import logging
import sqlite3
from dataclasses import dataclass
from typing import Optional

from structure_engine.hashing.types import StructuralStatePayload

logger = logging.getLogger(__name__)

SNAPSHOT_SCOPES = ("global", "project")

LATEST_ORDER_BY = "generated_at IS NULL, generated_at DESC, created_at DESC, rowid DESC"


@dataclass
class LatestSnapshot:
    id: str
    state_hash: str
    state_payload: Optional[StructuralStatePayload]
    generated_at: Optional[str] = None
    created_at: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "state_hash": self.state_hash,
            "state_payload": self.state_payload,
            "generated_at": self.generated_at,
            "created_at": self.created_at,
        }


def map_scope_to_snapshot_scope(scope: str) -> str:
    """Job scope "user" is stored as "global"; snapshot scopes pass through."""
    if scope == "user":
        return "global"
    if scope not in SNAPSHOT_SCOPES:
        raise ValueError(f"unknown structure scope: {scope!r}")
    return scope


def _row_to_snapshot(row: sqlite3.Row) -> LatestSnapshot:
    payload = None
    if row["state_payload"]:
        try:
            payload = json.loads(row["state_payload"])
        except json.JSONDecodeError as e:
            logger.warning(f"Snapshot {row['id']} has unreadable state_payload: {e}")
    return LatestSnapshot(
        id=row["id"],
        state_hash=row["state_hash"],
        state_payload=payload,
        generated_at=row["generated_at"],
        created_at=row["created_at"],
    )


def load_latest_snapshots(
    conn: sqlite3.Connection, user_id: str, scope: str, limit: int = 1
) -> list[LatestSnapshot]:
    """Newest-first snapshots for (user_id, scope); limit is 1 or 2."""
    if limit not in (1, 2):
        raise ValueError(f"limit must be 1 or 2, got {limit}")

    rows = conn.execute(
        f"""
        SELECT id, state_hash, state_payload, generated_at, created_at
        FROM snapshot_state
        WHERE user_id = ? AND scope = ?
        ORDER BY {LATEST_ORDER_BY}
        LIMIT ?
        """,  # noqa: S608 - constant ordering clause
        (user_id, map_scope_to_snapshot_scope(scope), limit),
    ).fetchall()
    return [_row_to_snapshot(row) for row in rows]


def load_latest_snapshot(
    conn: sqlite3.Connection, user_id: str, scope: str
) -> Optional[LatestSnapshot]:
    """Most recent snapshot for (user_id, scope), or None."""
    snapshots = load_latest_snapshots(conn, user_id, scope, limit=1)
    return snapshots[0] if snapshots else None
