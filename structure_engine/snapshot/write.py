"""Append-only snapshot writes. Only the normalized payload is ever stored."""

import logging
import sqlite3
import uuid

from structure_engine.config import is_dev_env
from structure_engine.hashing.assertions import dev_assert_deterministic_payload
from structure_engine.hashing.compute import canonical_json
from structure_engine.hashing.normalize import normalize_structural_state
from structure_engine.hashing.types import StructuralStatePayload
from structure_engine.snapshot.load import map_scope_to_snapshot_scope

logger = logging.getLogger(__name__)


def write_snapshot_state(
    conn: sqlite3.Connection,
    user_id: str,
    scope: str,
    state_hash: str,
    payload: StructuralStatePayload,
    now_iso: str,
) -> str:
    """
    Insert a snapshot_state row and return its id.

    Callers write only when state_hash differs from the latest snapshot.
    snapshot_text (editorial) stays NULL.
    """
    normalized = normalize_structural_state(payload)
    dev_assert_deterministic_payload(normalized, "write_snapshot_state")

    snapshot_id = f"snap_{uuid.uuid4().hex[:16]}"
    conn.execute(
        """
        INSERT INTO snapshot_state (
            id, user_id, scope, state_hash, state_payload, generated_at, created_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            snapshot_id,
            user_id,
            map_scope_to_snapshot_scope(scope),
            state_hash,
            canonical_json(normalized),
            now_iso,
            now_iso,
        ),
    )

    if is_dev_env():
        row = conn.execute(
            "SELECT generated_at, created_at FROM snapshot_state WHERE id = ?", (snapshot_id,)
        ).fetchone()
        if not row["generated_at"]:
            logger.warning(
                "Snapshot generated_at missing after insert",
                extra={
                    "snapshot_id": snapshot_id,
                    "reason": "generated_at_null_after_insert",
                    "has_created_at": bool(row["created_at"]),
                },
            )

    return snapshot_id
