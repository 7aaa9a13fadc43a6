"""
Signal Collector - projects source rows into structural signals.

Every signal is placed at THINKING TIME (the midpoint of the originating
conversation's window), never at ingestion time. A row whose thinking time
cannot be resolved raises MissingThinkingTimeError instead of being dropped:
a silently missing signal would silently change structure.

Sources:
- decisions (active rows): conversation window midpoint
- results (active rows): inherit the parent decision's thinking time and project
- projects (active rows with reactivated_thinking_at): project_reactivated

Output order is not meaningful; callers sort with sort_signals().
"""

import logging
import sqlite3
from typing import Optional

from structure_engine.errors import MissingThinkingTimeError
from structure_engine.signals.types import (
    SignalKind,
    StructuralSignal,
    assert_thinking_time,
    make_signal,
    midpoint,
)
from structure_engine.timeutil import canonical_iso

logger = logging.getLogger(__name__)


def _load_conversation_windows(
    conn: sqlite3.Connection, user_id: str, conversation_ids: set[str]
) -> dict[str, tuple[Optional[str], Optional[str]]]:
    if not conversation_ids:
        return {}

    ids = sorted(conversation_ids)
    placeholders = ",".join("?" for _ in ids)
    rows = conn.execute(
        f"""
        SELECT id, started_at, ended_at FROM conversations
        WHERE user_id = ? AND id IN ({placeholders})
        """,  # noqa: S608 - placeholders only
        [user_id, *ids],
    ).fetchall()
    return {row["id"]: (row["started_at"], row["ended_at"]) for row in rows}


def _decision_thinking_time(
    decision: sqlite3.Row,
    windows: dict[str, tuple[Optional[str], Optional[str]]],
) -> str:
    conversation_id = decision["conversation_id"]
    if not conversation_id:
        raise MissingThinkingTimeError(
            f"decision_id={decision['id']} (no conversation_id)",
            context={"decision_id": decision["id"]},
        )

    window = windows.get(conversation_id)
    if window is None:
        raise MissingThinkingTimeError(
            f"decision_id={decision['id']} conversation_id={conversation_id}",
            context={"decision_id": decision["id"], "conversation_id": conversation_id},
        )

    started_at, ended_at = window
    if not started_at and not ended_at:
        raise MissingThinkingTimeError(
            f"decision_id={decision['id']} conversation_id={conversation_id} has no thinking window",
            context={"decision_id": decision["id"], "conversation_id": conversation_id},
        )
    return midpoint(started_at, ended_at)


def collect_structural_signals(conn: sqlite3.Connection, user_id: str) -> list[StructuralSignal]:
    """Collect decision, result and project_reactivated signals for a user."""
    signals: list[StructuralSignal] = []

    # All of the user's decisions: results may hang off an inactive one
    decisions = conn.execute(
        """
        SELECT id, conversation_id, project_id, is_inactive FROM decisions
        WHERE user_id = ?
        ORDER BY id
        """,
        (user_id,),
    ).fetchall()
    decisions_by_id = {row["id"]: row for row in decisions}

    results = conn.execute(
        """
        SELECT id, decision_id FROM results
        WHERE user_id = ? AND is_inactive = 0
        ORDER BY id
        """,
        (user_id,),
    ).fetchall()

    active_decisions = [d for d in decisions if not d["is_inactive"]]
    needed = {d["conversation_id"] for d in active_decisions if d["conversation_id"]}
    for result in results:
        parent = decisions_by_id.get(result["decision_id"])
        if parent is not None and parent["conversation_id"]:
            needed.add(parent["conversation_id"])
    windows = _load_conversation_windows(conn, user_id, needed)

    # Decisions
    for decision in active_decisions:
        thinking_time = _decision_thinking_time(decision, windows)
        assert_thinking_time(thinking_time, f"decision {decision['id']}")
        signals.append(
            make_signal(
                user_id,
                SignalKind.DECISION,
                thinking_time,
                project_id=decision["project_id"] or None,
                source_id=decision["id"],
            )
        )

    # Results
    for result in results:
        parent = decisions_by_id.get(result["decision_id"]) if result["decision_id"] else None
        if parent is None:
            raise MissingThinkingTimeError(
                f"result_id={result['id']} decision_id={result['decision_id']} (parent decision not found)",
                context={"result_id": result["id"], "decision_id": result["decision_id"]},
            )
        thinking_time = _decision_thinking_time(parent, windows)
        assert_thinking_time(thinking_time, f"result {result['id']}")
        signals.append(
            make_signal(
                user_id,
                SignalKind.RESULT,
                thinking_time,
                project_id=parent["project_id"] or None,
                source_id=result["id"],
            )
        )

    # Project reactivations
    projects = conn.execute(
        """
        SELECT id, reactivated_thinking_at FROM projects
        WHERE user_id = ? AND is_inactive = 0 AND reactivated_thinking_at IS NOT NULL
        ORDER BY id
        """,
        (user_id,),
    ).fetchall()
    for project in projects:
        thinking_time = canonical_iso(project["reactivated_thinking_at"])
        assert_thinking_time(thinking_time, f"project {project['id']}")
        signals.append(
            make_signal(
                user_id,
                SignalKind.PROJECT_REACTIVATED,
                thinking_time,
                project_id=project["id"],
                source_id=project["id"],
            )
        )

    logger.debug(
        "Collected structural signals",
        extra={
            "user_id": user_id,
            "decisions": len(active_decisions),
            "results": len(results),
            "reactivations": len(projects),
        },
    )
    return signals
