"""
Structure job types and state machine.

    queued -> running -> succeeded
                      -> failed

Transitions are one-way. A finished job is never re-queued; replacement
work is a new job.
"""

import json
import sqlite3
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Optional


class JobStatus(StrEnum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class JobType(StrEnum):
    RECOMPUTE_STRUCTURE = "recompute_structure"


class RecomputeReason(StrEnum):
    INGESTION = "ingestion"
    DECISION_CHANGE = "decision_change"
    MANUAL = "manual"
    BACKFILL = "backfill"


class StructureScope(StrEnum):
    USER = "user"


ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.QUEUED: frozenset({JobStatus.RUNNING}),
    JobStatus.RUNNING: frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED}),
    JobStatus.SUCCEEDED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

IN_FLIGHT_STATUSES = (JobStatus.QUEUED, JobStatus.RUNNING)


def can_transition(current: str, target: str) -> bool:
    return JobStatus(target) in ALLOWED_TRANSITIONS[JobStatus(current)]


@dataclass
class StructureJobPayload:
    user_id: str
    reason: RecomputeReason
    scope: StructureScope = StructureScope.USER
    debounce_key: Optional[str] = None

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("user_id is required")
        # Raises ValueError for unknown values
        self.reason = RecomputeReason(self.reason)
        self.scope = StructureScope(self.scope)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope": str(self.scope),
            "user_id": self.user_id,
            "reason": str(self.reason),
            "debounce_key": self.debounce_key,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StructureJobPayload":
        return cls(
            user_id=data.get("user_id", ""),
            reason=data.get("reason", ""),
            scope=data.get("scope", StructureScope.USER),
            debounce_key=data.get("debounce_key"),
        )


@dataclass
class StructureJobRow:
    id: str
    user_id: str
    scope: str
    type: str
    status: JobStatus
    payload: dict[str, Any]
    debounce_key: Optional[str]
    queued_at: str
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "StructureJobRow":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            scope=row["scope"],
            type=row["type"],
            status=JobStatus(row["status"]),
            payload=json.loads(row["payload"]) if row["payload"] else {},
            debounce_key=row["debounce_key"],
            queued_at=row["queued_at"],
            started_at=row["started_at"],
            finished_at=row["finished_at"],
            error=row["error"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "scope": self.scope,
            "type": self.type,
            "status": str(self.status),
            "payload": self.payload,
            "debounce_key": self.debounce_key,
            "queued_at": self.queued_at,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "error": self.error,
        }


def load_job(conn: sqlite3.Connection, job_id: str) -> Optional[StructureJobRow]:
    row = conn.execute("SELECT * FROM structure_jobs WHERE id = ?", (job_id,)).fetchone()
    return StructureJobRow.from_row(row) if row else None
