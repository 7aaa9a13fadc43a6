"""Database connection and schema management for the structure engine.

StructureStore is the privileged storage client: it reads every user's
source rows and writes structural state without per-request checks. It is
injected into the job processor and never handed to request-scoped code.
"""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from structure_engine import paths

log = logging.getLogger(__name__)

SCHEMA = """
-- =====================================================================
-- Upstream source tables (owned by ingestion; read-only for the engine)
-- =====================================================================

CREATE TABLE IF NOT EXISTS conversations (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    started_at TEXT,
    ended_at TEXT
);

CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT,
    is_inactive INTEGER NOT NULL DEFAULT 0,
    reactivated_thinking_at TEXT
);

CREATE TABLE IF NOT EXISTS decisions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    conversation_id TEXT,
    project_id TEXT,
    is_inactive INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS results (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    decision_id TEXT,
    is_inactive INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_conversations_user ON conversations(user_id);
CREATE INDEX IF NOT EXISTS idx_decisions_user ON decisions(user_id, is_inactive);
CREATE INDEX IF NOT EXISTS idx_results_user ON results(user_id, is_inactive);
CREATE INDEX IF NOT EXISTS idx_projects_user ON projects(user_id, is_inactive);

-- =====================================================================
-- Structure tables (owned by the engine)
-- =====================================================================

CREATE TABLE IF NOT EXISTS arc (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    status TEXT NOT NULL CHECK (status IN ('active', 'compressed')),
    scope TEXT NOT NULL CHECK (scope IN ('personal', 'project_spanning')),
    last_signal_at TEXT NOT NULL,
    stable_key TEXT NOT NULL,
    summary TEXT,  -- editorial, never written by inference
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (user_id, stable_key)
);

CREATE TABLE IF NOT EXISTS arc_project_link (
    arc_id TEXT NOT NULL REFERENCES arc(id),
    project_id TEXT NOT NULL,
    last_linked_at TEXT NOT NULL,
    PRIMARY KEY (arc_id, project_id)
);

CREATE TABLE IF NOT EXISTS phase (
    id TEXT PRIMARY KEY,
    arc_id TEXT NOT NULL REFERENCES arc(id),
    phase_index INTEGER NOT NULL,
    status TEXT NOT NULL CHECK (status IN ('active', 'dormant')),
    started_at TEXT NOT NULL,
    last_signal_at TEXT NOT NULL,
    stable_key TEXT NOT NULL,
    summary TEXT,  -- editorial, never written by inference
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (arc_id, stable_key)
);

-- Append-only
CREATE TABLE IF NOT EXISTS snapshot_state (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    scope TEXT NOT NULL CHECK (scope IN ('global', 'project')),
    project_id TEXT,
    state_hash TEXT NOT NULL,
    state_payload TEXT NOT NULL,  -- normalized StructuralStatePayload, JSON
    snapshot_text TEXT,  -- editorial, never written by inference
    generated_at TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS pulse (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    scope TEXT NOT NULL CHECK (scope IN ('global', 'project')),
    pulse_type TEXT NOT NULL,
    state_hash TEXT NOT NULL,
    occurred_at TEXT NOT NULL,
    headline TEXT  -- editorial, always NULL from inference
);

CREATE TABLE IF NOT EXISTS structure_jobs (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    scope TEXT NOT NULL,
    type TEXT NOT NULL,
    status TEXT NOT NULL CHECK (status IN ('queued', 'running', 'succeeded', 'failed')),
    payload TEXT NOT NULL,  -- JSON
    debounce_key TEXT,
    queued_at TEXT NOT NULL,
    started_at TEXT,
    finished_at TEXT,
    error TEXT
);

CREATE INDEX IF NOT EXISTS idx_arc_user_status ON arc(user_id, status);
CREATE INDEX IF NOT EXISTS idx_phase_arc ON phase(arc_id, phase_index);
CREATE INDEX IF NOT EXISTS idx_snapshot_user_scope ON snapshot_state(user_id, scope, generated_at);
CREATE INDEX IF NOT EXISTS idx_snapshot_hash ON snapshot_state(user_id, scope, state_hash);
CREATE INDEX IF NOT EXISTS idx_pulse_user ON pulse(user_id, scope, occurred_at);
CREATE INDEX IF NOT EXISTS idx_jobs_debounce ON structure_jobs(user_id, debounce_key, status);
CREATE INDEX IF NOT EXISTS idx_jobs_status ON structure_jobs(status, queued_at);
"""

STRUCTURE_TABLES = [
    "arc",
    "arc_project_link",
    "phase",
    "snapshot_state",
    "pulse",
    "structure_jobs",
]

SOURCE_TABLES = ["conversations", "projects", "decisions", "results"]


class StructureStore:
    """Privileged SQLite client with unchecked read/write scope."""

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = Path(db_path) if db_path else paths.db_path()

    def _connect(self) -> sqlite3.Connection:
        # Autocommit mode; transactions are opened explicitly in connection()
        conn = sqlite3.connect(str(self.db_path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextmanager
    def connection(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """
        Get a connection inside one transaction with auto-commit/rollback.

        immediate=True takes the database write lock up front (BEGIN IMMEDIATE),
        so a read-then-write sequence cannot interleave with another writer.
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            yield conn
            conn.execute("COMMIT")
        except BaseException as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            if isinstance(e, sqlite3.Error):
                log.error(f"Database error: {e}")
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        """Initialize database with schema. Safe to call multiple times."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = self._connect()
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)
        finally:
            conn.close()

        log.info(f"Structure database initialized at {self.db_path}")

    def db_exists(self) -> bool:
        return self.db_path.exists()

    def table_counts(self) -> dict[str, int]:
        """Get row counts for all engine and source tables."""
        if not self.db_exists():
            return {}

        counts = {}
        with self.connection() as conn:
            for table in STRUCTURE_TABLES + SOURCE_TABLES:
                try:
                    # table names come from the fixed lists above
                    count = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]  # noqa: S608
                    counts[table] = count
                except sqlite3.OperationalError:
                    counts[table] = 0
        return counts

    def integrity_check(self) -> tuple[bool, str]:
        """Run SQLite integrity check. Returns (ok, message)."""
        if not self.db_exists():
            return False, "Database does not exist"

        try:
            with self.connection() as conn:
                result = conn.execute("PRAGMA integrity_check").fetchone()[0]
                return result == "ok", result
        except (sqlite3.Error, OSError) as e:
            return False, str(e)


_store: StructureStore | None = None


def get_store() -> StructureStore:
    """Get or create the process-wide store instance (schema applied)."""
    global _store
    if _store is None:
        _store = StructureStore()
        _store.init_db()
    return _store
