"""
Test configuration - ensures repo root is in sys.path + determinism guards.

This allows tests to import from top-level packages (structure_engine, api, cli).
Every test gets its own STRUCTURE_ENGINE_HOME under tmp_path, and opening the
real home database is a hard failure.
"""

import sqlite3
import sys
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import structure_engine.*, api.*, cli.*
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


# =============================================================================
# DETERMINISM GUARD: Block live database access
# =============================================================================

HOME_DB_ABSOLUTE = Path.home() / ".structure_engine" / "data" / "structure.db"

_original_sqlite_connect = sqlite3.connect


def _guarded_sqlite_connect(database, *args, **kwargs):
    """Intercept sqlite3.connect to block live DB access."""
    db_str = str(database)
    if db_str == str(HOME_DB_ABSOLUTE) or db_str.endswith(".structure_engine/data/structure.db"):
        raise RuntimeError(
            f"DETERMINISM VIOLATION: Test attempted to access live DB at {database}.\n"
            "Tests must use the `store` fixture or tests/fixtures/fixture_db.py."
        )
    return _original_sqlite_connect(database, *args, **kwargs)


@pytest.fixture(autouse=True)
def guard_live_db_access(monkeypatch):
    """Automatically guard all tests against live DB access."""
    monkeypatch.setattr(sqlite3, "connect", _guarded_sqlite_connect)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the engine at a per-test home and drop process-wide singletons."""
    from structure_engine import store as store_module

    home = tmp_path / "home"
    monkeypatch.setenv("STRUCTURE_ENGINE_HOME", str(home))
    monkeypatch.delenv("STRUCTURE_ENGINE_DB", raising=False)
    monkeypatch.delenv("STRUCTURE_ENGINE_CONFIG", raising=False)
    monkeypatch.delenv("STRUCTURE_ENGINE_ENV", raising=False)
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.setattr(store_module, "_store", None)
    return home


# =============================================================================
# FIXTURE DB FOR INTEGRATION TESTS
# =============================================================================


@pytest.fixture
def store(tmp_path):
    """Fresh schema-initialized store in a temp directory."""
    from tests.fixtures.fixture_db import create_fixture_store

    return create_fixture_store(tmp_path / "structure_test.db")
