"""
Test fixtures for deterministic testing.

This module provides:
- create_fixture_store: temp SQLite store with the engine schema
- seed helpers for the upstream source tables (conversations, decisions,
  results, projects)
"""

from .fixture_db import (
    BASE_TIME,
    USER_ID,
    add_conversation,
    add_decision,
    add_project,
    add_result,
    at_day,
    create_fixture_store,
    guard_no_live_db,
    seed_decisions_on_days,
    table_rows,
)

__all__ = [
    "BASE_TIME",
    "USER_ID",
    "add_conversation",
    "add_decision",
    "add_project",
    "add_result",
    "at_day",
    "create_fixture_store",
    "guard_no_live_db",
    "seed_decisions_on_days",
    "table_rows",
]
