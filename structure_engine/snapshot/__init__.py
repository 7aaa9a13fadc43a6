"""Snapshot load/write and minimal pulses."""

from .load import (
    LATEST_ORDER_BY,
    LatestSnapshot,
    load_latest_snapshot,
    load_latest_snapshots,
    map_scope_to_snapshot_scope,
)
from .pulse import create_minimal_pulses
from .write import write_snapshot_state

__all__ = [
    "LATEST_ORDER_BY",
    "LatestSnapshot",
    "create_minimal_pulses",
    "load_latest_snapshot",
    "load_latest_snapshots",
    "map_scope_to_snapshot_scope",
    "write_snapshot_state",
]
