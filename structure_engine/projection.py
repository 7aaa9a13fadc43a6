"""
Projection layer - internal structure to external vocabulary.

Pure maps, no new computation:
- Direction: how many containers (arcs) and direction units (phases) are
  active, the density level, and when structure last moved
- Shifts: whether and how structure changed between two payloads

The loaders read snapshots with the engine's own "latest" ordering.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import Optional

from structure_engine.changes import shift_types_for
from structure_engine.snapshot.load import load_latest_snapshots
from structure_engine.store import StructureStore


@dataclass
class DirectionProjection:
    active_containers: int
    active_direction_units: int
    density_level: float
    last_structural_change_at: Optional[str]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ShiftsProjection:
    has_shift: bool = False
    shift_types: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def project_direction(payload: Mapping) -> DirectionProjection:
    buckets = payload.get("arc_last_signal_buckets") or {}
    timestamps = [v for v in buckets.values() if isinstance(v, str) and v]
    density = payload.get("decision_density_bucket")

    return DirectionProjection(
        active_containers=len(payload.get("active_arc_ids") or []),
        active_direction_units=len(payload.get("active_phase_ids") or []),
        density_level=density if isinstance(density, (int, float)) and not isinstance(density, bool) else 0,
        last_structural_change_at=max(timestamps) if timestamps else None,
    )


def project_shifts(prev: Optional[Mapping], curr: Mapping) -> ShiftsProjection:
    shift_types = shift_types_for(prev, curr)
    return ShiftsProjection(has_shift=bool(shift_types), shift_types=shift_types)


def load_direction(store: StructureStore, user_id: str, scope: str = "global") -> Optional[DirectionProjection]:
    """Direction for the latest snapshot, or None when none exists."""
    with store.connection() as conn:
        snapshots = load_latest_snapshots(conn, user_id, scope, limit=1)
    if not snapshots or snapshots[0].state_payload is None:
        return None
    return project_direction(snapshots[0].state_payload)


def load_shifts(store: StructureStore, user_id: str, scope: str = "global") -> ShiftsProjection:
    """Shifts between the two latest snapshots (none with fewer than two)."""
    with store.connection() as conn:
        snapshots = load_latest_snapshots(conn, user_id, scope, limit=2)
    if not snapshots or snapshots[0].state_payload is None:
        return ShiftsProjection()
    prev = snapshots[1].state_payload if len(snapshots) > 1 else None
    return project_shifts(prev, snapshots[0].state_payload)
