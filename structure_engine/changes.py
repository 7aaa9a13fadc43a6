"""
Structural change detection between two payloads.

One closed rule set, used by both the pulse writer and the Shifts
projection:

- ACTIVE_ARCS: the active arc id list changed (order-insensitive)
- DECISION_DENSITY: the decision density bucket changed

There is no first-run change: with no previous payload, nothing changed.
"""

from collections.abc import Mapping
from enum import StrEnum
from typing import Optional


class StructuralChange(StrEnum):
    ACTIVE_ARCS = "active_arcs"
    DECISION_DENSITY = "decision_density"


PULSE_TYPES = {
    StructuralChange.ACTIVE_ARCS: "arc_shift",
    StructuralChange.DECISION_DENSITY: "structural_threshold",
}

SHIFT_TYPES = {
    StructuralChange.ACTIVE_ARCS: "container_shift",
    StructuralChange.DECISION_DENSITY: "direction_intensity_shift",
}


def _same_members(a: list, b: list) -> bool:
    return len(a) == len(b) and sorted(a) == sorted(b)


def detect_structural_changes(
    prev: Optional[Mapping], curr: Mapping
) -> list[StructuralChange]:
    """Changes from prev to curr, in rule order."""
    if not prev:
        return []

    changes = []
    if not _same_members(prev.get("active_arc_ids") or [], curr.get("active_arc_ids") or []):
        changes.append(StructuralChange.ACTIVE_ARCS)
    if prev.get("decision_density_bucket") != curr.get("decision_density_bucket"):
        changes.append(StructuralChange.DECISION_DENSITY)
    return changes


def pulse_types_for(prev: Optional[Mapping], curr: Mapping) -> list[str]:
    return [PULSE_TYPES[change] for change in detect_structural_changes(prev, curr)]


def shift_types_for(prev: Optional[Mapping], curr: Mapping) -> list[str]:
    return [SHIFT_TYPES[change] for change in detect_structural_changes(prev, curr)]
