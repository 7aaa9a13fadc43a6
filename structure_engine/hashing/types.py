"""
Structural state payload.

Structure only: no editorial text, no UI metadata, no ingestion time.
Timestamps are hour-bucketed and numbers are rounded before hashing.
"""

from typing import TypedDict


class StructuralStatePayload(TypedDict):
    active_arc_ids: list[str]
    arc_statuses: dict[str, str]
    arc_last_signal_buckets: dict[str, str]  # bucketed timestamps, not raw

    active_phase_ids: list[str]
    phase_statuses: dict[str, str]
    phase_last_signal_buckets: dict[str, str]  # bucketed timestamps, not raw

    tension_edges: list[str]  # reserved, always empty for now
    friction_score_buckets: dict[str, float]  # reserved, always empty for now

    decision_density_bucket: float
    result_density_bucket: float

    pulse_types: list[str]


LIST_FIELDS = ("active_arc_ids", "active_phase_ids", "tension_edges", "pulse_types")
STRING_MAP_FIELDS = (
    "arc_statuses",
    "arc_last_signal_buckets",
    "phase_statuses",
    "phase_last_signal_buckets",
)
NUMERIC_MAP_FIELDS = ("friction_score_buckets",)
NUMBER_FIELDS = ("decision_density_bucket", "result_density_bucket")

PAYLOAD_FIELDS = tuple(sorted(LIST_FIELDS + STRING_MAP_FIELDS + NUMERIC_MAP_FIELDS + NUMBER_FIELDS))


def empty_payload() -> StructuralStatePayload:
    return StructuralStatePayload(
        active_arc_ids=[],
        arc_statuses={},
        arc_last_signal_buckets={},
        active_phase_ids=[],
        phase_statuses={},
        phase_last_signal_buckets={},
        tension_edges=[],
        friction_score_buckets={},
        decision_density_bucket=0.0,
        result_density_bucket=0.0,
        pulse_types=[],
    )
