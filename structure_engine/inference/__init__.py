"""Structural inference: gap segmentation, arcs, phases, density."""

from .arcs import (
    ARC_ACTIVE_WINDOW_DAYS,
    ARC_GAP_DAYS,
    ArcScope,
    ArcSegment,
    ArcUpsertResult,
    compute_arc_status,
    generate_segment_key,
    infer_arcs_and_build_state,
    refresh_untouched_arc_statuses,
    segment_signals_into_arcs,
    upsert_arc_and_links,
)
from .density import (
    compute_decision_density_bucket,
    compute_result_density_bucket,
    compute_span_days,
)
from .phases import (
    PHASE_ACTIVE_WINDOW_DAYS,
    PHASE_GAP_DAYS,
    PhaseSegment,
    PhaseState,
    compute_phase_status,
    from_phase_storage_status,
    generate_phase_key,
    infer_phases_for_arcs,
    refresh_untouched_phase_statuses,
    segment_arc_into_phases,
    to_phase_storage_status,
    upsert_phase,
)
from .segment import RecencyStatus, Segment, compute_recency_status, group_signals_by_window, segment_by_gap

__all__ = [
    "ARC_ACTIVE_WINDOW_DAYS",
    "ARC_GAP_DAYS",
    "ArcScope",
    "ArcSegment",
    "ArcUpsertResult",
    "PHASE_ACTIVE_WINDOW_DAYS",
    "PHASE_GAP_DAYS",
    "PhaseSegment",
    "PhaseState",
    "RecencyStatus",
    "Segment",
    "compute_arc_status",
    "compute_decision_density_bucket",
    "compute_phase_status",
    "compute_recency_status",
    "compute_result_density_bucket",
    "compute_span_days",
    "from_phase_storage_status",
    "generate_phase_key",
    "generate_segment_key",
    "group_signals_by_window",
    "infer_arcs_and_build_state",
    "refresh_untouched_arc_statuses",
    "infer_phases_for_arcs",
    "refresh_untouched_phase_statuses",
    "segment_arc_into_phases",
    "segment_by_gap",
    "to_phase_storage_status",
    "upsert_arc_and_links",
    "upsert_phase",
]
