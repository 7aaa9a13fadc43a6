"""
Tests for gap segmentation, recency status and density buckets.

Boundary cases are exact: a gap of precisely gap_days stays merged, one
millisecond more splits; a last signal precisely window_days old is still
active.
"""

from datetime import timedelta

import pytest

from structure_engine.inference import (
    ARC_ACTIVE_WINDOW_DAYS,
    ARC_GAP_DAYS,
    PHASE_GAP_DAYS,
    RecencyStatus,
    compute_arc_status,
    compute_decision_density_bucket,
    compute_phase_status,
    compute_result_density_bucket,
    compute_span_days,
    group_signals_by_window,
    segment_by_gap,
    segment_signals_into_arcs,
)
from structure_engine.inference.arcs import ArcScope, generate_segment_key
from structure_engine.signals import SignalKind, make_signal, sort_signals
from structure_engine.timeutil import format_iso, parse_iso
from tests.fixtures import USER_ID, at_day


def decision(day, project_id=None, source_id=None):
    return make_signal(USER_ID, SignalKind.DECISION, at_day(day), project_id, source_id or f"d{day}")


def result(day, project_id=None):
    return make_signal(USER_ID, SignalKind.RESULT, at_day(day), project_id, f"r{day}")


def shift_ms(iso, ms):
    return format_iso(parse_iso(iso) + timedelta(milliseconds=ms))


# =============================================================================
# GAP SEGMENTATION
# =============================================================================


class TestSegmentByGap:
    def test_empty_input_gives_no_segments(self):
        assert segment_by_gap([], ARC_GAP_DAYS) == []

    def test_single_signal_is_point_segment(self):
        segments = segment_by_gap([decision(0)], ARC_GAP_DAYS)
        assert len(segments) == 1
        assert segments[0].start_at == segments[0].end_at == segments[0].last_signal_at

    def test_gap_of_exactly_threshold_merges(self):
        segments = segment_by_gap([decision(0), decision(14)], ARC_GAP_DAYS)
        assert len(segments) == 1

    def test_gap_just_over_threshold_splits(self):
        later = make_signal(USER_ID, SignalKind.DECISION, shift_ms(at_day(14), 1), source_id="late")
        segments = segment_by_gap([decision(0), later], ARC_GAP_DAYS)
        assert len(segments) == 2
        assert segments[1].start_at == later.occurred_at

    def test_gap_measured_from_previous_signal_not_segment_start(self):
        # 0 -> 10 -> 20 -> 30: every step is 10 days, so one segment spanning 30 days
        segments = segment_by_gap([decision(d) for d in (0, 10, 20, 30)], ARC_GAP_DAYS)
        assert len(segments) == 1
        assert segments[0].start_at == at_day(0)
        assert segments[0].end_at == at_day(30)

    def test_counts_and_projects(self):
        signals = sort_signals([decision(0, "p2"), result(1, "p1"), decision(2, "p2"), decision(3)])
        [segment] = segment_by_gap(signals, ARC_GAP_DAYS)

        assert segment.decision_count == 3
        assert segment.result_count == 1
        assert segment.project_ids == ["p1", "p2"]

    def test_phase_threshold_is_tighter(self):
        signals = [decision(0), decision(7), decision(15)]
        assert len(segment_by_gap(signals, PHASE_GAP_DAYS)) == 2
        assert len(segment_by_gap(signals, ARC_GAP_DAYS)) == 1


class TestSegmentSignalsIntoArcs:
    def test_segment_key_is_stable_within_a_day(self):
        morning = "2024-01-01T01:00:00.000Z"
        evening = "2024-01-01T23:00:00.000Z"
        assert generate_segment_key(USER_ID, morning) == generate_segment_key(USER_ID, evening)
        assert generate_segment_key(USER_ID, morning) != generate_segment_key("other", morning)

    def test_scope_from_project_count(self):
        arcs = segment_signals_into_arcs(
            [decision(0, "p1"), decision(1, "p1"), decision(30, "p1"), decision(31, "p2")], USER_ID
        )
        assert [a.scope for a in arcs] == [ArcScope.PERSONAL, ArcScope.PROJECT_SPANNING]

    def test_no_project_is_personal(self):
        [arc] = segment_signals_into_arcs([decision(0)], USER_ID)
        assert arc.scope == ArcScope.PERSONAL


class TestGroupSignalsByWindow:
    def test_groups_by_window_membership(self):
        signals = [decision(d) for d in (0, 3, 30, 31, 90)]
        segments = segment_by_gap(signals, ARC_GAP_DAYS)

        groups = group_signals_by_window(signals, segments)

        assert [[s.occurred_at for s in g] for g in groups] == [
            [at_day(0), at_day(3)],
            [at_day(30), at_day(31)],
            [at_day(90)],
        ]

    def test_independent_of_input_order(self):
        signals = [decision(d) for d in (0, 3, 30)]
        segments = segment_by_gap(signals, ARC_GAP_DAYS)

        groups = group_signals_by_window(list(reversed(signals)), segments)

        assert [len(g) for g in groups] == [2, 1]

    def test_signal_outside_every_window_is_dropped(self):
        segments = segment_by_gap([decision(0), decision(1)], ARC_GAP_DAYS)
        groups = group_signals_by_window([decision(0), decision(50)], segments)
        assert [len(g) for g in groups] == [1]


# =============================================================================
# RECENCY STATUS
# =============================================================================


class TestRecencyStatus:
    def test_arc_active_at_exact_window(self):
        now = at_day(ARC_ACTIVE_WINDOW_DAYS)
        assert compute_arc_status(at_day(0), now) == RecencyStatus.ACTIVE

    def test_arc_compressed_one_second_past_window(self):
        now = shift_ms(at_day(ARC_ACTIVE_WINDOW_DAYS), 1000)
        assert compute_arc_status(at_day(0), now) == RecencyStatus.COMPRESSED

    def test_phase_window_is_21_days(self):
        assert compute_phase_status(at_day(0), at_day(21)) == RecencyStatus.ACTIVE
        assert compute_phase_status(at_day(0), at_day(22)) == RecencyStatus.COMPRESSED

    def test_custom_window(self):
        assert compute_arc_status(at_day(0), at_day(10), window_days=5) == RecencyStatus.COMPRESSED


# =============================================================================
# DENSITY
# =============================================================================


class TestDensity:
    def test_span_defaults_to_one_day(self):
        assert compute_span_days([]) == 1

    def test_span_has_one_day_floor(self):
        segments = segment_by_gap([decision(0)], ARC_GAP_DAYS)
        assert compute_span_days(segments) == 1

    def test_span_covers_all_segments(self):
        segments = segment_by_gap([decision(d) for d in (0, 5, 40)], ARC_GAP_DAYS)
        assert compute_span_days(segments) == pytest.approx(40)

    @pytest.mark.parametrize(
        "count,span,expected",
        [(1, 2, 0.5), (1, 3, 0.33), (3, 40, 0.08), (0, 10, 0.0), (5, 0.5, 5.0)],
    )
    def test_decision_density_bucket(self, count, span, expected):
        assert compute_decision_density_bucket(count, span) == expected

    def test_result_density_bucket(self):
        assert compute_result_density_bucket(2, 3) == 0.67
