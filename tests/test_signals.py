"""
Tests for structural signal collection.

Covers:
- Thinking-time midpoint and deterministic signal ids
- Deterministic sort order
- Decision, result and project_reactivated collection
- MissingThinkingTimeError for unplaceable rows
"""

import pytest

from structure_engine.errors import MissingThinkingTimeError
from structure_engine.signals import (
    SignalKind,
    assert_thinking_time,
    collect_structural_signals,
    generate_signal_id,
    make_signal,
    midpoint,
    sort_signals,
)
from tests.fixtures import (
    USER_ID,
    add_conversation,
    add_decision,
    add_project,
    add_result,
    at_day,
)

# =============================================================================
# MIDPOINT / IDS
# =============================================================================


class TestMidpoint:
    def test_midpoint_of_window(self):
        assert midpoint("2024-01-01T00:00:00Z", "2024-01-01T02:00:00Z") == "2024-01-01T01:00:00.000Z"

    def test_midpoint_floors_to_millisecond(self):
        assert midpoint("2024-01-01T00:00:00.000Z", "2024-01-01T00:00:00.003Z") == "2024-01-01T00:00:00.001Z"

    def test_single_bound_is_returned_canonical(self):
        assert midpoint(start="2024-01-01T00:00:00+00:00") == "2024-01-01T00:00:00.000Z"
        assert midpoint(end="2024-03-05T10:30:00Z") == "2024-03-05T10:30:00.000Z"

    def test_no_bounds_raises(self):
        with pytest.raises(ValueError):
            midpoint()

    def test_assert_thinking_time_rejects_missing(self):
        with pytest.raises(ValueError, match="Missing occurred_at"):
            assert_thinking_time("", "decision d1")

    def test_assert_thinking_time_parses_only_in_development(self, monkeypatch):
        assert_thinking_time("not-a-date", "decision d1")

        monkeypatch.setenv("STRUCTURE_ENGINE_ENV", "development")
        with pytest.raises(ValueError, match="Invalid occurred_at"):
            assert_thinking_time("not-a-date", "decision d1")


class TestSignalIds:
    def test_id_is_deterministic(self):
        a = generate_signal_id("decision", "d1", "2024-01-01T00:00:00.000Z", "p1")
        b = generate_signal_id("decision", "d1", "2024-01-01T00:00:00.000Z", "p1")
        assert a == b
        assert len(a) == 16

    def test_id_changes_with_any_component(self):
        base = generate_signal_id("decision", "d1", "2024-01-01T00:00:00.000Z", "p1")
        assert base != generate_signal_id("result", "d1", "2024-01-01T00:00:00.000Z", "p1")
        assert base != generate_signal_id("decision", "d2", "2024-01-01T00:00:00.000Z", "p1")
        assert base != generate_signal_id("decision", "d1", "2024-01-02T00:00:00.000Z", "p1")
        assert base != generate_signal_id("decision", "d1", "2024-01-01T00:00:00.000Z", None)


# =============================================================================
# SORT
# =============================================================================


class TestSortSignals:
    def test_sorts_by_time_then_kind_then_id(self):
        t = "2024-01-01T00:00:00.000Z"
        later = make_signal(USER_ID, SignalKind.DECISION, "2024-01-02T00:00:00.000Z", source_id="x")
        result = make_signal(USER_ID, SignalKind.RESULT, t, source_id="r")
        decision = make_signal(USER_ID, SignalKind.DECISION, t, source_id="d")

        ordered = sort_signals([later, result, decision])

        assert ordered == [decision, result, later]

    def test_does_not_mutate_input(self):
        signals = [
            make_signal(USER_ID, SignalKind.DECISION, "2024-01-02T00:00:00.000Z", source_id="b"),
            make_signal(USER_ID, SignalKind.DECISION, "2024-01-01T00:00:00.000Z", source_id="a"),
        ]
        original = list(signals)
        sort_signals(signals)
        assert signals == original

    def test_same_time_and_kind_ordered_by_id(self):
        t = "2024-01-01T00:00:00.000Z"
        signals = [make_signal(USER_ID, SignalKind.DECISION, t, source_id=f"d{i}") for i in range(5)]
        ordered = sort_signals(reversed(signals))
        assert [s.id for s in ordered] == sorted(s.id for s in signals)


# =============================================================================
# COLLECTOR
# =============================================================================


class TestCollectStructuralSignals:
    def _collect(self, store, user_id=USER_ID):
        with store.connection() as conn:
            return collect_structural_signals(conn, user_id)

    def test_decision_placed_at_conversation_midpoint(self, store):
        add_conversation(store, "c1", started_at=at_day(0), ended_at=at_day(2))
        add_decision(store, "d1", "c1", project_id="p1")

        signals = self._collect(store)

        assert len(signals) == 1
        signal = signals[0]
        assert signal.kind == SignalKind.DECISION
        assert signal.occurred_at == at_day(1)
        assert signal.project_id == "p1"
        assert signal.source_id == "d1"

    def test_inactive_decisions_are_skipped(self, store):
        add_conversation(store, "c1", started_at=at_day(0), ended_at=at_day(0))
        add_decision(store, "d1", "c1", is_inactive=True)

        assert self._collect(store) == []

    def test_result_inherits_parent_time_and_project(self, store):
        add_conversation(store, "c1", started_at=at_day(3), ended_at=at_day(3))
        add_decision(store, "d1", "c1", project_id="p9")
        add_result(store, "r1", "d1")

        signals = {s.kind: s for s in self._collect(store)}

        assert signals[SignalKind.RESULT].occurred_at == signals[SignalKind.DECISION].occurred_at
        assert signals[SignalKind.RESULT].project_id == "p9"
        assert signals[SignalKind.RESULT].source_id == "r1"

    def test_result_of_inactive_decision_still_collected(self, store):
        add_conversation(store, "c1", started_at=at_day(3), ended_at=at_day(3))
        add_decision(store, "d1", "c1", is_inactive=True)
        add_result(store, "r1", "d1")

        signals = self._collect(store)

        assert [s.kind for s in signals] == [SignalKind.RESULT]
        assert signals[0].occurred_at == at_day(3)

    def test_project_reactivation_signal(self, store):
        add_project(store, "p1", reactivated_thinking_at="2024-02-01T08:00:00+00:00")
        add_project(store, "p2")
        add_project(store, "p3", is_inactive=True, reactivated_thinking_at=at_day(1))

        signals = self._collect(store)

        assert len(signals) == 1
        assert signals[0].kind == SignalKind.PROJECT_REACTIVATED
        assert signals[0].project_id == "p1"
        assert signals[0].source_id == "p1"
        assert signals[0].occurred_at == "2024-02-01T08:00:00.000Z"

    def test_other_users_rows_are_ignored(self, store):
        add_conversation(store, "c1", user_id="someone_else", started_at=at_day(0), ended_at=at_day(0))
        add_decision(store, "d1", "c1", user_id="someone_else")

        assert self._collect(store) == []

    def test_decision_without_conversation_raises(self, store):
        add_decision(store, "d1", None)

        with pytest.raises(MissingThinkingTimeError) as exc_info:
            self._collect(store)
        assert exc_info.value.context == {"decision_id": "d1"}

    def test_decision_with_unknown_conversation_raises(self, store):
        add_decision(store, "d1", "missing_conv")

        with pytest.raises(MissingThinkingTimeError, match="conversation_id=missing_conv"):
            self._collect(store)

    def test_conversation_without_window_raises(self, store):
        add_conversation(store, "c1")
        add_decision(store, "d1", "c1")

        with pytest.raises(MissingThinkingTimeError, match="no thinking window"):
            self._collect(store)

    def test_result_without_parent_raises(self, store):
        add_result(store, "r1", "ghost")

        with pytest.raises(MissingThinkingTimeError) as exc_info:
            self._collect(store)
        assert exc_info.value.context["result_id"] == "r1"
        assert str(exc_info.value).startswith("Missing thinking time")
