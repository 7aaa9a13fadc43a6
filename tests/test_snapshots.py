"""
Tests for snapshots, pulses, change rules and projections.

Covers:
- "Latest" ordering: generated_at DESC NULLS LAST, created_at DESC, insertion order
- Scope mapping (user -> global)
- Snapshot writes store the normalized payload only
- Pulse / shift change rules
- Direction and Shifts projections
"""

import json

import pytest

from structure_engine.changes import (
    StructuralChange,
    detect_structural_changes,
    pulse_types_for,
    shift_types_for,
)
from structure_engine.hashing import compute_state_hash, empty_payload
from structure_engine.projection import (
    load_direction,
    load_shifts,
    project_direction,
    project_shifts,
)
from structure_engine.snapshot import (
    create_minimal_pulses,
    load_latest_snapshot,
    load_latest_snapshots,
    map_scope_to_snapshot_scope,
    write_snapshot_state,
)
from tests.fixtures import USER_ID, at_day


def payload(active=(), density=0.0, **extra):
    data = empty_payload()
    data["active_arc_ids"] = list(active)
    data["arc_statuses"] = {a: "active" for a in active}
    data["arc_last_signal_buckets"] = {a: at_day(i) for i, a in enumerate(active)}
    data["decision_density_bucket"] = density
    data.update(extra)
    return data


def insert_snapshot(conn, snapshot_id, generated_at, created_at, state_hash="h", scope="global"):
    conn.execute(
        """
        INSERT INTO snapshot_state (id, user_id, scope, state_hash, state_payload, generated_at, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (snapshot_id, USER_ID, scope, state_hash, json.dumps(empty_payload()), generated_at, created_at),
    )


# =============================================================================
# SCOPE / ORDERING
# =============================================================================


class TestScopeMapping:
    def test_user_maps_to_global(self):
        assert map_scope_to_snapshot_scope("user") == "global"

    @pytest.mark.parametrize("scope", ["global", "project"])
    def test_snapshot_scopes_pass_through(self, scope):
        assert map_scope_to_snapshot_scope(scope) == scope

    def test_unknown_scope_rejected(self):
        with pytest.raises(ValueError, match="unknown structure scope"):
            map_scope_to_snapshot_scope("team")


class TestLatestOrdering:
    def test_newest_generated_at_wins(self, store):
        with store.connection() as conn:
            insert_snapshot(conn, "old", at_day(1), at_day(1))
            insert_snapshot(conn, "new", at_day(2), at_day(0))
            latest = load_latest_snapshot(conn, USER_ID, "user")

        assert latest.id == "new"

    def test_null_generated_at_sorts_last(self, store):
        with store.connection() as conn:
            insert_snapshot(conn, "legacy", None, at_day(9))
            insert_snapshot(conn, "dated", at_day(1), at_day(1))
            latest = load_latest_snapshot(conn, USER_ID, "global")

        assert latest.id == "dated"

    def test_created_at_breaks_generated_at_tie(self, store):
        with store.connection() as conn:
            insert_snapshot(conn, "a", at_day(1), at_day(2))
            insert_snapshot(conn, "b", at_day(1), at_day(1))
            latest = load_latest_snapshot(conn, USER_ID, "global")

        assert latest.id == "a"

    def test_insertion_order_breaks_full_tie(self, store):
        with store.connection() as conn:
            insert_snapshot(conn, "zzz_first", at_day(1), at_day(1))
            insert_snapshot(conn, "aaa_second", at_day(1), at_day(1))
            latest = load_latest_snapshots(conn, USER_ID, "global", limit=2)

        assert [s.id for s in latest] == ["aaa_second", "zzz_first"]

    def test_scopes_are_separate(self, store):
        with store.connection() as conn:
            insert_snapshot(conn, "proj", at_day(5), at_day(5), scope="project")
            assert load_latest_snapshot(conn, USER_ID, "global") is None
            assert load_latest_snapshot(conn, USER_ID, "project").id == "proj"

    def test_limit_must_be_one_or_two(self, store):
        with store.connection() as conn, pytest.raises(ValueError):
            load_latest_snapshots(conn, USER_ID, "global", limit=3)

    def test_unreadable_payload_loads_as_none(self, store):
        with store.connection() as conn:
            conn.execute(
                """
                INSERT INTO snapshot_state (id, user_id, scope, state_hash, state_payload, created_at)
                VALUES ('broken', ?, 'global', 'h', '{not json', ?)
                """,
                (USER_ID, at_day(0)),
            )
            latest = load_latest_snapshot(conn, USER_ID, "global")

        assert latest.state_payload is None


# =============================================================================
# WRITE / PULSES
# =============================================================================


class TestWriteSnapshotState:
    def test_stores_normalized_payload(self, store):
        data = payload(active=["arc_b", "arc_a"], density=0.333)
        state_hash = compute_state_hash(data)
        with store.connection() as conn:
            snapshot_id = write_snapshot_state(conn, USER_ID, "user", state_hash, data, at_day(3))
            row = conn.execute("SELECT * FROM snapshot_state WHERE id = ?", (snapshot_id,)).fetchone()

        stored = json.loads(row["state_payload"])
        assert snapshot_id.startswith("snap_")
        assert row["scope"] == "global"
        assert row["state_hash"] == state_hash
        assert row["generated_at"] == row["created_at"] == at_day(3)
        assert row["snapshot_text"] is None
        assert stored["active_arc_ids"] == ["arc_a", "arc_b"]
        assert stored["decision_density_bucket"] == 0.33

    def test_snapshots_are_append_only(self, store):
        with store.connection() as conn:
            write_snapshot_state(conn, USER_ID, "user", "h1", payload(), at_day(1))
            write_snapshot_state(conn, USER_ID, "user", "h2", payload(), at_day(2))
            count = conn.execute("SELECT COUNT(*) FROM snapshot_state").fetchone()[0]
        assert count == 2


class TestCreateMinimalPulses:
    def test_first_snapshot_emits_nothing(self, store):
        with store.connection() as conn:
            types = create_minimal_pulses(conn, USER_ID, "user", None, payload(["a"]), "h", at_day(1))
            count = conn.execute("SELECT COUNT(*) FROM pulse").fetchone()[0]

        assert types == []
        assert count == 0

    def test_one_pulse_per_change(self, store):
        prev = payload(["a"], density=0.5)
        curr = payload(["a", "b"], density=0.25)
        with store.connection() as conn:
            types = create_minimal_pulses(conn, USER_ID, "user", prev, curr, "h2", at_day(2))
            rows = conn.execute("SELECT * FROM pulse ORDER BY pulse_type").fetchall()

        assert types == ["arc_shift", "structural_threshold"]
        assert [r["pulse_type"] for r in rows] == ["arc_shift", "structural_threshold"]
        assert all(r["scope"] == "global" and r["state_hash"] == "h2" for r in rows)
        assert all(r["headline"] is None for r in rows)
        assert all(r["occurred_at"] == at_day(2) for r in rows)


# =============================================================================
# CHANGE RULES
# =============================================================================


class TestChangeRules:
    def test_no_previous_payload_means_no_change(self):
        assert detect_structural_changes(None, payload(["a"])) == []
        assert detect_structural_changes({}, payload(["a"])) == []

    def test_active_arc_order_is_ignored(self):
        assert detect_structural_changes(payload(["a", "b"]), payload(["b", "a"])) == []

    def test_active_arc_membership_change(self):
        assert detect_structural_changes(payload(["a"]), payload(["b"])) == [StructuralChange.ACTIVE_ARCS]

    def test_density_change(self):
        changes = detect_structural_changes(payload(density=0.1), payload(density=0.2))
        assert changes == [StructuralChange.DECISION_DENSITY]

    def test_vocabularies(self):
        prev, curr = payload(["a"], 0.1), payload(["b"], 0.2)
        assert pulse_types_for(prev, curr) == ["arc_shift", "structural_threshold"]
        assert shift_types_for(prev, curr) == ["container_shift", "direction_intensity_shift"]


# =============================================================================
# PROJECTIONS
# =============================================================================


class TestProjections:
    def test_direction_projection(self):
        data = payload(["a", "b"], density=0.42, active_phase_ids=["p1"])
        direction = project_direction(data)

        assert direction.active_containers == 2
        assert direction.active_direction_units == 1
        assert direction.density_level == 0.42
        assert direction.last_structural_change_at == at_day(1)

    def test_direction_of_empty_payload(self):
        direction = project_direction(empty_payload())
        assert direction.to_dict() == {
            "active_containers": 0,
            "active_direction_units": 0,
            "density_level": 0.0,
            "last_structural_change_at": None,
        }

    def test_shifts_projection(self):
        shifts = project_shifts(payload(["a"]), payload(["a", "b"]))
        assert shifts.has_shift is True
        assert shifts.shift_types == ["container_shift"]

        assert project_shifts(None, payload(["a"])).to_dict() == {"has_shift": False, "shift_types": []}

    def test_load_direction_none_without_snapshot(self, store):
        assert load_direction(store, USER_ID) is None

    def test_load_direction_and_shifts_from_snapshots(self, store):
        with store.connection() as conn:
            write_snapshot_state(conn, USER_ID, "user", "h1", payload(["a"], 0.1), at_day(1))
            write_snapshot_state(conn, USER_ID, "user", "h2", payload(["a", "b"], 0.1), at_day(2))

        direction = load_direction(store, USER_ID, "global")
        shifts = load_shifts(store, USER_ID, "user")

        assert direction.active_containers == 2
        assert shifts.has_shift is True
        assert shifts.shift_types == ["container_shift"]

    def test_single_snapshot_has_no_shift(self, store):
        with store.connection() as conn:
            write_snapshot_state(conn, USER_ID, "user", "h1", payload(["a"]), at_day(1))

        assert load_shifts(store, USER_ID).has_shift is False
