"""
Scenario test infrastructure.

End-to-end structure cycles: seed source rows -> dispatch -> queue runner ->
snapshot/pulse tables -> projections.
"""

from typing import Any

import pytest

from structure_engine.jobs import dispatch_structure_recompute, process_structure_job_queue


@pytest.fixture
def recompute(store):
    """Dispatch and drain one recompute for a user at a fixed `now`."""

    def _recompute(user_id: str, now, reason: str = "manual") -> dict[str, Any]:
        dispatch_structure_recompute(store, user_id, reason, now=now)
        result = process_structure_job_queue(store, now=now)
        assert result.failed == [], f"recompute failed for {user_id}"
        return result.to_dict()

    return _recompute
