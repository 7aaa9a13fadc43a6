"""Decision/result density buckets. Structural only, no interpretation."""

from collections.abc import Sequence

from structure_engine.hashing.bucket import round_bucket
from structure_engine.inference.segment import Segment
from structure_engine.timeutil import days_between


def compute_span_days(segments: Sequence[Segment]) -> float:
    """Days from the earliest segment start to the latest segment end, at least 1."""
    if not segments:
        return 1
    earliest = min(segments, key=lambda s: s.start_at).start_at
    latest = max(segments, key=lambda s: s.end_at).end_at
    return max(days_between(earliest, latest), 1)


def compute_decision_density_bucket(total_decisions: int, span_days: float) -> float:
    return round_bucket(total_decisions / max(span_days, 1), 2)


def compute_result_density_bucket(total_results: int, span_days: float) -> float:
    return round_bucket(total_results / max(span_days, 1), 2)
