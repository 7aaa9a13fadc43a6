"""
Gap segmentation shared by arcs and phases.

A sorted signal stream is cut wherever the distance between consecutive
signals exceeds the gap threshold. Segments are contiguous and disjoint:
every signal belongs to exactly one segment.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from structure_engine.signals.types import SignalKind, StructuralSignal
from structure_engine.timeutil import days_between, to_epoch_ms


class RecencyStatus(StrEnum):
    ACTIVE = "active"
    COMPRESSED = "compressed"


@dataclass
class Segment:
    """A contiguous run of signals in thinking time."""

    start_at: str
    end_at: str
    last_signal_at: str  # == end_at
    project_ids: list[str] = field(default_factory=list)
    decision_count: int = 0
    result_count: int = 0


@dataclass
class _Accumulator:
    start_at: str
    end_at: str
    project_ids: set[str] = field(default_factory=set)
    decision_count: int = 0
    result_count: int = 0

    def add(self, signal: StructuralSignal) -> None:
        self.end_at = signal.occurred_at
        if signal.project_id:
            self.project_ids.add(signal.project_id)
        if signal.kind == SignalKind.DECISION:
            self.decision_count += 1
        elif signal.kind == SignalKind.RESULT:
            self.result_count += 1

    def finish(self) -> Segment:
        return Segment(
            start_at=self.start_at,
            end_at=self.end_at,
            last_signal_at=self.end_at,
            project_ids=sorted(self.project_ids),
            decision_count=self.decision_count,
            result_count=self.result_count,
        )


def segment_by_gap(signals: Sequence[StructuralSignal], gap_days: float) -> list[Segment]:
    """
    Split sorted signals into segments.

    A new segment starts when days_between(last signal, next signal) is
    strictly greater than gap_days; a gap of exactly gap_days stays merged.
    A single signal yields a one-point segment (start_at == end_at).
    """
    segments: list[Segment] = []
    current: _Accumulator | None = None

    for signal in signals:
        if current is None:
            current = _Accumulator(start_at=signal.occurred_at, end_at=signal.occurred_at)
        elif days_between(current.end_at, signal.occurred_at) > gap_days:
            segments.append(current.finish())
            current = _Accumulator(start_at=signal.occurred_at, end_at=signal.occurred_at)
        current.add(signal)

    if current is not None:
        segments.append(current.finish())
    return segments


def group_signals_by_window(
    signals: Sequence[StructuralSignal], segments: Sequence[Segment]
) -> list[list[StructuralSignal]]:
    """
    Assign each signal to the segment whose [start_at, end_at] contains it.

    Grouping is by explicit window membership, independent of how the
    segments were produced. Returns one list per segment, in segment order.
    """
    windows = [(to_epoch_ms(s.start_at), to_epoch_ms(s.end_at)) for s in segments]
    groups: list[list[StructuralSignal]] = [[] for _ in segments]

    for signal in signals:
        at = to_epoch_ms(signal.occurred_at)
        for index, (start, end) in enumerate(windows):
            if start <= at <= end:
                groups[index].append(signal)
                break
    return groups


def compute_recency_status(last_signal_at: str, now_iso: str, window_days: float) -> RecencyStatus:
    """Active when the last signal is at most window_days old, else compressed."""
    if days_between(last_signal_at, now_iso) <= window_days:
        return RecencyStatus.ACTIVE
    return RecencyStatus.COMPRESSED
