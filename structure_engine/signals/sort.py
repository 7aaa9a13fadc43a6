"""Deterministic ordering for structural signals."""

from collections.abc import Iterable

from structure_engine.signals.types import StructuralSignal
from structure_engine.timeutil import to_epoch_ms


def signal_sort_key(signal: StructuralSignal) -> tuple[int, str, str]:
    return (to_epoch_ms(signal.occurred_at), str(signal.kind), signal.id)


def sort_signals(signals: Iterable[StructuralSignal]) -> list[StructuralSignal]:
    """
    Sort signals by occurred_at, then kind, then id.

    Returns a new list; the input is not modified. Identical input always
    yields identical order.
    """
    return sorted(signals, key=signal_sort_key)
