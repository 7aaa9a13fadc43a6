"""Structural signals: types, deterministic sort, collection from source tables."""

from .collector import collect_structural_signals
from .sort import signal_sort_key, sort_signals
from .types import (
    SignalKind,
    StructuralSignal,
    assert_thinking_time,
    generate_signal_id,
    make_signal,
    midpoint,
)

__all__ = [
    "SignalKind",
    "StructuralSignal",
    "assert_thinking_time",
    "collect_structural_signals",
    "generate_signal_id",
    "make_signal",
    "midpoint",
    "signal_sort_key",
    "sort_signals",
]
