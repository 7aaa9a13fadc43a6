"""
Minimal metrics collection for the structure engine.

Counters, a gauge and a histogram without external dependencies.
Exposed via GET /metrics in Prometheus text format.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class Counter:
    """Thread-safe counter metric."""

    name: str
    description: str
    _value: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def inc(self, amount: int = 1) -> None:
        with self._lock:
            self._value += amount

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass
class Gauge:
    """Thread-safe gauge metric."""

    name: str
    description: str
    _value: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def set(self, value: float) -> None:
        with self._lock:
            self._value = value

    @property
    def value(self) -> float:
        with self._lock:
            return self._value


@dataclass
class Histogram:
    """Rolling window of observations (last 1000)."""

    name: str
    description: str
    _values: list[float] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def observe(self, value: float) -> None:
        with self._lock:
            self._values.append(value)
            if len(self._values) > 1000:
                self._values = self._values[-1000:]

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._values)

    @property
    def sum(self) -> float:
        with self._lock:
            return sum(self._values) if self._values else 0.0


class MetricsRegistry:
    """Central registry for all metrics."""

    def __init__(self) -> None:
        self._counters: dict[str, Counter] = {}
        self._gauges: dict[str, Gauge] = {}
        self._histograms: dict[str, Histogram] = {}
        self._lock = threading.Lock()

    def counter(self, name: str, description: str = "") -> Counter:
        """Get or create a counter."""
        with self._lock:
            if name not in self._counters:
                self._counters[name] = Counter(name, description)
            return self._counters[name]

    def gauge(self, name: str, description: str = "") -> Gauge:
        """Get or create a gauge."""
        with self._lock:
            if name not in self._gauges:
                self._gauges[name] = Gauge(name, description)
            return self._gauges[name]

    def histogram(self, name: str, description: str = "") -> Histogram:
        """Get or create a histogram."""
        with self._lock:
            if name not in self._histograms:
                self._histograms[name] = Histogram(name, description)
            return self._histograms[name]

    def to_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        lines: list[str] = []
        with self._lock:
            for name in sorted(self._counters):
                c = self._counters[name]
                if c.description:
                    lines.append(f"# HELP {name} {c.description}")
                lines.append(f"# TYPE {name} counter")
                lines.append(f"{name} {c.value}")

            for name in sorted(self._gauges):
                g = self._gauges[name]
                if g.description:
                    lines.append(f"# HELP {name} {g.description}")
                lines.append(f"# TYPE {name} gauge")
                lines.append(f"{name} {g.value}")

            for name in sorted(self._histograms):
                h = self._histograms[name]
                if h.description:
                    lines.append(f"# HELP {name} {h.description}")
                lines.append(f"# TYPE {name} summary")
                lines.append(f"{name}_count {h.count}")
                lines.append(f"{name}_sum {h.sum}")

        return "\n".join(lines) + "\n"


REGISTRY = MetricsRegistry()


jobs_enqueued = REGISTRY.counter("structure_jobs_enqueued_total", "Structure jobs enqueued")
jobs_debounced = REGISTRY.counter(
    "structure_jobs_debounced_total", "Recompute requests coalesced by the debounce window"
)
jobs_succeeded = REGISTRY.counter("structure_jobs_succeeded_total", "Structure jobs succeeded")
jobs_failed = REGISTRY.counter("structure_jobs_failed_total", "Structure jobs failed")
jobs_swept = REGISTRY.counter(
    "structure_jobs_swept_total", "Running jobs failed by the stuck-job sweep"
)
jobs_stuck = REGISTRY.gauge("structure_jobs_stuck", "Running jobs past the stuck threshold")
snapshots_written = REGISTRY.counter(
    "structure_snapshots_written_total", "Snapshot rows written after a hash change"
)
pulses_emitted = REGISTRY.counter("structure_pulses_emitted_total", "Pulse rows written")
cycle_duration = REGISTRY.histogram(
    "structure_cycle_duration_seconds", "Duration of one structure cycle"
)


def timed(histogram: Histogram) -> Callable:
    """Decorator to time function execution."""

    def decorator(func: Callable) -> Callable:
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                histogram.observe(time.perf_counter() - start)

        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        return wrapper

    return decorator
