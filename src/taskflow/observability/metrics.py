"""In-process metrics for the automation pipeline."""

from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

# Samples kept per histogram for percentile estimates
WINDOW_SIZE = 1024


@dataclass
class DurationStats:
    """Running totals plus a sliding window of recent samples."""

    count: int = 0
    total: float = 0.0
    maximum: float = 0.0
    recent: deque = field(default_factory=lambda: deque(maxlen=WINDOW_SIZE))

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.maximum = max(self.maximum, value)
        self.recent.append(value)

    def percentile(self, q: float) -> float:
        if not self.recent:
            return 0.0
        ordered = sorted(self.recent)
        index = min(len(ordered) - 1, int(round(q * (len(ordered) - 1))))
        return ordered[index]

    def summary(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "avg": self.total / self.count if self.count else 0.0,
            "max": self.maximum,
            "p50": self.percentile(0.5),
            "p95": self.percentile(0.95),
        }


class MetricsRegistry:
    """Counters, gauges and duration histograms keyed by dotted names.

    Names look like ``jobs.completed.automation`` or ``actions.skipped``.
    Values are process-local: every API or worker process reports its own.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self.counters: dict[str, float] = {}
        self.gauges: dict[str, float] = {}
        self.histograms: dict[str, DurationStats] = {}

    def inc_counter(self, name: str, amount: float = 1.0) -> None:
        with self._lock:
            self.counters[name] = self.counters.get(name, 0.0) + amount

    def set_gauge(self, name: str, value: float) -> None:
        with self._lock:
            self.gauges[name] = value

    def observe(self, name: str, value: float) -> None:
        with self._lock:
            stats = self.histograms.get(name)
            if stats is None:
                stats = self.histograms[name] = DurationStats()
            stats.add(value)

    def counter_value(self, name: str) -> float:
        with self._lock:
            return self.counters.get(name, 0.0)

    def reset(self) -> None:
        with self._lock:
            self.counters.clear()
            self.gauges.clear()
            self.histograms.clear()

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self.counters),
                "gauges": dict(self.gauges),
                "histograms": {name: stats.summary() for name, stats in self.histograms.items()},
            }


metrics = MetricsRegistry()
