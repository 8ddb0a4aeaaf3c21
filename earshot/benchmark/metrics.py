"""
Latency measurement.

Classification latency decides how many windows get dropped, so it is
tracked per operation against a budget.
"""

from __future__ import annotations

import threading
import time
from collections import deque
import numpy as np


class LatencyTracker:
    """
    Thread-safe latency history with budget checks.

    Tracks, per named operation:
    - Recent latency history (bounded)
    - Spikes (a measurement over `spike_factor` times the running mean)
    - Jitter (mean change between consecutive measurements)

    Usage:
        tracker = LatencyTracker(budget_ms=500.0)

        with tracker.measure("classify") as timing:
            adapter.classify(window)

        if timing.duration_ms > tracker.budget_ms:
            logger.debug("Latency budget exceeded")
    """

    def __init__(
        self,
        budget_ms: float = 500.0,
        history_size: int = 1000,
        spike_factor: float = 3.0,
    ) -> None:
        self._budget_ms = budget_ms
        self._history_size = history_size
        self._spike_factor = spike_factor

        self._history: dict[str, deque[float]] = {}
        self._spikes: dict[str, int] = {}
        self._totals: dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def budget_ms(self) -> float:
        return self._budget_ms

    def record(self, name: str, duration_ms: float) -> None:
        """Record one measurement for a named operation."""
        with self._lock:
            history = self._history.get(name)
            if history is None:
                history = self._history[name] = deque(maxlen=self._history_size)
                self._spikes[name] = 0
                self._totals[name] = 0

            # Spikes are judged against a warmed-up mean only
            if len(history) > 10 and duration_ms > np.mean(history) * self._spike_factor:
                self._spikes[name] += 1

            history.append(duration_ms)
            self._totals[name] += 1

    def measure(self, name: str) -> _Timing:
        """Context manager timing one operation."""
        return _Timing(self, name)

    def last(self, name: str) -> float:
        """Most recent measurement in ms, 0.0 if none."""
        with self._lock:
            history = self._history.get(name)
            return history[-1] if history else 0.0

    def get_stats(self, name: str) -> dict[str, float]:
        """Summary of the recorded history, or {} if nothing was recorded."""
        with self._lock:
            if not self._history.get(name):
                return {}
            data = np.fromiter(self._history[name], dtype=np.float64)
            spike_rate = self._spikes[name] / self._totals[name]

        return {
            "mean_ms": float(data.mean()),
            "median_ms": float(np.median(data)),
            "min_ms": float(data.min()),
            "max_ms": float(data.max()),
            "stddev_ms": float(data.std(ddof=1)) if len(data) > 1 else 0.0,
            "p95_ms": float(np.percentile(data, 95)),
            "jitter_ms": float(np.abs(np.diff(data)).mean()) if len(data) > 1 else 0.0,
            "spike_rate": spike_rate,
            "over_budget_rate": float((data > self._budget_ms).mean()),
            "sample_count": len(data),
        }

    def get_all_stats(self) -> dict[str, dict[str, float]]:
        """Summaries for every tracked operation."""
        with self._lock:
            names = list(self._history)
        return {name: self.get_stats(name) for name in names}

    def is_over_budget(self, name: str) -> bool:
        """Whether the last measurement exceeded the budget."""
        return self.last(name) > self._budget_ms

    def reset(self) -> None:
        with self._lock:
            self._history.clear()
            self._spikes.clear()
            self._totals.clear()


class _Timing:
    """Times a `with` block and records it; `duration_ms` is set on exit."""

    def __init__(self, tracker: LatencyTracker, name: str) -> None:
        self._tracker = tracker
        self._name = name
        self._start_ns = 0
        self.duration_ms = 0.0

    def __enter__(self) -> _Timing:
        self._start_ns = time.perf_counter_ns()
        return self

    def __exit__(self, *args) -> None:
        self.duration_ms = (time.perf_counter_ns() - self._start_ns) / 1_000_000
        self._tracker.record(self._name, self.duration_ms)
