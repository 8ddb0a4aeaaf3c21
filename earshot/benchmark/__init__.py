"""Latency measurement tools."""

from earshot.benchmark.metrics import LatencyTracker

__all__ = [
    "LatencyTracker",
]
