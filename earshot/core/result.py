"""
Classification results - the output of earshot.

One ResultEvent per completed classification, one ErrorEvent per
failed one. Both are immutable values.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """A single ranked class."""
    label: str
    score: float
    class_index: int

    @property
    def percentage(self) -> float:
        return self.score * 100


@dataclass(frozen=True, slots=True)
class ResultEvent:
    """
    Ranked top-K classes for one window.

    Results are sorted by score descending, ties by class index.
    """
    window_id: int
    timestamp_ms: int
    results: tuple[ClassificationResult, ...] = ()
    shifted: bool = False
    latency_ms: float = 0.0

    @property
    def top(self) -> ClassificationResult | None:
        """Highest scoring class, if any."""
        return self.results[0] if self.results else None


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """A window whose classification failed."""
    window_id: int
    timestamp_ms: int
    error: Exception
    shifted: bool = False

    @property
    def message(self) -> str:
        return str(self.error) or type(self.error).__name__
