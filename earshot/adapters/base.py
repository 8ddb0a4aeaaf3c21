"""
Base adapter protocol.

Adapters transform result events for downstream consumers: a console,
a log file, an automation trigger.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, TypeVar

from earshot.core.result import ErrorEvent, ResultEvent

T = TypeVar("T")

Event = ResultEvent | ErrorEvent


class Adapter(ABC, Generic[T]):
    """
    Abstract base for output adapters.

    Usage:
        class MyAdapter(Adapter[MyOutputType]):
            def transform(self, event: ResultEvent | ErrorEvent) -> MyOutputType:
                return MyOutputType(...)

        pipeline.on_result(my_adapter).on_error(my_adapter)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique adapter name."""
        ...

    @abstractmethod
    def transform(self, event: Event) -> T:
        """Transform a result or error event to the target format."""
        ...

    def batch_transform(self, events: list[Event]) -> list[T]:
        """Transform multiple events. Override for optimization."""
        return [self.transform(e) for e in events]

    def __call__(self, event: Event) -> T:
        return self.transform(event)


class DictAdapter(Adapter[dict[str, Any]]):
    """
    Converts events to plain dictionaries.

    Useful for JSON serialization or simple integrations.
    """

    @property
    def name(self) -> str:
        return "dict"

    def transform(self, event: Event) -> dict[str, Any]:
        if isinstance(event, ErrorEvent):
            return {
                "type": "error",
                "window_id": event.window_id,
                "timestamp_ms": event.timestamp_ms,
                "shifted": event.shifted,
                "error": type(event.error).__name__,
                "message": event.message,
            }
        return {
            "type": "result",
            "window_id": event.window_id,
            "timestamp_ms": event.timestamp_ms,
            "shifted": event.shifted,
            "latency_ms": round(event.latency_ms, 3),
            "results": [
                {
                    "label": r.label,
                    "score": r.score,
                    "class_index": r.class_index,
                }
                for r in event.results
            ],
        }


class CallbackAdapter(Adapter[None]):
    """
    Adapter that invokes a callback for each event.

    Useful for event-driven architectures.
    """

    def __init__(self, callback: Callable[[Event], None]) -> None:
        self._callback = callback

    @property
    def name(self) -> str:
        return "callback"

    def transform(self, event: Event) -> None:
        self._callback(event)
