"""
Single-flight classification dispatch.

At most one classification runs at a time. Windows arriving while one
is running are dropped, never queued, so the capture side is never held
up by model latency.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, TYPE_CHECKING

from earshot.benchmark.metrics import LatencyTracker
from earshot.core.result import ErrorEvent, ResultEvent
from earshot.core.stream import Window
from earshot.ranking import rank

if TYPE_CHECKING:
    from earshot.inference.adapter import InferenceAdapter
    from earshot.labels import LabelCatalog

logger = logging.getLogger(__name__)


class DispatchState(str, Enum):
    IDLE = "idle"
    CLASSIFYING = "classifying"


@dataclass
class DispatchConfig:
    """Dispatcher configuration."""
    top_k: int = 5
    overlap: bool = False
    stop_timeout_s: float = 2.0
    latency_budget_ms: float = 500.0


class Dispatcher:
    """
    Consumer side of the pipeline.

    `submit()` is called from the producer context and never blocks:
    it either hands the window to the worker thread or drops it. The
    worker runs inference and ranking and publishes one event per
    classification.

    With `overlap` enabled each accepted window is preceded by a shifted
    window made of the second half of the previous window and the first
    half of the new one.

    Usage:
        dispatcher = Dispatcher(adapter, catalog, DispatchConfig(top_k=9))
        dispatcher.on_result(print_results)
        dispatcher.start()

        accumulator.on_window(dispatcher.submit)
        ...
        dispatcher.stop()
    """

    def __init__(
        self,
        adapter: InferenceAdapter,
        catalog: LabelCatalog | None = None,
        config: DispatchConfig | None = None,
    ) -> None:
        self._adapter = adapter
        self._catalog = catalog
        self._config = config or DispatchConfig()
        self._tracker = LatencyTracker(budget_ms=self._config.latency_budget_ms)

        self._in_flight = threading.Lock()
        self._state_lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._inbox: queue.Queue[tuple[Window | None, Window] | None] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._accepting = False

        self._previous: Window | None = None
        self._previous_lock = threading.Lock()

        self._result_callbacks: list[Callable[[ResultEvent], None]] = []
        self._error_callbacks: list[Callable[[ErrorEvent], None]] = []

        self._accepted = 0
        self._dropped = 0
        self._classifications = 0
        self._failures = 0

    @property
    def config(self) -> DispatchConfig:
        return self._config

    @property
    def state(self) -> DispatchState:
        return DispatchState.CLASSIFYING if self._in_flight.locked() else DispatchState.IDLE

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def latency(self) -> LatencyTracker:
        return self._tracker

    @property
    def windows_accepted(self) -> int:
        return self._accepted

    @property
    def windows_dropped(self) -> int:
        return self._dropped

    @property
    def classifications(self) -> int:
        return self._classifications

    @property
    def failures(self) -> int:
        return self._failures

    def on_result(self, callback: Callable[[ResultEvent], None]) -> Dispatcher:
        """Register a callback for result events. Returns self for chaining."""
        self._result_callbacks.append(callback)
        return self

    def on_error(self, callback: Callable[[ErrorEvent], None]) -> Dispatcher:
        """Register a callback for error events. Returns self for chaining."""
        self._error_callbacks.append(callback)
        return self

    def start(self) -> None:
        """Start the worker thread."""
        if self.is_running:
            return
        with self._previous_lock:
            self._previous = None
        with self._state_lock:
            self._accepting = True
        self._thread = threading.Thread(
            target=self._run,
            name="earshot-dispatch",
            daemon=True,
        )
        self._thread.start()

    def submit(self, window: Window) -> bool:
        """
        Offer a window for classification.

        Returns True if accepted, False if dropped because a
        classification is in flight or the dispatcher is stopped.
        """
        if not self._accepting:
            return False

        with self._previous_lock:
            previous, self._previous = self._previous, window

        if not self._config.overlap or previous is None or len(previous) != len(window):
            previous = None

        # Checked again under the state lock so stop() cannot slip in between
        with self._state_lock:
            if not self._accepting:
                return False
            if not self._in_flight.acquire(blocking=False):
                self._dropped += 1
                logger.debug(f"Dropped window {window.window_id}: classification in flight")
                return False
            self._idle.clear()
            self._accepted += 1
            self._inbox.put((previous, window))
        return True

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no classification is in flight."""
        return self._idle.wait(timeout)

    def stop(self, timeout: float | None = None) -> bool:
        """
        Stop accepting windows and wait for the in-flight classification.

        Returns False if a classification was still running after the
        timeout; the worker is then abandoned (it is a daemon thread).
        """
        with self._state_lock:
            self._accepting = False
        if self._thread is None:
            return True

        if timeout is None:
            timeout = self._config.stop_timeout_s

        finished = self._idle.wait(timeout)
        if not finished:
            logger.warning(f"Classification still running after {timeout:.1f}s, abandoning it")

        self._inbox.put(None)
        self._thread.join(timeout if finished else 0)
        self._thread = None
        return finished

    def _run(self) -> None:
        while True:
            item = self._inbox.get()
            if item is None:
                break

            previous, window = item
            try:
                if previous is not None:
                    self._classify(previous.shifted_with(window))
                self._classify(window)
            finally:
                with self._state_lock:
                    self._in_flight.release()
                    self._idle.set()

    def _classify(self, window: Window) -> ResultEvent | None:
        """Classify one window and publish the outcome. Never raises."""
        try:
            with self._tracker.measure("classify") as timing:
                scores = self._adapter.classify(window)
                results = rank(scores, self._config.top_k, self._catalog)
        except Exception as e:
            self._failures += 1
            logger.warning(f"Classification failed for window {window.window_id}: {e}")
            self._publish(self._error_callbacks, ErrorEvent(
                window_id=window.window_id,
                timestamp_ms=window.timestamp_ms,
                error=e,
                shifted=window.shifted,
            ))
            return None

        self._classifications += 1
        if timing.duration_ms > self._tracker.budget_ms:
            logger.debug(
                f"Window {window.window_id} took {timing.duration_ms:.1f}ms "
                f"(budget {self._tracker.budget_ms:.0f}ms)"
            )

        event = ResultEvent(
            window_id=window.window_id,
            timestamp_ms=window.timestamp_ms,
            results=tuple(results),
            shifted=window.shifted,
            latency_ms=timing.duration_ms,
        )
        self._publish(self._result_callbacks, event)
        return event

    def _publish(self, callbacks: list[Callable], event: ResultEvent | ErrorEvent) -> None:
        for callback in callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.warning(f"Result callback failed on window {event.window_id}: {e}")

    def stats(self) -> dict[str, object]:
        """Counters and classification latency."""
        return {
            "windows_accepted": self._accepted,
            "windows_dropped": self._dropped,
            "classifications": self._classifications,
            "failures": self._failures,
            "latency": self._tracker.get_stats("classify"),
        }
