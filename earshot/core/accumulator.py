"""
Window accumulator.

Buffers arbitrarily sized sample chunks and emits fixed-size,
non-overlapping windows in arrival order.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable
import numpy as np
from numpy.typing import NDArray

from earshot.core.stream import Window

logger = logging.getLogger(__name__)


class WindowAccumulator:
    """
    Thread-safe sample buffer that cuts windows of exactly `window_size`.

    No sample is lost or duplicated across consecutive windows. Windows
    are drained under the buffer lock; consumers are notified after the
    buffer lock is released, but in drain order.

    Usage:
        acc = WindowAccumulator(window_size=15600)
        acc.on_window(dispatcher.submit)

        acc.append(samples)
    """

    def __init__(self, window_size: int, sample_rate: int = 16000) -> None:
        if window_size <= 0:
            raise ValueError(f"window_size must be positive, got {window_size}")
        self._window_size = window_size
        self._sample_rate = sample_rate
        self._buffer: NDArray[np.float32] = np.zeros(0, dtype=np.float32)
        self._consumed = 0
        self._next_id = 0
        self._received = 0
        self._lock = threading.Lock()
        self._emit_lock = threading.Lock()
        self._callbacks: list[Callable[[Window], object]] = []

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def pending(self) -> int:
        """Samples buffered but not yet emitted."""
        with self._lock:
            return len(self._buffer)

    @property
    def samples_received(self) -> int:
        return self._received

    @property
    def windows_emitted(self) -> int:
        return self._next_id

    def on_window(self, callback: Callable[[Window], object]) -> WindowAccumulator:
        """Register a consumer for emitted windows. Returns self for chaining."""
        self._callbacks.append(callback)
        return self

    def append(self, samples: NDArray[np.float32]) -> list[Window]:
        """
        Append samples and emit every window that became complete.

        Returns the emitted windows, oldest first.
        """
        samples = np.asarray(samples, dtype=np.float32).ravel()

        self._lock.acquire()
        try:
            if len(samples):
                self._buffer = np.concatenate([self._buffer, samples])
                self._received += len(samples)
            windows = self._drain()
            # Taken before the buffer lock is dropped so that a later
            # append cannot notify ahead of these windows.
            self._emit_lock.acquire()
        finally:
            self._lock.release()

        try:
            for window in windows:
                for callback in self._callbacks:
                    callback(window)
        finally:
            self._emit_lock.release()

        return windows

    def _drain(self) -> list[Window]:
        """Cut complete windows off the front of the buffer. Lock held."""
        count = len(self._buffer) // self._window_size
        if count == 0:
            return []

        windows = []
        for i in range(count):
            start = i * self._window_size
            windows.append(Window(
                samples=self._buffer[start:start + self._window_size].copy(),
                window_id=self._next_id,
                start_sample=self._consumed,
                sample_rate=self._sample_rate,
            ))
            self._next_id += 1
            self._consumed += self._window_size

        self._buffer = self._buffer[count * self._window_size:].copy()
        return windows

    def clear(self) -> int:
        """Discard the partial window. Returns the number of samples dropped."""
        with self._lock:
            dropped = len(self._buffer)
            self._consumed += dropped
            self._buffer = np.zeros(0, dtype=np.float32)
        if dropped:
            logger.debug(f"Discarded {dropped} buffered samples")
        return dropped
