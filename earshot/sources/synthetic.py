"""Synthetic audio sources for testing and demos."""

from __future__ import annotations

import time
from typing import Iterator
import numpy as np

from earshot.core.stream import AudioConfig, AudioSource, float_to_pcm16


class ArraySource(AudioSource):
    """
    Audio source from a numpy array.

    Float data is taken as [-1.0, 1.0] samples, int16 data as raw PCM.
    Chunks are `chunk_bytes` long except possibly the last one.
    With `realtime=True` chunks are paced at the sample rate.
    """

    def __init__(
        self,
        data: np.ndarray,
        sample_rate: int = 16000,
        chunk_bytes: int = 4096,
        realtime: bool = False,
    ) -> None:
        self._config = AudioConfig(sample_rate=sample_rate, chunk_bytes=chunk_bytes)
        data = np.asarray(data)
        if data.dtype == np.int16:
            self._pcm = data.astype("<i2").tobytes()
        else:
            self._pcm = float_to_pcm16(data)
        self._realtime = realtime
        self._position = 0
        self._closed = False

    @property
    def config(self) -> AudioConfig:
        return self._config

    @property
    def total_samples(self) -> int:
        return len(self._pcm) // 2

    def start(self) -> None:
        pass

    def chunks(self) -> Iterator[bytes]:
        chunk_bytes = self._config.chunk_bytes
        chunk_s = self._config.chunk_duration_ms / 1000

        while self._position < len(self._pcm) and not self._closed:
            chunk = self._pcm[self._position:self._position + chunk_bytes]
            self._position += len(chunk)
            yield chunk
            if self._realtime:
                time.sleep(chunk_s)

    def close(self) -> None:
        self._closed = True


class SineSource(ArraySource):
    """Generate sine wave audio."""

    def __init__(
        self,
        frequency_hz: float = 440.0,
        amplitude: float = 0.5,
        duration_ms: int = 1000,
        sample_rate: int = 16000,
        chunk_bytes: int = 4096,
        realtime: bool = False,
    ) -> None:
        total_samples = int(sample_rate * duration_ms / 1000)
        t = np.arange(total_samples, dtype=np.float32) / sample_rate
        data = (amplitude * np.sin(2 * np.pi * frequency_hz * t)).astype(np.float32)
        super().__init__(data, sample_rate, chunk_bytes, realtime)


class NoiseSource(ArraySource):
    """Generate white noise audio."""

    def __init__(
        self,
        amplitude: float = 0.1,
        duration_ms: int = 1000,
        sample_rate: int = 16000,
        chunk_bytes: int = 4096,
        realtime: bool = False,
        seed: int | None = None,
    ) -> None:
        rng = np.random.default_rng(seed)
        total_samples = int(sample_rate * duration_ms / 1000)
        data = np.clip(amplitude * rng.standard_normal(total_samples), -1.0, 1.0)
        super().__init__(data.astype(np.float32), sample_rate, chunk_bytes, realtime)


class SilenceSource(ArraySource):
    """Generate silence."""

    def __init__(
        self,
        duration_ms: int = 1000,
        sample_rate: int = 16000,
        chunk_bytes: int = 4096,
        realtime: bool = False,
    ) -> None:
        total_samples = int(sample_rate * duration_ms / 1000)
        super().__init__(np.zeros(total_samples, dtype=np.int16), sample_rate, chunk_bytes, realtime)
