"""
Real-time microphone audio source.

Requires: pip install sounddevice
"""

from __future__ import annotations

import logging
import queue
from threading import Event
from typing import Iterator

from earshot.core.stream import AudioConfig, AudioSource
from earshot.errors import AudioBackendUnavailable

logger = logging.getLogger(__name__)


def _import_sounddevice():
    try:
        import sounddevice as sd
    except ImportError:
        raise ImportError(
            "sounddevice is required for microphone input.\n"
            "Install with: pip install sounddevice"
        )
    return sd


class MicrophoneSource(AudioSource):
    """
    Real-time microphone input using sounddevice.

    The PortAudio callback only copies raw int16 bytes into a queue;
    `chunks()` hands them to the pipeline's capture loop.

    Usage:
        source = MicrophoneSource()

        for chunk in source.chunks():
            pipeline.feed(chunk)

    Call close() (or pipeline.stop()) to stop recording.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_bytes: int = 4096,
        device: int | str | None = None,
        max_queued_chunks: int = 256,
    ) -> None:
        """
        Initialize microphone source.

        Args:
            sample_rate: Audio sample rate (default 16kHz)
            chunk_bytes: Bytes per delivered chunk (2 bytes per sample)
            device: Audio device index or name (None = default)
            max_queued_chunks: Chunks held before the oldest are dropped
        """
        self._config = AudioConfig(sample_rate=sample_rate, channels=1, chunk_bytes=chunk_bytes)
        self._device = device
        self._queue: queue.Queue[bytes] = queue.Queue(maxsize=max_queued_chunks)
        self._stop_event = Event()
        self._stream = None
        self._overflows = 0

    @property
    def config(self) -> AudioConfig:
        return self._config

    @property
    def overflows(self) -> int:
        """Chunks dropped because the capture loop fell behind."""
        return self._overflows

    def _audio_callback(self, indata, frames, time_info, status):
        """Called by sounddevice for each audio block."""
        if status:
            logger.warning(f"Audio status: {status}")

        try:
            self._queue.put_nowait(bytes(indata))
        except queue.Full:
            self._overflows += 1

    def start(self) -> None:
        """
        Open the input stream.

        Raises:
            AudioBackendUnavailable: device could not be opened
        """
        if self._stream is not None:
            return

        sd = _import_sounddevice()

        try:
            self._stream = sd.RawInputStream(
                samplerate=self._config.sample_rate,
                blocksize=self._config.samples_per_chunk,
                channels=1,
                dtype="int16",
                device=self._device,
                callback=self._audio_callback,
            )
            self._stream.start()
        except Exception as e:
            self._stream = None
            raise AudioBackendUnavailable(
                f"Could not open audio input device {self._device!r}: {e}\n"
                "Make sure a microphone is connected."
            ) from e

        logger.info(f"Recording started: {self._config.sample_rate}Hz, 16-bit, mono")

    def chunks(self) -> Iterator[bytes]:
        """
        Yield raw PCM16 chunks from the microphone.

        Blocks between chunks. Ends when close() is called.
        """
        self.start()

        try:
            while not self._stop_event.is_set():
                try:
                    yield self._queue.get(timeout=0.1)
                except queue.Empty:
                    continue
        finally:
            self.close()

    def close(self) -> None:
        """Stop recording and clean up."""
        self._stop_event.set()

        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None


def list_audio_devices() -> str:
    """Describe available audio devices."""
    sd = _import_sounddevice()
    return str(sd.query_devices())


def get_default_device() -> dict:
    """Get default input device info."""
    sd = _import_sounddevice()
    return dict(sd.query_devices(kind="input"))
