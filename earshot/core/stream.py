"""
Audio stream abstractions.

Raw PCM16 chunks in, normalized float32 samples out.
No dependency on specific audio libraries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Protocol, runtime_checkable
import numpy as np
from numpy.typing import NDArray

from earshot.errors import MalformedAudioChunk

PCM16_SCALE = 32768.0


@dataclass(frozen=True, slots=True)
class AudioConfig:
    """Audio stream configuration."""
    sample_rate: int = 16000
    channels: int = 1
    chunk_bytes: int = 4096

    @property
    def samples_per_chunk(self) -> int:
        """Samples delivered per chunk (16-bit PCM)."""
        return self.chunk_bytes // (2 * self.channels)

    @property
    def chunk_duration_ms(self) -> float:
        return self.samples_per_chunk / self.sample_rate * 1000


def pcm16_to_float(raw: bytes) -> NDArray[np.float32]:
    """
    Convert little-endian signed 16-bit PCM to float32 in [-1.0, 1.0].

    Raises:
        MalformedAudioChunk: if the byte count is odd
    """
    if len(raw) % 2:
        raise MalformedAudioChunk(
            f"PCM16 chunk must have an even byte count, got {len(raw)}"
        )
    samples = np.frombuffer(raw, dtype="<i2").astype(np.float32)
    samples /= PCM16_SCALE
    return samples


def float_to_pcm16(samples: NDArray[np.floating]) -> bytes:
    """Inverse of pcm16_to_float, clipping to the int16 range."""
    scaled = np.clip(np.asarray(samples, dtype=np.float64) * PCM16_SCALE, -32768, 32767)
    return scaled.astype("<i2").tobytes()


@dataclass(slots=True)
class Window:
    """
    Fixed-length slice of audio submitted as one classification unit.

    Attributes:
        samples: float32 samples, normalized to [-1.0, 1.0]
        window_id: Monotonically increasing window identifier
        start_sample: Offset of the first sample from stream start
        sample_rate: Sample rate of the stream
        shifted: True for windows synthesized from two neighbours
    """
    samples: NDArray[np.float32]
    window_id: int
    start_sample: int
    sample_rate: int = 16000
    shifted: bool = False

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def timestamp_ms(self) -> int:
        """Start of the window in milliseconds from stream start."""
        return int(self.start_sample * 1000 / self.sample_rate)

    @property
    def duration_ms(self) -> float:
        return len(self.samples) * 1000 / self.sample_rate

    @property
    def rms(self) -> float:
        """Root mean square energy."""
        if len(self.samples) == 0:
            return 0.0
        return float(np.sqrt(np.mean(self.samples ** 2)))

    def shifted_with(self, following: Window) -> Window:
        """
        Build the window straddling self and the following window.

        Second half of self followed by the first half of `following`.
        """
        half = len(self.samples) // 2
        head = len(following.samples) // 2
        samples = np.concatenate([self.samples[half:], following.samples[:head]])
        return Window(
            samples=samples,
            window_id=following.window_id,
            start_sample=self.start_sample + half,
            sample_rate=self.sample_rate,
            shifted=True,
        )


@runtime_checkable
class AudioSource(Protocol):
    """Protocol for audio sources delivering raw PCM16 mono chunks."""

    @property
    def config(self) -> AudioConfig:
        """Return audio configuration."""
        ...

    def start(self) -> None:
        """Open the backend. Raises AudioBackendUnavailable."""
        ...

    def chunks(self) -> Iterator[bytes]:
        """Yield raw PCM16 chunks in capture order."""
        ...

    def close(self) -> None:
        """Stop delivery and release the backend."""
        ...
