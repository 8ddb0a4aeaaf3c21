"""Audio sources for the earshot pipeline."""

from earshot.sources.synthetic import ArraySource, SineSource, NoiseSource, SilenceSource
from earshot.sources.microphone import MicrophoneSource
from earshot.sources.sox import SoxSource

__all__ = [
    "ArraySource",
    "SineSource",
    "NoiseSource",
    "SilenceSource",
    "MicrophoneSource",
    "SoxSource",
]
