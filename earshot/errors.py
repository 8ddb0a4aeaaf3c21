"""
Error taxonomy.

Initialization errors are fatal. Per-chunk and per-window errors are
isolated where they happen and never stop the stream.
"""

from __future__ import annotations

from typing import Iterable


class EarshotError(Exception):
    """Base class for all earshot errors."""


class ModelNotFound(EarshotError, FileNotFoundError):
    """Model path does not resolve to a recognizable model artifact."""


class TensorResolutionFailed(EarshotError):
    """Input or output tensor could not be identified in the model."""

    def __init__(self, message: str, declared: Iterable[str] = ()) -> None:
        self.declared = list(declared)
        if self.declared:
            listing = "\n".join(f"  - {name}" for name in self.declared)
            message = f"{message}\nDeclared tensors:\n{listing}"
        super().__init__(message)


class LabelSourceUnavailable(EarshotError):
    """Class map could not be read or downloaded. Labels degrade to indices."""


class MalformedAudioChunk(EarshotError, ValueError):
    """Raw PCM chunk is not a whole number of 16-bit samples."""


class InferenceFailure(EarshotError):
    """The inference engine raised while classifying one window."""


class AudioBackendUnavailable(EarshotError):
    """Audio device or capture process could not be started."""
