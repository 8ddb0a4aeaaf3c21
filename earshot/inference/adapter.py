"""
Inference adapter.

Turns an engine with arbitrary tensor names and output shapes into a
stable `classify(window) -> scores` call.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
import numpy as np
from numpy.typing import NDArray

from earshot.core.stream import Window
from earshot.errors import InferenceFailure
from earshot.inference.base import InferenceEngine
from earshot.inference.engines import load_engine
from earshot.inference.resolver import ResolvedTensors, resolve_tensors

logger = logging.getLogger(__name__)

YAMNET_NUM_CLASSES = 521
YAMNET_WINDOW_SIZE = 15600


class InferenceAdapter:
    """
    Single-window classifier over an InferenceEngine.

    Usage:
        adapter = InferenceAdapter.from_path("yamnet_model")
        adapter.initialize()

        scores = adapter.classify(window)   # shape (521,)
    """

    def __init__(
        self,
        engine: InferenceEngine,
        num_classes: int = YAMNET_NUM_CLASSES,
        window_size: int = YAMNET_WINDOW_SIZE,
    ) -> None:
        self._engine = engine
        self._num_classes = num_classes
        self._window_size = window_size
        self._tensors: ResolvedTensors | None = None
        self._init_lock = threading.Lock()

    @classmethod
    def from_path(cls, path: str | Path, **kwargs) -> InferenceAdapter:
        """Load the model at `path`. Raises ModelNotFound."""
        return cls(load_engine(path), **kwargs)

    @property
    def engine(self) -> InferenceEngine:
        return self._engine

    @property
    def num_classes(self) -> int:
        return self._num_classes

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def tensors(self) -> ResolvedTensors | None:
        return self._tensors

    @property
    def is_initialized(self) -> bool:
        return self._tensors is not None

    def initialize(self) -> ResolvedTensors:
        """
        Resolve input/output tensors. Runs once; later calls are no-ops.

        Raises:
            TensorResolutionFailed: model does not expose usable tensors
        """
        with self._init_lock:
            if self._tensors is not None:
                return self._tensors

            inputs = self._engine.inputs()
            outputs = self._engine.outputs()

            logger.info(f"Model tensors found ({self._engine.name}):")
            for spec in [*inputs, *outputs]:
                logger.info(f"  - {spec}")

            tensors = resolve_tensors(inputs, outputs, self._num_classes)
            logger.info(f"Using input tensor:  {tensors.input.name}")
            logger.info(f"Using output tensor: {tensors.output.name}")

            self._tensors = tensors
            return tensors

    def classify(self, window: Window | NDArray[np.float32]) -> NDArray[np.float32]:
        """
        Score one window.

        Multi-frame output (frames x classes) is averaged per class.

        Returns:
            float32 vector of length num_classes

        Raises:
            InferenceFailure: the engine call failed or returned an
                unexpected shape
        """
        tensors = self.initialize()

        samples = window.samples if isinstance(window, Window) else window
        samples = np.asarray(samples, dtype=np.float32).ravel()
        if len(samples) != self._window_size:
            logger.warning(f"Expected {self._window_size} samples, got {len(samples)}")

        try:
            raw = self._engine.run(tensors.input.name, samples, tensors.output.name)
        except Exception as e:
            raise InferenceFailure(f"{self._engine.name} failed: {e}") from e

        return self._flatten(np.asarray(raw, dtype=np.float32))

    def _flatten(self, raw: NDArray[np.float32]) -> NDArray[np.float32]:
        """Reduce 1xC or FxC output to a flat C vector."""
        if raw.ndim < 2:
            # A flat vector must be exactly one frame
            valid = raw.size == self._num_classes
        else:
            valid = raw.size > 0 and raw.size % self._num_classes == 0
        if not valid:
            raise InferenceFailure(
                f"Output of shape {raw.shape} does not hold {self._num_classes} classes"
            )
        if raw.ndim < 2:
            return raw.reshape(self._num_classes)
        return raw.reshape(-1, self._num_classes).mean(axis=0)

    def close(self) -> None:
        """Release the engine."""
        self._engine.close()

    def __enter__(self) -> InferenceAdapter:
        return self

    def __exit__(self, *args) -> None:
        self.close()
