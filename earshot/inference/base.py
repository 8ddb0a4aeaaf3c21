"""
Base inference engine protocol.

Engines wrap an external model runtime. They know nothing about
windows, labels or ranking - they run one tensor in, one tensor out.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True, slots=True)
class TensorSpec:
    """Declared model tensor. Dynamic dimensions are None."""
    name: str
    shape: tuple[int | None, ...] = ()

    @property
    def last_dim(self) -> int | None:
        return self.shape[-1] if self.shape else None

    def __str__(self) -> str:
        dims = ", ".join("?" if d is None else str(d) for d in self.shape)
        return f"{self.name}: [{dims}]"


class InferenceEngine(ABC):
    """
    Abstract base for inference engines.

    Implementation requirements:
    - inputs()/outputs() must be cheap and stable after construction
    - run() executes exactly one inference call
    - run() may raise anything; the adapter wraps it
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Engine name for diagnostics."""
        ...

    @abstractmethod
    def inputs(self) -> list[TensorSpec]:
        """Declared input tensors."""
        ...

    @abstractmethod
    def outputs(self) -> list[TensorSpec]:
        """Declared output tensors."""
        ...

    @abstractmethod
    def run(
        self,
        input_name: str,
        data: NDArray[np.float32],
        output_name: str,
    ) -> NDArray[np.float32]:
        """
        Feed `data` as `input_name` and return `output_name`.

        Args:
            input_name: Resolved input tensor name
            data: 1-D float32 waveform
            output_name: Resolved output tensor name

        Returns:
            Raw output array, any rank
        """
        ...

    def close(self) -> None:
        """Release engine resources (if any)."""
        pass
