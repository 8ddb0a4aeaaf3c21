"""Shared fakes: an inference engine that needs no model."""

import threading

import numpy as np
import pytest

from earshot.inference.base import InferenceEngine, TensorSpec

W = 15600
C = 521


class FakeEngine(InferenceEngine):
    """
    Scripted engine.

    - scores: per-class vector returned for every call (tiled to `frames` rows)
    - gate: if set, run() blocks until the event is set
    - fail_calls: 1-based call numbers that raise
    """

    def __init__(
        self,
        scores=None,
        num_classes=C,
        frames=1,
        gate=None,
        fail_calls=(),
        inputs=None,
        outputs=None,
    ):
        if scores is None:
            scores = np.linspace(1.0, 0.0, num_classes, dtype=np.float32)
        self.scores = np.asarray(scores, dtype=np.float32)
        self.frames = frames
        self.gate = gate
        self.fail_calls = set(fail_calls)
        self._inputs = inputs or [TensorSpec("waveform", (None,))]
        self._outputs = outputs or [
            TensorSpec("output_0", (None, num_classes)),
            TensorSpec("output_1", (None, 1024)),
        ]
        self.calls = []
        self.resolve_count = 0
        self.started = threading.Event()
        self.closed = False

    @property
    def name(self):
        return "fake"

    def inputs(self):
        self.resolve_count += 1
        return list(self._inputs)

    def outputs(self):
        return list(self._outputs)

    def run(self, input_name, data, output_name):
        self.calls.append(np.array(data, copy=True))
        self.started.set()
        if self.gate is not None:
            self.gate.wait(5.0)
        if len(self.calls) in self.fail_calls:
            raise RuntimeError("engine exploded")
        return np.tile(self.scores, (self.frames, 1))

    def close(self):
        self.closed = True


@pytest.fixture
def engine():
    return FakeEngine()


def make_window_samples(start=0, size=W):
    """Samples whose values encode their position, scaled into [-1, 1)."""
    return (np.arange(start, start + size, dtype=np.float32) % 32768) / 32768.0
