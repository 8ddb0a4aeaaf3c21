"""
TensorFlow-backed inference engines.

Requires: pip install tensorflow
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
import numpy as np
from numpy.typing import NDArray

from earshot.errors import ModelNotFound
from earshot.inference.base import InferenceEngine, TensorSpec

logger = logging.getLogger(__name__)

SAVED_MODEL_FILES = ("saved_model.pb", "saved_model.pbtxt")
TFLITE_SUFFIX = ".tflite"


def _import_tensorflow():
    os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "2")
    try:
        import tensorflow as tf
    except ImportError:
        raise ImportError(
            "tensorflow is required for model inference.\n"
            "Install with: pip install tensorflow"
        )
    return tf


def _shape(tf_shape) -> tuple[int | None, ...]:
    if tf_shape.rank is None:
        return ()
    return tuple(tf_shape.as_list())


class SavedModelEngine(InferenceEngine):
    """
    TensorFlow SavedModel directory, e.g. the TF Hub YAMNet export.

    Uses the `serving_default` signature, or the first one declared.
    """

    def __init__(self, path: str | Path, signature: str = "serving_default") -> None:
        tf = _import_tensorflow()
        self._tf = tf
        self._path = Path(path)
        self._model = tf.saved_model.load(str(self._path))

        signatures = self._model.signatures
        if signature in signatures:
            self._fn = signatures[signature]
            self._signature = signature
        elif len(signatures) > 0:
            self._signature = next(iter(signatures.keys()))
            self._fn = signatures[self._signature]
            logger.info(f"Signature '{signature}' not found, using '{self._signature}'")
        else:
            raise ModelNotFound(f"SavedModel at {self._path} exposes no serving signatures")

    @property
    def name(self) -> str:
        return f"saved_model:{self._signature}"

    def inputs(self) -> list[TensorSpec]:
        _, kwargs = self._fn.structured_input_signature
        return [TensorSpec(name, _shape(spec.shape)) for name, spec in kwargs.items()]

    def outputs(self) -> list[TensorSpec]:
        return [
            TensorSpec(name, _shape(spec.shape))
            for name, spec in self._fn.structured_outputs.items()
        ]

    def run(
        self,
        input_name: str,
        data: NDArray[np.float32],
        output_name: str,
    ) -> NDArray[np.float32]:
        result = self._fn(**{input_name: self._tf.constant(data, dtype=self._tf.float32)})
        return np.asarray(result[output_name].numpy(), dtype=np.float32)

    def close(self) -> None:
        self._fn = None
        self._model = None


class TFLiteEngine(InferenceEngine):
    """
    TensorFlow Lite flat buffer.

    The input tensor is resized when the window does not fit its declared
    shape.
    """

    def __init__(self, path: str | Path, num_threads: int | None = None) -> None:
        tf = _import_tensorflow()
        self._path = Path(path)
        self._interpreter = tf.lite.Interpreter(
            model_path=str(self._path),
            num_threads=num_threads,
        )
        self._interpreter.allocate_tensors()

    @property
    def name(self) -> str:
        return f"tflite:{self._path.name}"

    @staticmethod
    def _spec(detail: dict) -> TensorSpec:
        signature = detail.get("shape_signature", detail["shape"])
        return TensorSpec(
            detail["name"],
            tuple(None if int(d) < 0 else int(d) for d in signature),
        )

    def inputs(self) -> list[TensorSpec]:
        return [self._spec(d) for d in self._interpreter.get_input_details()]

    def outputs(self) -> list[TensorSpec]:
        return [self._spec(d) for d in self._interpreter.get_output_details()]

    def _detail(self, details: list[dict], name: str) -> dict:
        for detail in details:
            if detail["name"] == name:
                return detail
        raise KeyError(f"Tensor '{name}' not declared by {self.name}")

    def run(
        self,
        input_name: str,
        data: NDArray[np.float32],
        output_name: str,
    ) -> NDArray[np.float32]:
        inp = self._detail(self._interpreter.get_input_details(), input_name)
        out = self._detail(self._interpreter.get_output_details(), output_name)

        shape = tuple(int(d) for d in inp["shape"])
        if int(np.prod(shape)) == data.size:
            data = data.reshape(shape)
        else:
            self._interpreter.resize_tensor_input(inp["index"], list(data.shape))
            self._interpreter.allocate_tensors()

        self._interpreter.set_tensor(inp["index"], data.astype(inp["dtype"], copy=False))
        self._interpreter.invoke()
        return np.asarray(self._interpreter.get_tensor(out["index"]), dtype=np.float32)

    def close(self) -> None:
        self._interpreter = None


def is_saved_model(path: Path) -> bool:
    return path.is_dir() and any((path / f).is_file() for f in SAVED_MODEL_FILES)


def load_engine(path: str | Path, **kwargs) -> InferenceEngine:
    """
    Open the model at `path` with the matching engine.

    A SavedModel directory or a .tflite file. The path is checked before
    tensorflow is imported.

    Raises:
        ModelNotFound: path missing or not a recognizable model
    """
    path = Path(path)

    if not path.exists():
        raise ModelNotFound(
            f"Model not found: {path}\n"
            "Download the YAMNet SavedModel or .tflite file first."
        )

    if is_saved_model(path):
        logger.info(f"Loading SavedModel from {path}")
        return SavedModelEngine(path, **kwargs)

    if path.is_file() and path.suffix.lower() == TFLITE_SUFFIX:
        logger.info(f"Loading TFLite model from {path}")
        return TFLiteEngine(path, **kwargs)

    raise ModelNotFound(
        f"Not a recognizable model: {path}\n"
        f"Expected a directory containing {SAVED_MODEL_FILES[0]} or a *{TFLITE_SUFFIX} file."
    )
