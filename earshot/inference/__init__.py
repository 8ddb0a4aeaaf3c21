"""Inference engines and the classification adapter."""

from earshot.inference.base import InferenceEngine, TensorSpec
from earshot.inference.resolver import ResolvedTensors, resolve_tensors
from earshot.inference.engines import SavedModelEngine, TFLiteEngine, load_engine
from earshot.inference.adapter import InferenceAdapter

__all__ = [
    "InferenceEngine",
    "TensorSpec",
    "ResolvedTensors",
    "resolve_tensors",
    "SavedModelEngine",
    "TFLiteEngine",
    "load_engine",
    "InferenceAdapter",
]
