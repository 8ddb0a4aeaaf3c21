"""
earshot - Real-time sound event classifier

earshot cuts a live microphone stream into fixed windows, classifies
them one at a time, and publishes ranked sound classes.
"""

from earshot.core.stream import AudioConfig, Window
from earshot.core.result import ClassificationResult, ResultEvent, ErrorEvent
from earshot.core.accumulator import WindowAccumulator
from earshot.core.dispatch import Dispatcher, DispatchConfig
from earshot.core.pipeline import Pipeline, PipelineConfig
from earshot.inference.adapter import InferenceAdapter
from earshot.inference.base import InferenceEngine
from earshot.labels import LabelCatalog, load_class_map
from earshot.ranking import rank
from earshot.adapters.base import Adapter

__version__ = "0.1.0"
__all__ = [
    # Core data structures
    "AudioConfig",
    "Window",
    "ClassificationResult",
    "ResultEvent",
    "ErrorEvent",
    # Pipeline
    "WindowAccumulator",
    "Dispatcher",
    "DispatchConfig",
    "Pipeline",
    "PipelineConfig",
    # Classification
    "InferenceAdapter",
    "InferenceEngine",
    "LabelCatalog",
    "load_class_map",
    "rank",
    # Extension protocols
    "Adapter",
]
