"""Core data structures and pipeline."""

from earshot.core.stream import AudioConfig, AudioSource, Window, pcm16_to_float
from earshot.core.result import ClassificationResult, ResultEvent, ErrorEvent
from earshot.core.accumulator import WindowAccumulator
from earshot.core.dispatch import Dispatcher, DispatchConfig, DispatchState
from earshot.core.pipeline import Pipeline, PipelineConfig

__all__ = [
    "AudioConfig",
    "AudioSource",
    "Window",
    "pcm16_to_float",
    "ClassificationResult",
    "ResultEvent",
    "ErrorEvent",
    "WindowAccumulator",
    "Dispatcher",
    "DispatchConfig",
    "DispatchState",
    "Pipeline",
    "PipelineConfig",
]
