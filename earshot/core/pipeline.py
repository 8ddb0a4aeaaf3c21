"""
Core processing pipeline.

The pipeline wires an audio source to the accumulator and the
dispatcher, and owns the capture thread and the shutdown order.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, TYPE_CHECKING

from earshot.core.accumulator import WindowAccumulator
from earshot.core.dispatch import Dispatcher, DispatchConfig
from earshot.core.result import ErrorEvent, ResultEvent
from earshot.core.stream import AudioConfig, AudioSource, pcm16_to_float
from earshot.errors import MalformedAudioChunk
from earshot.inference.adapter import YAMNET_NUM_CLASSES, YAMNET_WINDOW_SIZE

if TYPE_CHECKING:
    from earshot.inference.adapter import InferenceAdapter
    from earshot.labels import LabelCatalog

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """Pipeline configuration."""
    audio: AudioConfig = field(default_factory=AudioConfig)
    window_size: int = YAMNET_WINDOW_SIZE
    num_classes: int = YAMNET_NUM_CLASSES
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)


class Pipeline:
    """
    Main processing pipeline.

    Capture runs on its own thread (or the caller's, with `run`);
    classification runs on the dispatcher's worker thread.

    Usage:
        pipeline = Pipeline(adapter, catalog, PipelineConfig())
        pipeline.on_result(show)

        pipeline.start(MicrophoneSource())
        input()
        pipeline.stop()
    """

    def __init__(
        self,
        adapter: InferenceAdapter,
        catalog: LabelCatalog | None = None,
        config: PipelineConfig | None = None,
    ) -> None:
        self._config = config or PipelineConfig()
        self._adapter = adapter
        self._accumulator = WindowAccumulator(
            window_size=self._config.window_size,
            sample_rate=self._config.audio.sample_rate,
        )
        self._dispatcher = Dispatcher(adapter, catalog, self._config.dispatch)
        self._accumulator.on_window(self._dispatcher.submit)

        self._source: AudioSource | None = None
        self._capture_thread: threading.Thread | None = None
        self._running = False
        self._stopped = False
        self._malformed_chunks = 0
        self._capture_error: Exception | None = None

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def accumulator(self) -> WindowAccumulator:
        return self._accumulator

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def capture_error(self) -> Exception | None:
        """Exception that ended the capture loop, if any."""
        return self._capture_error

    def on_result(self, callback: Callable[[ResultEvent], None]) -> Pipeline:
        """Register a callback for result events. Returns self for chaining."""
        self._dispatcher.on_result(callback)
        return self

    def on_error(self, callback: Callable[[ErrorEvent], None]) -> Pipeline:
        """Register a callback for classification errors. Returns self for chaining."""
        self._dispatcher.on_error(callback)
        return self

    def feed(self, chunk: bytes) -> int:
        """
        Push one raw PCM16 chunk through the pipeline.

        Malformed chunks are logged and dropped. Returns the number of
        windows the chunk completed.
        """
        try:
            samples = pcm16_to_float(chunk)
        except MalformedAudioChunk as e:
            self._malformed_chunks += 1
            logger.warning(f"Dropped audio chunk: {e}")
            return 0
        return len(self._accumulator.append(samples))

    def start(self, source: AudioSource) -> None:
        """
        Start classifying `source` in the background.

        The adapter is initialized first so configuration errors surface
        here, before any audio is captured.
        """
        self._begin(source)
        self._capture_thread = threading.Thread(
            target=self._capture,
            args=(source,),
            name="earshot-capture",
            daemon=True,
        )
        self._capture_thread.start()

    def run(self, source: AudioSource) -> None:
        """Classify `source` on the calling thread until it ends, then stop."""
        self._begin(source)
        try:
            self._capture(source)
        finally:
            self.stop()

    def _begin(self, source: AudioSource) -> None:
        """Initialize the model, start the dispatcher, open the source."""
        if self._running:
            raise RuntimeError("Pipeline is already running")

        self._adapter.initialize()
        self._dispatcher.start()
        try:
            source.start()
        except Exception:
            self._dispatcher.stop()
            raise

        self._source = source
        self._capture_error = None
        self._running = True
        self._stopped = False

    def _capture(self, source: AudioSource) -> None:
        try:
            for chunk in source.chunks():
                if not self._running:
                    break
                self.feed(chunk)
        except Exception as e:
            self._capture_error = e
            logger.error(f"Audio capture failed: {e}")
        finally:
            self._running = False

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the capture loop to end. Returns False on timeout."""
        if self._capture_thread is None:
            return True
        self._capture_thread.join(timeout)
        return not self._capture_thread.is_alive()

    def stop(self) -> None:
        """
        Shut down: source first, then the partial buffer, then the
        in-flight classification, then the model. Does nothing if the
        pipeline was never started.
        """
        if self._stopped or self._source is None:
            return
        self._stopped = True
        self._running = False

        self._source.close()
        if self._capture_thread is not None and self._capture_thread is not threading.current_thread():
            self._capture_thread.join(self._config.dispatch.stop_timeout_s)
        self._capture_thread = None

        dropped = self._accumulator.clear()
        if dropped:
            logger.info(f"Discarded {dropped} samples of incomplete window")

        if self._dispatcher.stop():
            self._adapter.close()
        else:
            logger.warning("Inference engine left open: classification did not finish")

    def stats(self) -> dict[str, object]:
        """Capture and dispatch counters."""
        return {
            "samples_received": self._accumulator.samples_received,
            "windows_emitted": self._accumulator.windows_emitted,
            "malformed_chunks": self._malformed_chunks,
            **self._dispatcher.stats(),
        }
