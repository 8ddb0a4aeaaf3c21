#!/usr/bin/env python3
"""
earshot Microphone Demo

Live sound classification from the microphone, showing only the top
class per window with a colored confidence bar.

Usage:
    python examples/microphone_demo.py [path/to/yamnet_model]

Requires:
    pip install sounddevice tensorflow

Stop with Ctrl+C.
"""

import sys
import time

from earshot import Pipeline, PipelineConfig, DispatchConfig, InferenceAdapter
from earshot.cli import format_bar
from earshot.errors import AudioBackendUnavailable, LabelSourceUnavailable
from earshot.labels import LabelCatalog, load_class_map


def color(text: str, code: int) -> str:
    """Add ANSI color to text."""
    return f"\033[{code}m{text}\033[0m"


def print_top(event):
    top = event.top
    if top is None:
        return
    code = 32 if top.score >= 0.5 else 33 if top.score >= 0.2 else 90
    marker = "~" if event.shifted else " "
    print(
        f"{marker}[{event.timestamp_ms / 1000:7.2f}s] "
        f"{color(f'{top.label:<30}', code)} [{format_bar(top.score, width=20)}] "
        f"{top.percentage:5.1f}%  ({event.latency_ms:.0f}ms)"
    )


def main():
    print("\n" + "=" * 60)
    print("  [MIC] earshot Microphone Demo")
    print("=" * 60)

    try:
        from earshot.sources.microphone import MicrophoneSource, list_audio_devices
        print(list_audio_devices())
    except ImportError as e:
        print(f"\n  [ERROR] {e}\n")
        return 1

    model = sys.argv[1] if len(sys.argv) > 1 else "yamnet_model"
    adapter = InferenceAdapter.from_path(model)

    try:
        catalog = load_class_map()
    except LabelSourceUnavailable:
        catalog = LabelCatalog.empty()

    pipeline = Pipeline(
        adapter,
        catalog,
        PipelineConfig(dispatch=DispatchConfig(top_k=1, overlap=True)),
    )
    pipeline.on_result(print_top)
    pipeline.on_error(lambda event: print(f"  [ERROR] {event.message}"))

    try:
        pipeline.start(MicrophoneSource())
    except AudioBackendUnavailable as e:
        print(f"\n  [ERROR] {e}\n")
        adapter.close()
        return 1

    print("\n  [REC] Listening... (Ctrl+C to stop)\n")
    try:
        while pipeline.is_running:
            time.sleep(0.2)
    except KeyboardInterrupt:
        pass
    finally:
        pipeline.stop()

    stats = pipeline.stats()
    print(f"\n  [STOP] {stats['classifications']} windows classified, "
          f"{stats['windows_dropped']} dropped.\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
