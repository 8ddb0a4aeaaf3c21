"""
earshot Basic Usage Example

Classifies synthetic audio with a YAMNet model, without a microphone.

Usage:
    python examples/basic_usage.py path/to/yamnet_model
"""

import json
import sys

from earshot import Pipeline, PipelineConfig, DispatchConfig, InferenceAdapter
from earshot.adapters import DictAdapter
from earshot.errors import LabelSourceUnavailable
from earshot.labels import LabelCatalog, load_class_map
from earshot.sources import NoiseSource, SilenceSource, SineSource


def load_catalog() -> LabelCatalog:
    try:
        return load_class_map()
    except LabelSourceUnavailable as e:
        print(f"Labels unavailable ({e}), using class indices")
        return LabelCatalog.empty()


def example_run(model_path: str):
    """Run three synthetic signals through the pipeline."""
    print("=" * 60)
    print("Synthetic Audio Example")
    print("=" * 60)

    catalog = load_catalog()
    sources = {
        "440 Hz sine": SineSource(frequency_hz=440, duration_ms=2000),
        "white noise": NoiseSource(amplitude=0.3, duration_ms=2000, seed=0),
        "silence": SilenceSource(duration_ms=2000),
    }

    for name, source in sources.items():
        adapter = InferenceAdapter.from_path(model_path)
        pipeline = Pipeline(adapter, catalog, PipelineConfig(dispatch=DispatchConfig(top_k=3)))

        events = []
        pipeline.on_result(events.append)
        pipeline.run(source)

        print(f"\n{name}: {len(events)} windows classified")
        for event in events:
            labels = ", ".join(f"{r.label} {r.percentage:.0f}%" for r in event.results)
            print(f"  [{event.timestamp_ms / 1000:4.2f}s] {labels}")


def example_json(model_path: str):
    """Print events as JSON lines."""
    print("\n" + "=" * 60)
    print("JSON Output Example")
    print("=" * 60 + "\n")

    to_dict = DictAdapter()
    adapter = InferenceAdapter.from_path(model_path)
    pipeline = Pipeline(adapter, load_catalog())
    pipeline.on_result(lambda event: print(json.dumps(to_dict(event))))
    pipeline.run(SineSource(frequency_hz=1000, duration_ms=1000))


if __name__ == "__main__":
    model = sys.argv[1] if len(sys.argv) > 1 else "yamnet_model"
    example_run(model)
    example_json(model)
