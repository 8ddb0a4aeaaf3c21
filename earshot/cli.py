"""
earshot command line.

Listens to the microphone and prints the top sound classes for every
classified window.

Usage:
    earshot --model yamnet_model
    earshot --model yamnet.tflite --backend sox --overlap
    earshot --list-devices
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from datetime import datetime

from earshot.adapters import DictAdapter
from earshot.core.dispatch import DispatchConfig
from earshot.core.pipeline import Pipeline, PipelineConfig
from earshot.core.result import ErrorEvent, ResultEvent
from earshot.core.stream import AudioConfig, AudioSource
from earshot.errors import (
    AudioBackendUnavailable,
    LabelSourceUnavailable,
    ModelNotFound,
    TensorResolutionFailed,
)
from earshot.inference.adapter import InferenceAdapter
from earshot.labels import DEFAULT_CACHE_PATH, YAMNET_CLASS_MAP_URL, LabelCatalog, load_class_map

logger = logging.getLogger("earshot")

BAR_WIDTH = 25
LABEL_WIDTH = 22
TABLE_WIDTH = 61


def format_bar(value: float, width: int = BAR_WIDTH, filled: str = "█", empty: str = "░") -> str:
    """Create a visual bar."""
    filled_count = max(0, min(int(value * width), width))
    return filled * filled_count + empty * (width - filled_count)


def truncate(text: str, max_length: int = LABEL_WIDTH) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 2] + ".."


def render_event(event: ResultEvent, now: datetime | None = None) -> str:
    """Boxed table of one result event."""
    now = now or datetime.now()
    title = "Shifted window" if event.shifted else "Current Classifications"
    header = f"  {now:%H:%M:%S} | {title}"

    lines = [
        "┌" + "─" * TABLE_WIDTH + "┐",
        "│" + header.ljust(TABLE_WIDTH) + "│",
        "├" + "─" * TABLE_WIDTH + "┤",
    ]
    for rank, result in enumerate(event.results, start=1):
        row = (
            f"  {rank}. {truncate(result.label):<{LABEL_WIDTH}} "
            f"{result.percentage:5.1f}% {format_bar(result.score)}"
        )
        lines.append("│" + row.ljust(TABLE_WIDTH) + "│")
    lines.append("└" + "─" * TABLE_WIDTH + "┘")
    return "\n".join(lines)


def print_banner() -> None:
    print("╔═══════════════════════════════════════════════════════════╗")
    print("║          earshot - Real-Time Sound Classification         ║")
    print("║               YAMNet | 521 AudioSet classes               ║")
    print("╚═══════════════════════════════════════════════════════════╝")
    print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="earshot",
        description="Real-time sound event classification from the microphone.",
    )
    parser.add_argument("--model", default="yamnet_model",
                        help="SavedModel directory or .tflite file (default: yamnet_model)")
    parser.add_argument("--labels", default=DEFAULT_CACHE_PATH,
                        help="Class map CSV cache path")
    parser.add_argument("--labels-url", default=YAMNET_CLASS_MAP_URL,
                        help="Where to download the class map if not cached")
    parser.add_argument("--no-download", action="store_true",
                        help="Never download the class map")
    parser.add_argument("--backend", choices=("sounddevice", "sox"), default="sounddevice",
                        help="Audio capture backend")
    parser.add_argument("--device", default=None,
                        help="sounddevice input device index or name")
    parser.add_argument("--sample-rate", type=int, default=16000)
    parser.add_argument("--top-k", type=int, default=9)
    parser.add_argument("--overlap", action="store_true",
                        help="Also classify half-shifted windows")
    parser.add_argument("--json", action="store_true",
                        help="Print one JSON object per event instead of tables")
    parser.add_argument("--list-devices", action="store_true",
                        help="List audio devices and exit")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def load_labels(args: argparse.Namespace) -> LabelCatalog:
    """Class map, or an empty catalog (index-only labels) if unavailable."""
    try:
        return load_class_map(args.labels, None if args.no_download else args.labels_url)
    except LabelSourceUnavailable as e:
        print(f"⚠️  {e}")
        print("   Continuing with class indices instead of names.")
        return LabelCatalog.empty()


def make_source(args: argparse.Namespace) -> AudioSource:
    if args.backend == "sox":
        from earshot.sources.sox import SoxSource
        return SoxSource(sample_rate=args.sample_rate)

    from earshot.sources.microphone import MicrophoneSource
    device = int(args.device) if args.device is not None and args.device.isdigit() else args.device
    return MicrophoneSource(sample_rate=args.sample_rate, device=device)


def list_devices(backend: str) -> None:
    if backend == "sox":
        from earshot.sources.sox import install_hint, is_sox_installed
        if is_sox_installed():
            print("✅ SoX is installed. The default audio input device will be used.")
            print("   To see available devices, run: sox --help-device")
        else:
            print("❌ SoX is not installed!\n")
            print(install_hint())
        return

    from earshot.sources.microphone import list_audio_devices
    print(list_audio_devices())


def wait_for_quit() -> None:
    """Return on Enter, `q`, EOF or Ctrl+C."""
    print("\n" + "─" * 60)
    print("Press [Enter] to stop, [Q] to quit")
    print("─" * 60 + "\n")
    try:
        while True:
            line = sys.stdin.readline()
            if not line or line.strip().lower() in ("", "q"):
                break
    except KeyboardInterrupt:
        pass


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    if args.list_devices:
        try:
            list_devices(args.backend)
        except ImportError as e:
            print(f"❌ {e}")
            return 1
        return 0

    if not args.json:
        print_banner()

    try:
        adapter = InferenceAdapter.from_path(args.model)
        adapter.initialize()
    except (ModelNotFound, TensorResolutionFailed, ImportError) as e:
        print(f"\n❌ Failed to load model: {e}")
        return 1

    catalog = load_labels(args)

    config = PipelineConfig(
        audio=AudioConfig(sample_rate=args.sample_rate),
        dispatch=DispatchConfig(top_k=args.top_k, overlap=args.overlap),
    )
    pipeline = Pipeline(adapter, catalog, config)

    if args.json:
        to_dict = DictAdapter()
        emit = lambda event: print(json.dumps(to_dict(event)), flush=True)
        pipeline.on_result(emit).on_error(emit)
    else:
        pipeline.on_result(lambda event: print(render_event(event), flush=True))
        pipeline.on_error(lambda event: print(f"\n❌ Classification error: {event.message}"))

    stopped = threading.Event()
    try:
        source = make_source(args)
        pipeline.start(source)
    except (AudioBackendUnavailable, ImportError) as e:
        print(f"\n❌ Could not start audio capture: {e}")
        print("   Make sure you have a working microphone connected.")
        adapter.close()
        return 1

    def watch_capture() -> None:
        pipeline.wait()
        if not stopped.is_set():
            print("\nAudio capture ended. Press [Enter] to exit.")

    threading.Thread(target=watch_capture, name="earshot-watch", daemon=True).start()

    wait_for_quit()
    stopped.set()
    pipeline.stop()

    if pipeline.capture_error is not None:
        print(f"\n❌ Audio capture stopped: {pipeline.capture_error}")

    if not args.json:
        stats = pipeline.stats()
        latency = stats["latency"]
        print("\n✅ Recording stopped.")
        print(f"   Windows: {stats['windows_emitted']} "
              f"(classified {stats['classifications']}, dropped {stats['windows_dropped']}, "
              f"failed {stats['failures']})")
        if latency:
            print(f"   Latency: mean {latency['mean_ms']:.1f}ms, p95 {latency['p95_ms']:.1f}ms")

    return 1 if pipeline.capture_error is not None else 0


if __name__ == "__main__":
    sys.exit(main())
