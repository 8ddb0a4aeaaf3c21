"""Tests for console rendering, the CLI entry point and output adapters."""

from datetime import datetime

from earshot import cli
from earshot.adapters import CallbackAdapter, DictAdapter
from earshot.benchmark import LatencyTracker
from earshot.core.result import ClassificationResult, ErrorEvent, ResultEvent
from earshot.errors import InferenceFailure


def make_event(shifted=False):
    return ResultEvent(
        window_id=3,
        timestamp_ms=2925,
        results=(
            ClassificationResult("Speech", 0.8, 0),
            ClassificationResult("Inside, small room and very reverberant", 0.1234, 500),
        ),
        shifted=shifted,
        latency_ms=41.23456,
    )


class TestRendering:
    def test_format_bar(self):
        assert cli.format_bar(0.0) == "░" * 25
        assert cli.format_bar(1.0) == "█" * 25
        assert cli.format_bar(0.5, width=10) == "█" * 5 + "░" * 5
        assert cli.format_bar(1.7, width=4) == "████"

    def test_truncate(self):
        assert cli.truncate("Speech") == "Speech"
        assert cli.truncate("x" * 22) == "x" * 22
        assert cli.truncate("x" * 30) == "x" * 20 + ".."

    def test_render_event(self):
        text = cli.render_event(make_event(), now=datetime(2024, 1, 1, 12, 30, 5))
        lines = text.splitlines()

        assert "12:30:05 | Current Classifications" in lines[1]
        assert "1. Speech" in lines[3]
        assert " 80.0% " in lines[3]
        assert "2. Inside, small room a.." in lines[4]
        assert " 12.3% " in lines[4]
        assert len({len(line) for line in lines}) == 1

    def test_render_shifted_event(self):
        text = cli.render_event(make_event(shifted=True), now=datetime(2024, 1, 1))
        assert "Shifted window" in text


class TestMain:
    def test_missing_model_exits_with_error(self, tmp_path, capsys):
        code = cli.main(["--model", str(tmp_path / "missing"), "--json"])

        assert code == 1
        assert "Failed to load model" in capsys.readouterr().out

    def test_parser_defaults(self):
        args = cli.build_parser().parse_args([])
        assert args.model == "yamnet_model"
        assert args.top_k == 9
        assert args.backend == "sounddevice"
        assert not args.overlap

    def test_labels_degrade_to_indices(self, tmp_path):
        args = cli.build_parser().parse_args(
            ["--labels", str(tmp_path / "map.csv"), "--no-download"]
        )
        catalog = cli.load_labels(args)
        assert len(catalog) == 0
        assert catalog.label(7) == "Class 7"


class TestAdapters:
    def test_dict_adapter_result(self):
        data = DictAdapter()(make_event())

        assert data["type"] == "result"
        assert data["window_id"] == 3
        assert data["latency_ms"] == 41.235
        assert data["results"][0] == {"label": "Speech", "score": 0.8, "class_index": 0}

    def test_dict_adapter_error(self):
        event = ErrorEvent(window_id=1, timestamp_ms=975, error=InferenceFailure("bad shape"))
        data = DictAdapter().transform(event)

        assert data == {
            "type": "error",
            "window_id": 1,
            "timestamp_ms": 975,
            "shifted": False,
            "error": "InferenceFailure",
            "message": "bad shape",
        }

    def test_callback_adapter(self):
        seen = []
        adapter = CallbackAdapter(seen.append)
        adapter.batch_transform([make_event(), make_event(shifted=True)])
        assert [e.shifted for e in seen] == [False, True]


class TestLatencyTracker:
    def test_measure_records(self):
        tracker = LatencyTracker(budget_ms=1000.0)
        with tracker.measure("classify") as timing:
            pass

        assert timing.duration_ms >= 0.0
        assert tracker.last("classify") == timing.duration_ms
        assert tracker.get_stats("classify")["sample_count"] == 1
        assert not tracker.is_over_budget("classify")

    def test_budget(self):
        tracker = LatencyTracker(budget_ms=10.0)
        tracker.record("classify", 5.0)
        tracker.record("classify", 25.0)

        stats = tracker.get_stats("classify")
        assert tracker.is_over_budget("classify")
        assert stats["over_budget_rate"] == 0.5
        assert stats["max_ms"] == 25.0

    def test_unknown_operation(self):
        tracker = LatencyTracker()
        assert tracker.get_stats("nothing") == {}
        assert tracker.last("nothing") == 0.0
        tracker.record("x", 1.0)
        tracker.reset()
        assert tracker.get_all_stats() == {}
