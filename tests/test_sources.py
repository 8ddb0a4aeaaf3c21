"""Tests for audio sources. No real device or sox binary is needed."""

import io
import signal
import subprocess

import numpy as np
import pytest

from earshot.errors import AudioBackendUnavailable
from earshot.sources import ArraySource, NoiseSource, SilenceSource, SineSource
from earshot.sources import microphone, sox
from earshot.sources.microphone import MicrophoneSource
from earshot.sources.sox import SoxSource, build_command, is_sox_installed, platform_input_args


class TestArraySource:
    def test_chunking(self):
        source = ArraySource(np.arange(5000, dtype=np.int16))
        chunks = list(source.chunks())

        assert [len(c) for c in chunks] == [4096, 4096, 1808]
        assert b"".join(chunks) == np.arange(5000, dtype="<i2").tobytes()

    def test_float_data_converted_to_pcm(self):
        source = ArraySource(np.array([0.5, -0.5], dtype=np.float32))
        raw = b"".join(source.chunks())
        assert np.frombuffer(raw, dtype="<i2").tolist() == [16384, -16384]

    def test_close_ends_iteration(self):
        source = SilenceSource(duration_ms=1000)
        it = source.chunks()
        next(it)
        source.close()
        assert list(it) == []

    def test_generators(self):
        assert SineSource(duration_ms=500).total_samples == 8000
        assert SilenceSource(duration_ms=250).total_samples == 4000

        a = b"".join(NoiseSource(seed=3).chunks())
        b = b"".join(NoiseSource(seed=3).chunks())
        assert a == b


class TestSoxCommand:
    @pytest.mark.parametrize("platform, device", [
        ("win32", ["-t", "waveaudio", "-d"]),
        ("darwin", ["-t", "coreaudio", "default"]),
        ("linux", ["-t", "alsa", "default"]),
    ])
    def test_platform_input(self, platform, device):
        assert platform_input_args(platform) == device
        assert build_command(16000, platform)[1:1 + len(device)] == device

    def test_output_format(self):
        cmd = build_command(16000, "linux")
        assert cmd[0] == "sox"
        assert cmd[-8:] == ["-b", "16", "-e", "signed-integer", "-q", "-t", "raw", "-"]
        assert cmd[cmd.index("-r") + 1] == "16000"
        assert cmd[cmd.index("-c") + 1] == "1"

    def test_not_installed_when_missing_from_path(self, monkeypatch):
        monkeypatch.setattr(sox.shutil, "which", lambda name: None)
        assert is_sox_installed() is False

    def test_odd_chunk_size_rejected(self):
        with pytest.raises(ValueError):
            SoxSource(chunk_bytes=4095)


class FakeProcess:
    def __init__(self, data=b"", stderr=b"", stubborn=False):
        self.stdout = io.BytesIO(data)
        self.stderr = io.BytesIO(stderr)
        self.stubborn = stubborn
        self.signals = []
        self.killed = False
        self.returncode = None

    def poll(self):
        return self.returncode

    def send_signal(self, sig):
        self.signals.append(sig)

    def terminate(self):
        self.signals.append("terminate")

    def wait(self, timeout=None):
        if self.stubborn and timeout is not None:
            raise subprocess.TimeoutExpired("sox", timeout)
        self.returncode = 0
        return 0

    def kill(self):
        self.killed = True


@pytest.fixture
def fake_sox(monkeypatch):
    """Patch sox discovery and Popen; returns the list of started processes."""
    started = []
    monkeypatch.setattr(sox, "is_sox_installed", lambda: True)
    monkeypatch.setattr(sox.sys, "platform", "linux")

    def install(**kwargs):
        def popen(cmd, stdout, stderr):
            process = FakeProcess(**kwargs)
            started.append((cmd, process))
            return process
        monkeypatch.setattr(sox.subprocess, "Popen", popen)
        return started

    return install


class TestSoxSource:
    def test_reads_until_eof_then_interrupts(self, fake_sox):
        started = fake_sox(data=b"\x01\x00" * 5000)
        source = SoxSource()

        chunks = list(source.chunks())

        assert [len(c) for c in chunks] == [4096, 4096, 1808]
        cmd, process = started[0]
        assert cmd == build_command(16000, "linux")
        assert process.signals == [signal.SIGINT]
        assert not process.killed
        assert process.stdout.closed

    def test_killed_after_grace_period(self, fake_sox):
        started = fake_sox(data=b"\x00" * 10, stubborn=True)
        source = SoxSource(grace_period_s=0.01)

        list(source.chunks())

        _, process = started[0]
        assert process.signals == [signal.SIGINT]
        assert process.killed

    def test_close_is_idempotent(self, fake_sox):
        started = fake_sox()
        source = SoxSource()
        source.start()
        source.close()
        source.close()
        assert len(started[0][1].signals) == 1

    def test_missing_sox(self, monkeypatch):
        monkeypatch.setattr(sox, "is_sox_installed", lambda: False)
        with pytest.raises(AudioBackendUnavailable, match="SoX"):
            SoxSource().start()

    def test_popen_failure(self, monkeypatch):
        monkeypatch.setattr(sox, "is_sox_installed", lambda: True)

        def popen(*args, **kwargs):
            raise FileNotFoundError("sox")

        monkeypatch.setattr(sox.subprocess, "Popen", popen)
        with pytest.raises(AudioBackendUnavailable):
            SoxSource().start()


class FakeStream:
    def __init__(self, callback, blocksize, **kwargs):
        self.callback = callback
        self.blocksize = blocksize
        self.kwargs = kwargs
        self.stopped = False
        self.closed = False

    def start(self):
        self.callback(b"\x01\x00" * self.blocksize, self.blocksize, None, None)

    def stop(self):
        self.stopped = True

    def close(self):
        self.closed = True


class FakeSoundDevice:
    def __init__(self, fail=False):
        self.fail = fail
        self.streams = []

    def RawInputStream(self, **kwargs):
        if self.fail:
            raise RuntimeError("Error querying device -1")
        stream = FakeStream(**kwargs)
        self.streams.append(stream)
        return stream


class TestMicrophoneSource:
    def test_chunks_from_callback(self, monkeypatch):
        sd = FakeSoundDevice()
        monkeypatch.setattr(microphone, "_import_sounddevice", lambda: sd)
        source = MicrophoneSource()

        it = source.chunks()
        chunk = next(it)
        source.close()
        it.close()

        assert chunk == b"\x01\x00" * 2048
        stream = sd.streams[0]
        assert stream.kwargs["dtype"] == "int16"
        assert stream.kwargs["samplerate"] == 16000
        assert stream.stopped and stream.closed

    def test_device_failure(self, monkeypatch):
        monkeypatch.setattr(microphone, "_import_sounddevice", lambda: FakeSoundDevice(fail=True))
        with pytest.raises(AudioBackendUnavailable):
            MicrophoneSource().start()

    def test_overflow_counted(self):
        source = MicrophoneSource(max_queued_chunks=1)
        source._audio_callback(b"\x00\x00", 1, None, None)
        source._audio_callback(b"\x00\x00", 1, None, None)
        assert source.overflows == 1
