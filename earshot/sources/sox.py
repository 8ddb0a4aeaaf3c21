"""
SoX recorder audio source.

Captures from the default input device by running `sox` as a
long-lived subprocess that writes raw PCM16 to stdout. Works wherever
SoX does, without PortAudio.
"""

from __future__ import annotations

import logging
import shutil
import signal
import subprocess
import sys
import threading
from typing import Iterator

from earshot.core.stream import AudioConfig, AudioSource
from earshot.errors import AudioBackendUnavailable

logger = logging.getLogger(__name__)

SOX_BINARY = "sox"


def platform_input_args(platform: str | None = None) -> list[str]:
    """SoX input device arguments for the current platform."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return ["-t", "waveaudio", "-d"]
    if platform == "darwin":
        return ["-t", "coreaudio", "default"]
    return ["-t", "alsa", "default"]


def build_command(sample_rate: int = 16000, platform: str | None = None) -> list[str]:
    """Command line recording mono signed 16-bit raw PCM to stdout."""
    return [
        SOX_BINARY,
        *platform_input_args(platform),
        "-r", str(sample_rate),
        "-c", "1",
        "-b", "16",
        "-e", "signed-integer",
        "-q",
        "-t", "raw",
        "-",
    ]


def is_sox_installed() -> bool:
    """Check that `sox --version` runs."""
    if shutil.which(SOX_BINARY) is None:
        return False
    try:
        result = subprocess.run(
            [SOX_BINARY, "--version"],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


def install_hint(platform: str | None = None) -> str:
    """How to install SoX on this platform."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return (
            "Install SoX on Windows:\n"
            "  1. Download from: https://sourceforge.net/projects/sox/files/sox/\n"
            "  2. Run the installer and add SoX to PATH\n"
            "Or use Chocolatey:\n"
            "  choco install sox"
        )
    if platform == "darwin":
        return "Install SoX on macOS:\n  brew install sox"
    return (
        "Install SoX on Linux:\n"
        "  Ubuntu/Debian: sudo apt install sox libsox-fmt-all\n"
        "  Fedora:        sudo dnf install sox\n"
        "  Arch:          sudo pacman -S sox"
    )


class SoxSource(AudioSource):
    """
    Audio capture through a `sox` subprocess.

    Usage:
        source = SoxSource()

        for chunk in source.chunks():
            pipeline.feed(chunk)

    close() interrupts sox, waits `grace_period_s`, then kills it.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_bytes: int = 4096,
        grace_period_s: float = 1.0,
    ) -> None:
        if chunk_bytes % 2:
            raise ValueError(f"chunk_bytes must be even, got {chunk_bytes}")
        self._config = AudioConfig(sample_rate=sample_rate, channels=1, chunk_bytes=chunk_bytes)
        self._grace_period_s = grace_period_s
        self._process: subprocess.Popen | None = None
        self._stderr_thread: threading.Thread | None = None
        self._running = False
        self._lock = threading.Lock()

    @property
    def config(self) -> AudioConfig:
        return self._config

    @property
    def command(self) -> list[str]:
        return build_command(self._config.sample_rate)

    def start(self) -> None:
        """
        Launch sox.

        Raises:
            AudioBackendUnavailable: sox missing or failed to start
        """
        if self._process is not None:
            return

        if not is_sox_installed():
            raise AudioBackendUnavailable(
                "SoX is required for audio capture. Please install it first.\n"
                + install_hint()
            )

        cmd = self.command
        logger.info(f"Command: {' '.join(cmd)}")
        try:
            self._process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise AudioBackendUnavailable(
                f"Could not start audio capture: {e}\n"
                "Make sure SoX is installed and a microphone is connected."
            ) from e

        self._running = True
        self._stderr_thread = threading.Thread(
            target=self._log_stderr,
            name="earshot-sox-stderr",
            daemon=True,
        )
        self._stderr_thread.start()
        logger.info(f"Recording started: {self._config.sample_rate}Hz, 16-bit, mono")

    def _log_stderr(self) -> None:
        process = self._process
        if process is None or process.stderr is None:
            return
        try:
            for line in iter(process.stderr.readline, b""):
                text = line.decode(errors="ignore").strip()
                if text and self._running:
                    logger.warning(f"SoX: {text}")
        finally:
            process.stderr.close()

    def chunks(self) -> Iterator[bytes]:
        """
        Yield raw PCM16 chunks read from sox's stdout.

        Ends at EOF or when close() is called.
        """
        self.start()
        process = self._process
        stdout = process.stdout

        try:
            while self._running:
                try:
                    data = stdout.read(self._config.chunk_bytes)
                except (OSError, ValueError):
                    if self._running:
                        raise
                    break
                if not data:
                    if self._running:
                        logger.error(f"SoX stream ended unexpectedly (exit code {process.poll()})")
                    break
                yield data
        finally:
            self.close()
            stdout.close()

    def close(self) -> None:
        """Stop sox: interrupt, wait the grace period, then kill."""
        with self._lock:
            self._running = False
            process, self._process = self._process, None

        if process is None:
            return

        if process.poll() is None:
            try:
                if sys.platform.startswith("win"):
                    process.terminate()
                else:
                    process.send_signal(signal.SIGINT)
                process.wait(timeout=self._grace_period_s)
            except subprocess.TimeoutExpired:
                logger.warning("SoX did not exit after interrupt, killing it")
                process.kill()
                process.wait()
            except OSError as e:
                logger.warning(f"Error stopping SoX: {e}")

        # stdout and stderr are closed by their reader threads at EOF.
