"""Pytest configuration and shared fixtures."""

import os
import sys
from pathlib import Path

import numpy as np
import pytest

from tracescope.config import TraceConfig
from tracescope.core.analyzer import FrequencyFrame

# Default sample rate for test audio
TEST_SR = 22050

# Bin count of a 2048-point analyser
N_BINS = 1024


def db_frame(decibels, sample_rate: float = 44100.0) -> FrequencyFrame:
    """Wrap a dB array as a FrequencyFrame."""
    return FrequencyFrame(decibels=np.asarray(decibels, dtype=np.float64), sample_rate=sample_rate)


@pytest.fixture
def sample_rate() -> int:
    """Default sample rate for tests."""
    return TEST_SR


@pytest.fixture
def silent_frame() -> FrequencyFrame:
    """Every bin at -inf dB (all-zero magnitude)."""
    return db_frame(np.full(N_BINS, -np.inf))


@pytest.fixture
def single_bin_frame() -> FrequencyFrame:
    """One 0 dB bin at N/2, everything else silent, 44.1 kHz."""
    db = np.full(N_BINS, -np.inf)
    db[N_BINS // 2] = 0.0
    return db_frame(db, sample_rate=44100.0)


@pytest.fixture
def noisy_frames() -> list[FrequencyFrame]:
    """A short, reproducible run of varied spectra."""
    rng = np.random.default_rng(7)
    frames = []
    for i in range(24):
        db = rng.uniform(-90.0, -20.0, N_BINS)
        db[: 40 + 10 * (i % 6)] += 30.0
        frames.append(db_frame(db))
    return frames


@pytest.fixture
def visible_config() -> TraceConfig:
    """Small surfaces and wide strokes so single segments survive the threshold."""
    return TraceConfig(
        canvas_width=200,
        canvas_height=200,
        raster_width=100,
        raster_height=100,
        core_width_factor=12.0,
        margin=10,
        edge_cushion=5,
        blur_radius=1.0,
        inertia=0.5,
    )


@pytest.fixture
def pure_sine(sample_rate: int) -> tuple[np.ndarray, int]:
    """
    Generate a 1 second 440Hz sine wave (A4 note).

    Returns:
        Tuple of (audio_signal, sample_rate).
    """
    duration = 1.0
    t = np.linspace(0, duration, int(sample_rate * duration), endpoint=False)
    y = 0.5 * np.sin(2 * np.pi * 440.0 * t)
    return y.astype(np.float32), sample_rate


@pytest.fixture
def sweep_signal(sample_rate: int) -> tuple[np.ndarray, int]:
    """A rising chirp with a click every quarter second."""
    duration = 1.0
    t = np.linspace(0, duration, int(sample_rate * duration), endpoint=False)
    y = 0.3 * np.sin(2 * np.pi * (200.0 + 3000.0 * t) * t)

    click_len = int(sample_rate * 0.01)
    for start in range(0, len(y), sample_rate // 4):
        end = min(start + click_len, len(y))
        y[start:end] += 0.6 * np.exp(-np.linspace(0, 5, end - start))
    return y.astype(np.float32), sample_rate


@pytest.fixture
def temp_audio_file(tmp_path, sweep_signal):
    """Create a temporary audio file for testing file I/O."""
    import soundfile as sf

    y, sr = sweep_signal
    audio_path = tmp_path / "test_audio.wav"
    sf.write(audio_path, y, sr)
    return audio_path


@pytest.fixture
def make_frame():
    """Factory turning a dB array into a FrequencyFrame."""
    return db_frame


@pytest.fixture
def stub_ffmpeg(tmp_path, monkeypatch):
    """
    Factory putting a shell-script ``ffmpeg`` first on PATH.

    The script body receives ffmpeg's arguments; frames arrive on stdin.
    """
    if sys.platform == "win32":
        pytest.skip("ffmpeg stub is a POSIX shell script")

    bin_dir = tmp_path / "stub_bin"
    bin_dir.mkdir()

    def install(body: str) -> Path:
        script = bin_dir / "ffmpeg"
        script.write_text("#!/bin/sh\n" + body + "\n")
        script.chmod(0o755)
        monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
        return script

    return install
