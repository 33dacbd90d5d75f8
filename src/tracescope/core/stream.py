"""
Offline spectrum analyser.

Produces the per-frame dB spectra the feature extractor consumes, the way a
browser analyser node would while the audio plays:

    samples ──► last fft_size samples ──► Blackman window ──► |rfft| / N
            ──► time smoothing (tau) ──► 20·log10 ──► FrequencyFrame

Frames are emitted once per hop of ``sample_rate / fps`` samples.
"""

import logging
import math
from pathlib import Path
from typing import Iterator, Optional, Union

import librosa
import numpy as np
from scipy import signal as scipy_signal

from tracescope.core.analyzer import FrequencyFrame

logger = logging.getLogger(__name__)


class SpectrumAnalyser:
    """
    Windowed FFT with exponential time smoothing and dB output.

    Args:
        fft_size: Analysis window in samples (power of two). Produces
            ``fft_size // 2`` bins.
        smoothing: Time smoothing constant in [0, 1). 0 disables smoothing.
    """

    def __init__(self, fft_size: int = 2048, smoothing: float = 0.7):
        self.fft_size = fft_size
        self.smoothing = smoothing
        self.window = scipy_signal.get_window("blackman", fft_size)
        self._previous: Optional[np.ndarray] = None

    @property
    def n_bins(self) -> int:
        return self.fft_size // 2

    def reset(self):
        """Forget the smoothing history."""
        self._previous = None

    def analyse(self, block: np.ndarray) -> np.ndarray:
        """
        Compute the smoothed dB spectrum of the most recent samples.

        Args:
            block: 1-D time-domain samples. Only the last ``fft_size`` are
                used; shorter blocks are zero-padded at the front.

        Returns:
            ``fft_size // 2`` dB values. Exact silence is ``-inf``.
        """
        block = np.asarray(block, dtype=np.float64).ravel()[-self.fft_size:]
        if block.size < self.fft_size:
            block = np.concatenate([np.zeros(self.fft_size - block.size), block])

        spectrum = np.fft.rfft(block * self.window)[: self.n_bins]
        magnitude = np.abs(spectrum) / self.fft_size

        if self._previous is not None and self.smoothing > 0:
            magnitude = self.smoothing * self._previous + (1.0 - self.smoothing) * magnitude
        self._previous = magnitude

        with np.errstate(divide="ignore"):
            return 20.0 * np.log10(magnitude)


class FrameSource:
    """
    Walks decoded audio as if it were playing, one analyser frame per hop.

    Args:
        samples: Mono audio samples.
        sample_rate: Sample rate in Hz.
        fps: Frames per second to emit.
        fft_size: Analyser window size.
        smoothing: Analyser time smoothing constant.
    """

    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: int,
        fps: int = 60,
        fft_size: int = 2048,
        smoothing: float = 0.7,
    ):
        if fps <= 0:
            raise ValueError(f"fps must be positive; got {fps}")
        self.samples = np.asarray(samples, dtype=np.float32).ravel()
        self.sample_rate = int(sample_rate)
        self.fps = fps
        self.analyser = SpectrumAnalyser(fft_size=fft_size, smoothing=smoothing)

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        fps: int = 60,
        fft_size: int = 2048,
        smoothing: float = 0.7,
        sr: Optional[int] = None,
    ) -> "FrameSource":
        """Decode an audio file to mono and wrap it. ``sr=None`` keeps the native rate."""
        y, sample_rate = librosa.load(str(path), sr=sr, mono=True)
        logger.info(
            "Decoded %s: %.1fs at %d Hz", path, len(y) / max(sample_rate, 1), sample_rate
        )
        return cls(y, sample_rate, fps=fps, fft_size=fft_size, smoothing=smoothing)

    @property
    def hop_length(self) -> int:
        return max(1, int(self.sample_rate / self.fps))

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate

    def __len__(self) -> int:
        return math.ceil(len(self.samples) / self.hop_length)

    def __iter__(self) -> Iterator[FrequencyFrame]:
        self.analyser.reset()
        hop = self.hop_length
        fft_size = self.analyser.fft_size
        for index in range(len(self)):
            end = min((index + 1) * hop, len(self.samples))
            block = self.samples[max(0, end - fft_size):end]
            yield FrequencyFrame(
                decibels=self.analyser.analyse(block),
                sample_rate=self.sample_rate,
            )
