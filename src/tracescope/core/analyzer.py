"""
Spectral feature extraction.

Turns one frame of log-magnitude frequency bins into the ten scalar
features that drive the trace: centroid, energy, flux, flatness, rolloff,
spread, entropy, crest, slope and density.
"""

from dataclasses import asdict, dataclass
from typing import Dict, Iterator, Optional, Tuple

import numpy as np

from tracescope.config import FEATURE_NAMES

EPSILON = 1e-12
ROLLOFF_FRACTION = 0.85


@dataclass(frozen=True)
class FrequencyFrame:
    """One analyser frame: N bin magnitudes in dB plus the sample rate."""

    decibels: np.ndarray
    sample_rate: float

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive; got {self.sample_rate}")

    @property
    def n_bins(self) -> int:
        return int(np.size(self.decibels))

    @property
    def nyquist(self) -> float:
        return self.sample_rate / 2.0


@dataclass(frozen=True)
class FeatureVector:
    """The ten per-frame spectral features."""

    centroid: float     # [0, 1], fraction of nyquist
    energy: float       # log-compressed, >= 0
    flux: float         # log-compressed, >= 0
    flatness: float     # [0, 1]
    rolloff: float      # [0, 1], fraction of bins
    spread: float       # [0, 1]-ish, fraction of nyquist
    entropy: float      # [0, 1]
    crest: float        # >= 0
    slope: float        # signed, magnitude per bin
    density: float      # log-compressed, >= 0

    def __getitem__(self, name: str) -> float:
        if name not in FEATURE_NAMES:
            raise KeyError(name)
        return getattr(self, name)

    def __iter__(self) -> Iterator[str]:
        return iter(FEATURE_NAMES)

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


def decibels_to_magnitude(decibels: np.ndarray) -> np.ndarray:
    """
    Convert dB bins to linear magnitude.

    ``-inf`` (silence) maps to 0. NaN bins are treated as silence.
    """
    db = np.asarray(decibels, dtype=np.float64)
    db = np.where(np.isnan(db), -np.inf, db)
    return np.power(10.0, db / 20.0)


class SpectralFeatureExtractor:
    """
    Computes the ten spectral features from a single frame.

    Stateless: the previous frame's magnitude needed by flux is passed in
    and the current magnitude is handed back, so the caller owns it.
    """

    def extract(
        self,
        frame: FrequencyFrame,
        previous_magnitude: Optional[np.ndarray] = None,
    ) -> Tuple[FeatureVector, np.ndarray]:
        """
        Extract features for one frame.

        Args:
            frame: Current analyser frame.
            previous_magnitude: Linear magnitudes from the prior frame, or
                None at the start of a session.

        Returns:
            (features, magnitude) where magnitude becomes the next frame's
            ``previous_magnitude``.
        """
        mags = decibels_to_magnitude(frame.decibels).ravel()
        n = mags.size

        if n == 0:
            zero = FeatureVector(
                centroid=0.0, energy=0.0, flux=0.0, flatness=0.0, rolloff=1.0,
                spread=0.0, entropy=0.0, crest=0.0, slope=0.0, density=0.0,
            )
            return zero, mags

        # Bin frequencies as a fraction of nyquist: bin i sits at i/N.
        norm_freqs = np.arange(n, dtype=np.float64) / n
        total = float(mags.sum())

        centroid = self._centroid(mags, norm_freqs, total)
        energy = self._log_power(mags)
        flux = self._flux(mags, previous_magnitude)
        flatness, arith = self._flatness(mags)
        rolloff = self._rolloff(mags, total)
        spread = self._spread(mags, norm_freqs, centroid, total)
        entropy = self._entropy(mags, total)
        crest = float(mags.max()) / (arith + EPSILON)
        slope = self._slope(mags)
        # Same formula as energy; kept as a separate feature on purpose.
        density = self._log_power(mags)

        features = FeatureVector(
            centroid=centroid,
            energy=energy,
            flux=flux,
            flatness=flatness,
            rolloff=rolloff,
            spread=spread,
            entropy=entropy,
            crest=crest,
            slope=slope,
            density=density,
        )
        return features, mags

    @staticmethod
    def _centroid(mags: np.ndarray, norm_freqs: np.ndarray, total: float) -> float:
        if total <= 0:
            return 0.0
        return float(np.dot(norm_freqs, mags) / total)

    @staticmethod
    def _log_power(mags: np.ndarray) -> float:
        return float(np.log10(1.0 + np.dot(mags, mags)))

    @staticmethod
    def _flux(mags: np.ndarray, previous: Optional[np.ndarray]) -> float:
        if previous is None or np.shape(previous) != mags.shape:
            previous = np.zeros_like(mags)
        rise = np.maximum(mags - previous, 0.0)
        return float(np.log10(1.0 + 10.0 * np.dot(rise, rise)))

    @staticmethod
    def _flatness(mags: np.ndarray) -> Tuple[float, float]:
        """Geometric over arithmetic mean; also returns the arithmetic mean."""
        shifted = mags + EPSILON
        geo = float(np.exp(np.mean(np.log(shifted))))
        arith = float(np.mean(shifted))
        return geo / (arith + EPSILON), arith

    @staticmethod
    def _rolloff(mags: np.ndarray, total: float) -> float:
        if total <= 0:
            return 1.0
        cumulative = np.cumsum(mags)
        hits = np.flatnonzero(cumulative >= cumulative[-1] * ROLLOFF_FRACTION)
        if hits.size == 0:
            return 1.0
        return float(hits[0]) / mags.size

    @staticmethod
    def _spread(
        mags: np.ndarray,
        norm_freqs: np.ndarray,
        centroid: float,
        total: float,
    ) -> float:
        deviation = norm_freqs - centroid
        return float(np.sqrt(np.dot(mags, deviation * deviation) / (total or 1.0)))

    @staticmethod
    def _entropy(mags: np.ndarray, total: float) -> float:
        n = mags.size
        if n < 2:
            return 0.0
        p = mags / (total + EPSILON)
        p = p[p > 0]
        if p.size == 0:
            return 0.0
        return float(-np.sum(p * np.log2(p)) / np.log2(n))

    @staticmethod
    def _slope(mags: np.ndarray) -> float:
        """Least-squares slope of magnitude against bin index."""
        n = mags.size
        x = np.arange(n, dtype=np.float64)
        sum_x = x.sum()
        sum_y = mags.sum()
        sum_xy = np.dot(x, mags)
        sum_xx = np.dot(x, x)
        return float((n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x + EPSILON))
