"""
Temporal smoothing of per-frame features.

Two cascaded exponential moving averages per feature keep the trace from
jittering on audio transients. The second pass lags the first, which trades
responsiveness for a visibly smoother cursor.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Mapping

from tracescope.config import FEATURE_NAMES

logger = logging.getLogger(__name__)


def ema(previous: float, value: float, inertia: float) -> float:
    """One exponential moving average step."""
    return inertia * previous + (1.0 - inertia) * value


def reseed_if_nonfinite(current: float, seed: float) -> float:
    """
    Guarded assignment for smoothing state.

    Returns ``current`` when it is finite, otherwise ``seed``. Keeps a NaN
    or infinity from ever being carried into the next frame.
    """
    if math.isfinite(current):
        return current
    return seed


def _zeros() -> Dict[str, float]:
    return {name: 0.0 for name in FEATURE_NAMES}


@dataclass
class SmoothingState:
    """First- and second-pass EMA values per feature."""

    first: Dict[str, float] = field(default_factory=_zeros)
    second: Dict[str, float] = field(default_factory=_zeros)

    def reset(self):
        """Zero both passes for a new playback session."""
        self.first = _zeros()
        self.second = _zeros()


class TemporalSmoother:
    """
    Applies gain and the double EMA to a feature vector.

    Args:
        gains: Per-feature multiplier applied before smoothing. Missing
            entries default to 1.
        inertia: EMA retention in (0, 1). Closer to 1 responds slower.
    """

    def __init__(self, gains: Mapping[str, float], inertia: float = 0.97):
        self.gains = dict(gains)
        self.inertia = inertia

    def update(self, features: Mapping[str, float], state: SmoothingState) -> SmoothingState:
        """
        Advance ``state`` by one frame in place and return it.

        Args:
            features: Raw feature values, indexable by feature name.
            state: Smoothing state carried across frames.
        """
        inertia = self.inertia
        for name in FEATURE_NAMES:
            post_gain = features[name] * self.gains.get(name, 1.0)

            first = state.first.get(name, math.nan)
            second = state.second.get(name, math.nan)
            if not (math.isfinite(first) and math.isfinite(second)):
                logger.debug("Re-seeding smoothing state for %s from %r", name, post_gain)
            first = reseed_if_nonfinite(first, post_gain)
            second = reseed_if_nonfinite(second, first)

            first = ema(first, post_gain, inertia)
            second = ema(second, first, inertia)

            state.first[name] = first
            state.second[name] = second
        return state
