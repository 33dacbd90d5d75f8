"""Per-frame feature extraction, smoothing and coordinate mapping."""

from tracescope.core.analyzer import FeatureVector, FrequencyFrame, SpectralFeatureExtractor
from tracescope.core.mapper import CoordinateMapper, CursorPosition
from tracescope.core.polisher import SmoothingState, TemporalSmoother
