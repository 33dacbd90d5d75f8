"""
Configuration for the trace pipeline.

One dataclass carries every tunable the feature, smoothing, mapping and
rendering stages read.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping

FEATURE_NAMES = (
    "centroid",
    "energy",
    "flux",
    "flatness",
    "rolloff",
    "spread",
    "entropy",
    "crest",
    "slope",
    "density",
)

# Per-feature gain applied before smoothing. Brings every feature into a
# range where the default x/y scales produce a useful trace.
BASE_GAIN = {
    "centroid": 1.0,
    "energy": 300.0,
    "flux": 600.0,
    "flatness": 1.0,
    "rolloff": 1.0,
    "spread": 1.0,
    "entropy": 1.0,
    "crest": 0.001,
    "slope": -1000000.0,
    "density": 1000.0,
}


@dataclass
class TraceConfig:
    """Tunables for feature mapping, accumulation and compositing."""

    # Feature mapping
    gains: Dict[str, float] = field(default_factory=lambda: dict(BASE_GAIN))
    x_feature: str = "flux"
    y_feature: str = "density"
    x_scale: float = 8.0
    y_scale: float = 2.0
    inertia: float = 0.97  # shared by both EMA passes and the cursor

    # Output surface (pixels)
    canvas_width: int = 800
    canvas_height: int = 800
    margin: float = 40.0
    edge_cushion: float = 10.0

    # Persistent low-res raster
    raster_width: int = 512
    raster_height: int = 480
    core_width_factor: float = 0.4
    halo_ratio: float = 0.4

    # Composite
    blur_radius: float = 3.6
    blur_iterations: int = 3  # reserved, has no effect
    threshold: int = 246

    # Analyser
    fft_size: int = 2048
    analyser_smoothing: float = 0.7

    def __post_init__(self):
        unknown = set(self.gains) - set(FEATURE_NAMES)
        if unknown:
            raise ValueError(f"Unknown feature gain(s): {sorted(unknown)}")
        for axis, name in (("x_feature", self.x_feature), ("y_feature", self.y_feature)):
            if name not in FEATURE_NAMES:
                raise ValueError(
                    f"{axis} must be one of {', '.join(FEATURE_NAMES)}; got {name!r}"
                )
        if not 0.0 < self.inertia < 1.0:
            raise ValueError(f"inertia must be in (0, 1); got {self.inertia}")
        if not 0 <= self.threshold <= 255:
            raise ValueError(f"threshold must be in [0, 255]; got {self.threshold}")
        for name in ("canvas_width", "canvas_height", "raster_width", "raster_height"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.blur_radius < 0:
            raise ValueError("blur_radius must be >= 0")
        if self.fft_size < 2 or self.fft_size & (self.fft_size - 1):
            raise ValueError(f"fft_size must be a power of two; got {self.fft_size}")
        if not 0.0 <= self.analyser_smoothing < 1.0:
            raise ValueError("analyser_smoothing must be in [0, 1)")

    def gain(self, feature: str) -> float:
        """Gain for a feature, 1.0 when the table has no entry."""
        return float(self.gains.get(feature, 1.0))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TraceConfig":
        """Build a config from a plain mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        extra = set(data) - known
        if extra:
            raise ValueError(f"Unknown config key(s): {sorted(extra)}")
        values = dict(data)
        if "gains" in values:
            gains = dict(BASE_GAIN)
            gains.update(values["gains"])
            values["gains"] = gains
        return cls(**values)
