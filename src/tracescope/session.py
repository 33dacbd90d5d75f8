"""
Trace session: the state carried across frames and the playback lifecycle.

A session owns everything that survives from one tick to the next (the
smoothing state, the previous magnitude, the cursor and the low-res raster)
and exposes two tasks a scheduler can run independently:

* ``update(frame)`` runs extractor → smoother → mapper → accumulator, and
  only does anything while playing with a frame available;
* ``render()`` composes the display frame, unconditionally.

Lifecycle::

    IDLE ─► LOADING ─► READY ─► PLAYING ◄─► PAUSED
              ▲                    │
              └──── FINISHED ◄─────┘

Starting playback from READY fires a reset. Resuming from PAUSED keeps the
trace.
"""

import enum
import logging
from typing import Callable, Optional, TypeVar

import numpy as np

from tracescope.config import TraceConfig
from tracescope.core.analyzer import FeatureVector, FrequencyFrame, SpectralFeatureExtractor
from tracescope.core.mapper import CoordinateMapper, CursorPosition
from tracescope.core.polisher import SmoothingState, TemporalSmoother
from tracescope.errors import AudioLoadError, SessionStateError
from tracescope.render.compositor import CompositeRenderer
from tracescope.render.postprocess import BlurStage, PillowGaussianBlur
from tracescope.render.strokes import LowResRaster, StrokeAccumulator

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    FINISHED = "finished"


class TraceSession:
    """
    One independent drawing session.

    Args:
        config: Trace tunables. Defaults to ``TraceConfig()``.
        blur_stage: Blur used by the compositor. Defaults to a Pillow
            Gaussian with ``config.blur_radius``.
    """

    def __init__(
        self,
        config: Optional[TraceConfig] = None,
        blur_stage: Optional[BlurStage] = None,
    ):
        self.cfg = config or TraceConfig()
        cfg = self.cfg

        self.extractor = SpectralFeatureExtractor()
        self.smoother = TemporalSmoother(cfg.gains, inertia=cfg.inertia)
        self.mapper = CoordinateMapper(
            x_feature=cfg.x_feature,
            y_feature=cfg.y_feature,
            x_scale=cfg.x_scale,
            y_scale=cfg.y_scale,
            inertia=cfg.inertia,
            margin=cfg.margin,
            edge_cushion=cfg.edge_cushion,
        )
        self.raster = LowResRaster(cfg.raster_width, cfg.raster_height)
        self.accumulator = StrokeAccumulator(
            self.raster,
            core_width_factor=cfg.core_width_factor,
            halo_ratio=cfg.halo_ratio,
        )
        self.renderer = CompositeRenderer(
            width=cfg.canvas_width,
            height=cfg.canvas_height,
            threshold_cutoff=cfg.threshold,
            blur_stage=blur_stage or PillowGaussianBlur(radius=cfg.blur_radius),
        )

        # Cross-frame state
        self.smoothing = SmoothingState()
        self.previous_magnitude: Optional[np.ndarray] = None
        self.cursor: Optional[CursorPosition] = None
        self.features: Optional[FeatureVector] = None

        self.state = SessionState.IDLE
        self._state_before_load = SessionState.IDLE
        self.frames_processed = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_playing(self) -> bool:
        return self.state is SessionState.PLAYING

    def _require(self, action: str, *allowed: SessionState):
        if self.state not in allowed:
            raise SessionStateError(
                f"Cannot {action} while {self.state.value}; "
                f"expected one of {', '.join(s.value for s in allowed)}"
            )

    def _transition(self, new_state: SessionState):
        logger.debug("Session %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def begin_loading(self):
        self._require(
            "load", SessionState.IDLE, SessionState.READY, SessionState.FINISHED
        )
        self._state_before_load = self.state
        self._transition(SessionState.LOADING)

    def finish_loading(self):
        self._require("finish loading", SessionState.LOADING)
        self._transition(SessionState.READY)

    def fail_loading(self):
        """Return to where loading started. Pipeline state is untouched."""
        self._require("fail loading", SessionState.LOADING)
        # A finished session has nothing left to play.
        fallback = self._state_before_load
        if fallback is SessionState.FINISHED:
            fallback = SessionState.IDLE
        self._transition(fallback)

    def load(self, loader: Callable[[], T]) -> T:
        """
        Run ``loader`` inside the LOADING state.

        Returns:
            Whatever the loader returns; the session is then READY.

        Raises:
            AudioLoadError: The loader failed. The session is back in the
                state it was in before loading.
        """
        self.begin_loading()
        try:
            result = loader()
        except Exception as e:
            self.fail_loading()
            logger.error("Audio load failed: %s", e)
            raise AudioLoadError(str(e)) from e
        self.finish_loading()
        return result

    def play(self):
        """Start from READY (with reset) or resume from PAUSED."""
        self._require("play", SessionState.READY, SessionState.PAUSED)
        if self.state is SessionState.READY:
            self.reset()
        self._transition(SessionState.PLAYING)

    def pause(self):
        self._require("pause", SessionState.PLAYING)
        self._transition(SessionState.PAUSED)

    def finish(self):
        """Playback reached the end of the audio."""
        self._require("finish", SessionState.PLAYING)
        self._transition(SessionState.FINISHED)

    def reset(self):
        """Zero smoothing, forget the previous frame and cursor, clear the raster."""
        self.smoothing.reset()
        self.previous_magnitude = None
        self.cursor = None
        self.features = None
        self.accumulator.reset()
        self.frames_processed = 0
        logger.debug("Session reset")

    # ------------------------------------------------------------------
    # Per-tick tasks
    # ------------------------------------------------------------------

    def update(self, frame: Optional[FrequencyFrame]) -> Optional[CursorPosition]:
        """
        Run the feature → cursor → stroke chain for one frame.

        Skipped, returning None, when the session is not playing or no
        analyser frame is available. The raster is left as it was.
        """
        if not self.is_playing or frame is None:
            return None

        features, magnitude = self.extractor.extract(frame, self.previous_magnitude)
        self.previous_magnitude = magnitude
        self.features = features

        self.smoother.update(features, self.smoothing)

        cfg = self.cfg
        self.cursor = self.mapper.map(
            self.smoothing.second,
            cfg.canvas_width,
            cfg.canvas_height,
            previous=self.cursor,
        )
        self.accumulator.add_point(self.cursor, cfg.canvas_width, cfg.canvas_height)
        self.frames_processed += 1
        return self.cursor

    def render(self) -> np.ndarray:
        """Compose the display frame from the current raster."""
        return self.renderer.render(self.raster)

    def tick(self, frame: Optional[FrequencyFrame] = None) -> np.ndarray:
        """Update (when possible) then render."""
        self.update(frame)
        return self.render()
