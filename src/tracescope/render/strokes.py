"""
Stroke accumulation into the persistent low-res raster.

Each new cursor position extends the trace by one segment. The segment is
drawn twice, a wider core and a narrower halo, both solid black with round
caps. Stacking the two gives a soft edge once the raster is blurred.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from tracescope.core.mapper import CursorPosition

WHITE = 255.0


class LowResRaster:
    """Fixed-size float32 luminance buffer, 255 is white."""

    def __init__(self, width: int = 512, height: int = 480):
        self.width = width
        self.height = height
        self.pixels = np.full((height, width), WHITE, dtype=np.float32)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.pixels.shape

    def clear(self):
        self.pixels.fill(WHITE)

    def is_blank(self) -> bool:
        return bool(np.all(self.pixels == WHITE))

    def stroke_segment(
        self,
        start: Tuple[float, float],
        end: Tuple[float, float],
        width: float,
    ):
        """
        Composite a round-capped black line over the raster.

        Coverage is the anti-aliased distance from each pixel centre to the
        segment. Lines thinner than a pixel darken in proportion to their
        width instead of vanishing.
        """
        if width <= 0:
            return
        x0, y0 = start
        x1, y1 = end
        reach = width / 2.0 + 1.0

        left = max(0, int(np.floor(min(x0, x1) - reach)))
        right = min(self.width, int(np.ceil(max(x0, x1) + reach)) + 1)
        top = max(0, int(np.floor(min(y0, y1) - reach)))
        bottom = min(self.height, int(np.ceil(max(y0, y1) + reach)) + 1)
        if left >= right or top >= bottom:
            return

        ys, xs = np.mgrid[top:bottom, left:right].astype(np.float32)
        px = xs + 0.5
        py = ys + 0.5

        dx = x1 - x0
        dy = y1 - y0
        length_sq = dx * dx + dy * dy
        if length_sq > 0:
            t = np.clip(((px - x0) * dx + (py - y0) * dy) / length_sq, 0.0, 1.0)
        else:
            t = np.zeros_like(px)
        dist = np.hypot(px - (x0 + t * dx), py - (y0 + t * dy))

        coverage = np.clip(width / 2.0 + 0.5 - dist, 0.0, 1.0) * min(width, 1.0)
        region = self.pixels[top:bottom, left:right]
        region *= 1.0 - coverage


@dataclass(frozen=True)
class StrokeSegment:
    """The last segment drawn, in raster coordinates."""

    start: Tuple[float, float]
    end: Tuple[float, float]
    core_width: float
    halo_width: float


class StrokeAccumulator:
    """
    Appends cursor positions to the raster as connected strokes.

    Args:
        raster: Buffer receiving the strokes.
        core_width_factor: Core width per unit of raster/canvas scale.
        halo_ratio: Halo width as a fraction of the core width.
    """

    def __init__(
        self,
        raster: LowResRaster,
        core_width_factor: float = 0.4,
        halo_ratio: float = 0.4,
    ):
        self.raster = raster
        self.core_width_factor = core_width_factor
        self.halo_ratio = halo_ratio
        self.previous: Optional[Tuple[float, float]] = None
        self.last_segment: Optional[StrokeSegment] = None
        self.segment_count = 0

    def reset(self):
        """Forget the previous point and clear the raster."""
        self.previous = None
        self.last_segment = None
        self.segment_count = 0
        self.raster.clear()

    def to_raster_space(
        self,
        cursor: CursorPosition,
        canvas_width: float,
        canvas_height: float,
    ) -> Tuple[float, float]:
        return (
            cursor.x / canvas_width * self.raster.width,
            cursor.y / canvas_height * self.raster.height,
        )

    def add_point(
        self,
        cursor: CursorPosition,
        canvas_width: float,
        canvas_height: float,
    ) -> Optional[StrokeSegment]:
        """
        Extend the trace to ``cursor``.

        Returns:
            The drawn segment, or None for the first point after a reset,
            which is only recorded.
        """
        point = self.to_raster_space(cursor, canvas_width, canvas_height)
        if self.previous is None:
            self.previous = point
            return None

        core_width = self.core_width_factor * (self.raster.width / canvas_width)
        halo_width = core_width * self.halo_ratio

        self.raster.stroke_segment(self.previous, point, core_width)
        self.raster.stroke_segment(self.previous, point, halo_width)

        segment = StrokeSegment(
            start=self.previous,
            end=point,
            core_width=core_width,
            halo_width=halo_width,
        )
        self.previous = point
        self.last_segment = segment
        self.segment_count += 1
        return segment
