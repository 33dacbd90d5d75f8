"""
Feature-to-canvas coordinate mapping.

Two smoothed features become the x and y of the drawing cursor. Values are
scaled, clamped to [0, 1], laid into the drawable rectangle and then eased
once more so the cursor glides instead of jumping.
"""

import math
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from tracescope.core.polisher import ema


@dataclass(frozen=True)
class CursorPosition:
    """Cursor location in output-canvas pixels."""

    x: float
    y: float


def _unit_clamp(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return min(1.0, max(0.0, value))


class CoordinateMapper:
    """
    Maps the selected pair of smoothed features onto the canvas.

    Args:
        x_feature: Feature driving the horizontal axis.
        y_feature: Feature driving the vertical axis (larger is higher up).
        x_scale: Multiplier applied to the x feature before clamping.
        y_scale: Multiplier applied to the y feature before clamping.
        inertia: EMA retention for the cursor pass.
        margin: Blank border kept on every side, in pixels.
        edge_cushion: Extra inset beyond the margin, in pixels.
    """

    def __init__(
        self,
        x_feature: str = "flux",
        y_feature: str = "density",
        x_scale: float = 8.0,
        y_scale: float = 2.0,
        inertia: float = 0.97,
        margin: float = 40.0,
        edge_cushion: float = 10.0,
    ):
        self.x_feature = x_feature
        self.y_feature = y_feature
        self.x_scale = x_scale
        self.y_scale = y_scale
        self.inertia = inertia
        self.margin = margin
        self.edge_cushion = edge_cushion

    def bounds(self, width: float, height: float) -> Tuple[float, float, float, float]:
        """Drawable rectangle as (min_x, max_x, min_y, max_y)."""
        inset = self.margin + self.edge_cushion
        return inset, width - inset, inset, height - inset

    def target(self, smoothed: Mapping[str, float], width: float, height: float) -> CursorPosition:
        """Unsmoothed point for the current feature values."""
        x_norm = _unit_clamp(smoothed[self.x_feature] * self.x_scale)
        y_norm = _unit_clamp(smoothed[self.y_feature] * self.y_scale)

        min_x, max_x, min_y, max_y = self.bounds(width, height)
        return CursorPosition(
            x=min_x + x_norm * (max_x - min_x),
            y=max_y - y_norm * (max_y - min_y),
        )

    def map(
        self,
        smoothed: Mapping[str, float],
        width: float,
        height: float,
        previous: Optional[CursorPosition] = None,
    ) -> CursorPosition:
        """
        Compute the next cursor position.

        Args:
            smoothed: Second-pass smoothed features.
            width: Canvas width in pixels.
            height: Canvas height in pixels.
            previous: Last emitted cursor, or None after a reset.

        Returns:
            The new cursor. Seeded directly from the target when there is
            no previous cursor.
        """
        point = self.target(smoothed, width, height)
        if previous is None:
            return point
        return CursorPosition(
            x=ema(previous.x, point.x, self.inertia),
            y=ema(previous.y, point.y, self.inertia),
        )
