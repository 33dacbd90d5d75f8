"""
Composite rendering of the accumulated trace.

Every tick the low-res raster is blurred, upscaled to the display size
and cut to pure black and white.
"""

from typing import Optional

import numpy as np

from tracescope.render.postprocess import BlurStage, PillowGaussianBlur, threshold, upscale
from tracescope.render.strokes import LowResRaster


class CompositeRenderer:
    """
    Blur → upscale → threshold.

    Args:
        width: Display width in pixels.
        height: Display height in pixels.
        threshold_cutoff: 0-255; luminance above it renders white.
        blur_stage: Blur applied to the raster. Defaults to Pillow's
            Gaussian with radius 3.6.
    """

    def __init__(
        self,
        width: int = 800,
        height: int = 800,
        threshold_cutoff: int = 246,
        blur_stage: Optional[BlurStage] = None,
    ):
        self.width = width
        self.height = height
        self.threshold_cutoff = threshold_cutoff
        self.blur_stage = blur_stage or PillowGaussianBlur(radius=3.6)

    def render(self, raster: LowResRaster) -> np.ndarray:
        """
        Compose one display frame.

        Returns:
            (height, width, 3) uint8 RGB, every channel 0 or 255.
        """
        blurred = self.blur_stage.apply(raster.pixels)
        upscaled = upscale(blurred, self.width, self.height)
        return threshold(upscaled, self.threshold_cutoff)
