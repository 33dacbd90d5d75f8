"""
Raster post-processing.

Blur stages are interchangeable: each takes a float32 luminance raster
(255 = white) and returns a blurred raster of the same shape. Anything
outside the raster counts as white paper.
"""

import abc

import numpy as np
from PIL import Image, ImageFilter, ImageOps
from scipy.ndimage import gaussian_filter1d

WHITE = 255


def to_uint8(pixels: np.ndarray) -> np.ndarray:
    """Round a float luminance buffer into 8-bit."""
    return np.clip(np.rint(pixels), 0, 255).astype(np.uint8)


class BlurStage(abc.ABC):
    """Raster in, raster out."""

    def __init__(self, radius: float = 3.6):
        self.radius = radius

    @abc.abstractmethod
    def apply(self, pixels: np.ndarray) -> np.ndarray:
        """Return a blurred float32 copy of ``pixels``."""


class PillowGaussianBlur(BlurStage):
    """
    Pillow's native Gaussian filter.

    The raster is padded with white before blurring so edge pixels do not
    smear inward.
    """

    def apply(self, pixels: np.ndarray) -> np.ndarray:
        if self.radius <= 0:
            return pixels.astype(np.float32, copy=True)

        pad = int(np.ceil(self.radius * 3))
        img = Image.fromarray(to_uint8(pixels))
        img = ImageOps.expand(img, border=pad, fill=WHITE)
        img = img.filter(ImageFilter.GaussianBlur(radius=self.radius))
        h, w = pixels.shape
        img = img.crop((pad, pad, pad + w, pad + h))
        return np.asarray(img, dtype=np.float32)


class SeparableGaussianBlur(BlurStage):
    """Two 1-D Gaussian passes in float precision."""

    def __init__(self, radius: float = 3.6, truncate: float = 4.0):
        super().__init__(radius)
        self.truncate = truncate

    def apply(self, pixels: np.ndarray) -> np.ndarray:
        out = pixels.astype(np.float32, copy=True)
        if self.radius <= 0:
            return out
        for axis in (0, 1):
            out = gaussian_filter1d(
                out,
                sigma=self.radius,
                axis=axis,
                mode="constant",
                cval=float(WHITE),
                truncate=self.truncate,
            )
        return out


BLUR_STAGES = {
    "pillow": PillowGaussianBlur,
    "separable": SeparableGaussianBlur,
}


def upscale(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    """Bicubic resize of a luminance buffer to (height, width) uint8."""
    img = Image.fromarray(to_uint8(pixels))
    if img.size != (width, height):
        img = img.resize((width, height), Image.BICUBIC)
    return np.asarray(img, dtype=np.uint8)


def threshold(gray: np.ndarray, cutoff: int = 246) -> np.ndarray:
    """
    Hard black/white cut.

    Args:
        gray: (H, W) uint8 luminance.
        cutoff: Values strictly above this become white.

    Returns:
        (H, W, 3) uint8 RGB with every channel 0 or 255.
    """
    mono = np.where(gray > cutoff, 255, 0).astype(np.uint8)
    return np.repeat(mono[:, :, np.newaxis], 3, axis=2)
