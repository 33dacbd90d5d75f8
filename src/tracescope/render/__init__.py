"""Stroke accumulation and composite rendering."""

from tracescope.render.compositor import CompositeRenderer
from tracescope.render.postprocess import BlurStage, PillowGaussianBlur, SeparableGaussianBlur
from tracescope.render.strokes import LowResRaster, StrokeAccumulator, StrokeSegment
