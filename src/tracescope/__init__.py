"""
tracescope: draws a persistent monochrome trace driven by an audio
signal's spectral features.
"""

from tracescope.config import FEATURE_NAMES, TraceConfig
from tracescope.session import SessionState, TraceSession

__version__ = "0.1.0"

__all__ = ["FEATURE_NAMES", "SessionState", "TraceConfig", "TraceSession"]
