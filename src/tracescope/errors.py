"""Exceptions raised outside the per-frame render path."""


class TraceError(Exception):
    """Base class for tracescope errors."""


class AudioLoadError(TraceError):
    """Audio could not be fetched or decoded."""


class SessionStateError(TraceError):
    """A session transition was requested from a state that does not allow it."""
