"""Errors raised by track recording and processing."""


class TrackingError(Exception):
    """Base class for everything the tracking core raises."""


class InvalidSampleError(TrackingError):
    """A location sample has coordinates outside the valid ranges."""

    def __init__(self, sample, reason: str):
        super().__init__(f"invalid sample ({reason}): {sample!r}")
        self.sample = sample
        self.reason = reason


class NotTrackingError(TrackingError):
    """A sample was offered while the track is not recording."""

    def __init__(self, state):
        super().__init__(f"track is not recording (state={getattr(state, 'value', state)})")
        self.state = state


class TrackStateError(TrackingError):
    """A lifecycle transition that the current state does not allow."""

    def __init__(self, action: str, state):
        super().__init__(f"cannot {action} a track that is {getattr(state, 'value', state)}")
        self.action = action
        self.state = state


class LocationUnavailableError(TrackingError):
    """The location source could not produce a fix when one was required."""


class PersistenceError(TrackingError):
    """The persistence collaborator rejected a finished track."""
