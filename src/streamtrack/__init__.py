"""StreamTrack: stream history, followed roster and schedule cache with recurrence inference."""

__version__ = "0.1.0"
