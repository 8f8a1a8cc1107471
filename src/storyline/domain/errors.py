"""Playback exceptions for error handling.

The coordinator absorbs all of these at its boundary and turns them into
state; library code raises them.
"""


class PlaybackError(Exception):
    """Base exception for playback operations."""

    pass


class ResourceError(PlaybackError):
    """Raised when an audio resource cannot be opened or decoded."""

    def __init__(self, locator: str, reason: str = None):
        self.locator = locator
        self.reason = reason
        super().__init__(f"Cannot open {locator}" + (f": {reason}" if reason else ""))


class EngineTransientError(PlaybackError):
    """Raised when output activation or deactivation fails (e.g. device busy)."""

    pass


class StorageError(PlaybackError):
    """Raised when a position write-through cannot be persisted."""

    pass


class InvalidCommandError(PlaybackError):
    """Raised by strict validators for values a command cannot accept."""

    pass
