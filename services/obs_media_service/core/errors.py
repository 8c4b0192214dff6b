"""Failure taxonomy for the media bot.

Components raise these internally. ``MediaQueue.run`` turns every one of them
into a ``PlaybackOutcome`` so callers only ever see a result object.
"""

from __future__ import annotations


class DMFLError(Exception):
    """Base class for every failure the media bot reports."""

    kind = "error"

    def __init__(self, message: str, *, critical: bool = True) -> None:
        super().__init__(message)
        self.message = message
        self.critical = critical


class ConfigurationError(DMFLError):
    """A required setting is missing or invalid."""

    kind = "configuration"


class ConnectivityError(DMFLError):
    """OBS (or another control API) could not be reached."""

    kind = "connectivity"


class PollTimeoutError(DMFLError, TimeoutError):
    """A bounded poll ran out of budget before a usable response arrived."""

    kind = "timeout"

    def __init__(
        self, message: str, *, elapsed_ms: int = 0, last_response: object = None
    ) -> None:
        super().__init__(message)
        self.elapsed_ms = elapsed_ms
        self.last_response = last_response


class NotFoundError(DMFLError):
    """A mapped file, scene source or media folder content does not exist."""

    kind = "not_found"


class InvalidRequestError(DMFLError):
    """The viewer supplied an argument that cannot be honoured."""

    kind = "invalid_request"


class InternalInvariantError(DMFLError):
    """Something that must never happen did. Not retried."""

    kind = "internal"


class StorageError(DMFLError):
    """The globals store could not be read or written."""

    kind = "storage"
