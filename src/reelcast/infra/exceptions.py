"""
Custom exceptions for Reelcast operations.

Contract errors derive from ``ValueError`` as well so the CLI and API layers
can keep mapping ``ValueError`` to a user-facing failure.
"""


class ReelcastError(Exception):
    """Base exception for all Reelcast errors."""

    pass


class ValidationError(ReelcastError, ValueError):
    """Raised when validation fails."""

    pass


class NotFoundError(ReelcastError, ValueError):
    """Raised when a keyed record does not exist."""

    pass


class DisplayNotFoundError(NotFoundError):
    """Raised when a display code is unknown."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Display not found: {code}")
        self.code = code


class PlaylistNotFoundError(NotFoundError):
    """Raised when a playlist id is unknown."""

    pass


class TimelineEntryNotFoundError(NotFoundError):
    """Raised when a timeline entry id is unknown."""

    pass


class ResolverError(ReelcastError):
    """Raised by content resolver adapters when the backing search fails."""

    pass


class StoreError(ReelcastError):
    """Raised when the persistent store cannot complete a unit of work."""

    pass
