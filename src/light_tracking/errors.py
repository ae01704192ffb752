"""Exception types raised by the tracker core."""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for every error the tracker reports to its callers."""


class ValidationError(TrackerError, ValueError):
    """Input was well-formed but violates a time slot rule."""


class NotFoundError(TrackerError, LookupError):
    """An operation referenced a time slot id that does not exist."""


class StorageError(TrackerError):
    """The underlying SQLite engine failed."""


class ParseError(TrackerError, ValueError):
    """A date or timestamp string could not be parsed."""
