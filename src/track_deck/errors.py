"""Exception types raised by the deck engine and its gateway."""

from __future__ import annotations

from typing import Optional


class DeckError(Exception):
    """Base class for track-deck failures."""


class GatewayUnavailable(DeckError):
    """The remote time-tracking service could not be reached or refused the call."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedEntry(DeckError):
    """A single time-entry record could not be interpreted."""

    def __init__(self, message: str, record: object = None) -> None:
        super().__init__(message)
        self.record = record


class InvalidArgument(DeckError, ValueError):
    """A caller broke a precondition, e.g. a negative duration."""
