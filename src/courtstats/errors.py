"""Exception types shared across the ingestion pipeline."""

from __future__ import annotations

from typing import Any


class CourtStatsError(Exception):
    """Base class for all package errors."""


class MissingIdentifier(CourtStatsError, ValueError):
    """Raised when a caller omits the required player identifier."""


class UpstreamError(CourtStatsError):
    """An upstream provider call failed."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


class UpstreamTimeout(UpstreamError):
    """The provider did not answer within the request timeout."""


class UpstreamMalformed(UpstreamError):
    """The provider answered with a payload of unexpected shape."""


class PartialSourceFailure(CourtStatsError):
    """One adapter failed while others may have succeeded.

    Never raised to callers; instances are collected on the run report so the
    response can say which sources contributed.
    """

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source} contributed no data: {reason}")
        self.source = source
        self.reason = reason


class StoreWriteFailure(CourtStatsError):
    """Persisting a computed result failed.

    The computed (uncached) result travels with the exception so the caller can
    still return it.
    """

    def __init__(self, message: str, result: Any = None):
        super().__init__(message)
        self.message = message
        self.result = result
