"""Custom exception hierarchy for playmap."""

from __future__ import annotations


class PlaymapError(Exception):
    """Base exception for all playmap errors."""


class PlaymapConfigError(PlaymapError):
    """Invalid or missing configuration."""


class PlaymapTransportError(PlaymapError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class RecordNotFoundError(PlaymapTransportError):
    """A single-document lookup returned no record."""


class FacilityFetchError(PlaymapError):
    """The facility listing for an aggregation cycle could not be fetched.

    This is the only failure that aborts an aggregation cycle.  No partial
    result is delivered; the caller is expected to offer a retry.
    """

    retryable: bool = True

    def __init__(self, message: str, *, epoch: int | None = None) -> None:
        self.epoch = epoch
        super().__init__(message)
