"""
Error taxonomy for the stream checker.

Batch runs catch StreamCheckError per participant and report it as a skip;
single runs let it reach the entrypoint, which exits non-zero.
"""
from __future__ import annotations


class StreamCheckError(Exception):
    """Base for every error raised on purpose by this project."""


class NotFoundError(StreamCheckError):
    """An account or streamer does not exist on the backend."""


class InvalidResponseError(StreamCheckError):
    """A successful payload is missing a field we need."""


class TransientNetworkError(StreamCheckError):
    """Retries were exhausted on transport failures or throttling."""


class BackendStatusError(StreamCheckError):
    """A backend answered with a non-retryable, non-success status."""

    def __init__(self, backend: str, status_code: int, url: str) -> None:
        self.backend = backend
        self.status_code = status_code
        self.url = url
        super().__init__(f"{backend} returned HTTP {status_code} for {url}")


class InvalidWindowError(StreamCheckError):
    """The resolved analysis window does not satisfy start < end."""


class TimeFormatError(StreamCheckError, ValueError):
    """A time literal could not be parsed."""


class InputFormatError(StreamCheckError, ValueError):
    """Participant input or a riot id is malformed."""


class ConfigurationError(StreamCheckError):
    """Required settings (usually credentials) are absent."""
