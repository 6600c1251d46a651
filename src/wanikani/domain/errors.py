"""
Error taxonomy for the WaniKani client.

Every failure the core can produce is one of these types. None of them are
logged-and-swallowed inside the library; they always reach the caller.
"""

from datetime import datetime


class WaniKaniError(Exception):
    """Base class for all client errors."""


class DecodeError(WaniKaniError):
    """
    A payload could not be decoded into the object model.

    Usually means the server answered with a revision this client does not
    understand. Fatal, never retried.
    """


class ApiError(WaniKaniError):
    """The API answered with a non-success status code."""

    def __init__(self, status: int, message: str | None = None):
        self.status = status
        self.message = message
        super().__init__(message or f"Error code {status} received")


class AuthError(ApiError):
    """401/403: the token is missing, invalid or lacks access."""


class NotFoundError(ApiError):
    """404: the requested resource does not exist."""


class ValidationError(ApiError):
    """422: the request was malformed. `message` carries the server's explanation."""


class ServerError(ApiError):
    """5xx: something went wrong on the server. Retrying is the caller's call."""


class RateLimitedError(ApiError):
    """429 received again after the single allowed backoff-and-retry."""

    def __init__(self, status: int, message: str | None = None, reset_at: datetime | None = None):
        super().__init__(status, message)
        self.reset_at = reset_at

    def __str__(self) -> str:
        base = super().__str__()
        if self.reset_at is None:
            return base
        return f"{base}. Limit will reset at {self.reset_at.isoformat()}"


class CacheMissError(WaniKaniError):
    """A 304 arrived for a request with no cached baseline."""


class TransportError(WaniKaniError):
    """Connection failure or timeout in the transport. Opaque passthrough."""


class ResetAtomicityError(WaniKaniError):
    """A reset could not be applied in full, so none of it was applied."""
