"""Error kinds raised by the client.

Every failure the client reports derives from BitrefillError, so callers
can catch one type. Anything else escaping the client is a bug.
"""

from typing import Optional

from .models.common import RateLimitSnapshot


class BitrefillError(Exception):
    """Base class for all client errors."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class TransportFailure(BitrefillError):
    """The request never produced a usable HTTP response (network, timeout, bad body)."""


class RateLimited(BitrefillError):
    """Server answered 429 Too Many Requests. Expected under load."""

    def __init__(self, message: str = "Rate limit exceeded (HTTP 429)", rate_limit: Optional[RateLimitSnapshot] = None):
        self.rate_limit = rate_limit
        super().__init__(message, status=429)


class UpstreamStatus(BitrefillError):
    """Server answered with a non-200 status other than 429."""

    def __init__(self, status: int, reason: str = ""):
        self.reason = reason
        super().__init__(f"API responded with status code {status}: {reason}".rstrip(": "), status=status)


class ValidationFailure(BitrefillError):
    """Request arguments were rejected before anything was sent."""


class FetchFailure(BitrefillError):
    """A facade operation failed. The underlying error is kept as `__cause__`."""

    def __init__(self, context: str, original_exception: Exception):
        self.original_exception = original_exception
        super().__init__(
            f"{context}: {original_exception}",
            status=getattr(original_exception, "status", None),
        )
