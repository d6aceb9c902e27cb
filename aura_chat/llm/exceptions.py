"""
Error taxonomy for the chat relay and its consumer.

Every failure a caller can see falls into one of a small set of categories:
- Configuration problems detected before contacting upstream
- Malformed chat requests
- Upstream throttling and quota exhaustion
- Any other upstream failure
- Connection loss on the consumer side

Each error carries a user-safe message. Raw upstream details stay in logs.
"""

from __future__ import annotations

from enum import Enum

RATE_LIMITED_MESSAGE = (
    "I'm taking a moment to breathe too. Please try again in a few seconds."
)
UPSTREAM_UNAVAILABLE_MESSAGE = (
    "Service temporarily unavailable. Please try again later."
)
UPSTREAM_FAILURE_MESSAGE = (
    "I'm having trouble connecting right now. Please try again."
)
CONNECTION_FAILURE_MESSAGE = (
    "The connection was interrupted. Please try sending your message again."
)


class ErrorCategory(Enum):
    """User-facing error categories."""
    CONFIGURATION = "configuration_error"
    INVALID_REQUEST = "invalid_request"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    UPSTREAM_FAILURE = "upstream_failure"
    CONNECTION_FAILURE = "connection_failure"


class RelayError(Exception):
    """Base relay error with a user-safe message and HTTP status."""

    category: ErrorCategory = ErrorCategory.UPSTREAM_FAILURE
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        upstream_status: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.upstream_status = upstream_status

    def to_payload(self) -> dict[str, str]:
        """JSON body returned to relay callers."""
        return {"error": self.message}


class ConfigurationError(RelayError):
    """The relay is missing something it needs, e.g. the upstream credential."""
    category = ErrorCategory.CONFIGURATION
    status_code = 500


class InvalidRequestError(RelayError):
    """The chat request body is not valid JSON or fails validation."""
    category = ErrorCategory.INVALID_REQUEST
    status_code = 500


class RateLimitedError(RelayError):
    """Upstream rejected the request with a rate limit."""
    category = ErrorCategory.RATE_LIMITED
    status_code = 429

    def __init__(self, message: str = RATE_LIMITED_MESSAGE, **kwargs):
        super().__init__(message, **kwargs)


class UpstreamUnavailableError(RelayError):
    """Upstream reported payment or quota exhaustion."""
    category = ErrorCategory.UPSTREAM_UNAVAILABLE
    status_code = 402

    def __init__(self, message: str = UPSTREAM_UNAVAILABLE_MESSAGE, **kwargs):
        super().__init__(message, **kwargs)


class UpstreamFailureError(RelayError):
    """Any other upstream failure."""
    category = ErrorCategory.UPSTREAM_FAILURE
    status_code = 500

    def __init__(self, message: str = UPSTREAM_FAILURE_MESSAGE, **kwargs):
        super().__init__(message, **kwargs)


class ConnectionFailureError(RelayError):
    """The stream dropped after it had started."""
    category = ErrorCategory.CONNECTION_FAILURE
    status_code = 500

    def __init__(self, message: str = CONNECTION_FAILURE_MESSAGE, **kwargs):
        super().__init__(message, **kwargs)


class UsageLimitError(Exception):
    """Free tier daily message allowance is used up."""

    def __init__(self, limit: int):
        super().__init__(
            f"Daily limit of {limit} messages reached. "
            "Upgrade to premium for unlimited conversations."
        )
        self.limit = limit


def error_for_status(status_code: int) -> RelayError:
    """Map a non-success upstream status to its relay error."""
    if status_code == 429:
        return RateLimitedError(upstream_status=status_code)
    if status_code == 402:
        return UpstreamUnavailableError(upstream_status=status_code)
    return UpstreamFailureError(upstream_status=status_code)
