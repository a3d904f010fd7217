"""Exceptions for the quote assistant.

Recoverable failures (upstream generation errors, local rate limiting) are
carried as values inside `Failure`; only configuration problems are raised.
"""

from enum import StrEnum


class QuoteAssistError(Exception):
    """Base exception for quote assistant errors"""  # noqa: D415


class ConfigurationError(QuoteAssistError):
    """Raised when configuration cannot be resolved or validated"""  # noqa: D415


class GenerationErrorKind(StrEnum):
    """Classification of upstream generation failures."""

    INVALID_CREDENTIALS = "invalid_credentials"
    QUOTA_EXHAUSTED = "quota_exhausted"
    RATE_LIMITED = "rate_limited"
    SAFETY_BLOCKED = "safety_blocked"
    NETWORK = "network"
    TIMEOUT = "timeout"
    EMPTY_RESPONSE = "empty_response"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class GenerationError(QuoteAssistError):
    """Opaque failure of the external generation function.

    Surfaced verbatim to the caller and never retried internally.
    """

    def __init__(
        self,
        message: str,
        kind: GenerationErrorKind = GenerationErrorKind.UNKNOWN,
    ) -> None:
        """Initialize with a human-readable message and a failure kind."""
        super().__init__(message)
        self.kind = kind

    def __repr__(self) -> str:  # noqa: D105
        return f"GenerationError({str(self)!r}, kind={self.kind.value!r})"


class GovernError(QuoteAssistError):
    """Base class for errors produced by request governance"""  # noqa: D415


class RateLimitedError(GovernError):
    """Local request quota for the current window is exhausted."""

    def __init__(self, limit: int, retry_after_ms: float) -> None:
        """Initialize with the window limit and time left in the window."""
        super().__init__(
            f"Rate limit of {limit} requests per window reached; "
            f"retry in {retry_after_ms:.0f} ms"
        )
        self.limit = limit
        self.retry_after_ms = retry_after_ms
