"""Exceptions raised by spot exchange clients."""

from __future__ import annotations

INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"


class SpotApiError(Exception):
    """Base exception for exchange errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class SpotRateLimitError(SpotApiError):
    """Raised when the gateway indicates that the rate limit has been exceeded."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message, code="RATE_LIMITED")
        self.retry_after = retry_after


class SpotTransientError(SpotApiError):
    """Raised for transient errors that may succeed on retry."""


def is_insufficient_balance(message: str | None) -> bool:
    """Return True when an error message carries the insufficient-balance marker."""
    if not message:
        return False
    return INSUFFICIENT_BALANCE in message
