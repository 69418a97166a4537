"""Error taxonomy for the stopover search.

Only ValidationError and AuthError reach the caller as outright failures.
ProviderError (and its transient subclass) is recovered at tuple level.
"""

from typing import Optional


class StopoverError(Exception):
    code = "internal_error"


class ValidationError(StopoverError):
    """Malformed or missing search input. Raised before any network call."""

    code = "validation_error"


class AuthError(StopoverError):
    """Provider credentials missing or rejected. Aborts the whole search."""

    code = "auth_error"


class ProviderError(StopoverError):
    """Non-success provider response. Skippable per tuple."""

    code = "provider_error"

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body


class TransientProviderError(ProviderError):
    """Network-level failure (timeout, connection reset) after retries ran out."""

    code = "transient_provider_error"


class InternalError(StopoverError):
    code = "internal_error"
