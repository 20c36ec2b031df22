"""Typed failures surfaced by the AI gateway."""

from __future__ import annotations

from enum import Enum
from typing import Optional

__all__ = [
    "ErrorKind",
    "GatewayError",
    "Unauthorized",
    "MalformedResponse",
    "ProviderError",
    "ExhaustedRetries",
    "classify_failure",
]


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    MALFORMED_RESPONSE = "malformed_response"
    PROVIDER_ERROR = "provider_error"
    EXHAUSTED_RETRIES = "exhausted_retries"


class GatewayError(RuntimeError):
    """Base class for every failure the gateway reports.

    ``message`` is safe to show to the user as-is.
    """

    kind: ErrorKind = ErrorKind.PROVIDER_ERROR
    retryable: bool = True

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthorized(GatewayError):
    """Missing, placeholder or rejected credentials. Never retried."""

    kind = ErrorKind.UNAUTHORIZED
    retryable = False


class MalformedResponse(GatewayError):
    """The model replied, but not with JSON of the expected shape."""

    kind = ErrorKind.MALFORMED_RESPONSE


class ProviderError(GatewayError):
    """Network or service-side failure while calling the model."""

    kind = ErrorKind.PROVIDER_ERROR


class ExhaustedRetries(GatewayError):
    """Every attempt failed; ``last_error`` holds the final failure."""

    kind = ErrorKind.EXHAUSTED_RETRIES
    retryable = False

    def __init__(self, last_error: GatewayError, attempts: int) -> None:
        super().__init__(last_error.message)
        self.last_error = last_error
        self.attempts = attempts


def classify_failure(exc: Exception, *, action: str) -> GatewayError:
    """Normalize an unexpected provider exception into the taxonomy.

    Credential problems (HTTP 401, or a message mentioning the API key)
    become :class:`Unauthorized`; everything else is a retryable
    :class:`ProviderError`.
    """

    if isinstance(exc, GatewayError):
        return exc
    detail = str(exc) or type(exc).__name__
    if _status_code(exc) == 401 or "api key" in detail.lower():
        return Unauthorized("Invalid OpenAI API key")
    return ProviderError(f"Failed to {action}: {detail}")


def _status_code(exc: Exception) -> Optional[int]:
    status = getattr(exc, "status_code", None)
    return status if isinstance(status, int) else None
