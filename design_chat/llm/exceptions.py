"""
Error taxonomy for chat completion streaming.

Every failure of a single streaming call maps onto one of these types:
- Request rejected by the endpoint (rate limit, credits, generic service error)
- Successful status without a readable body
- Transport or decoding failure while the stream is being read
"""

from __future__ import annotations

HTTP_PAYMENT_REQUIRED = 402
HTTP_TOO_MANY_REQUESTS = 429


class LLMError(Exception):
    """Base streaming chat error with response context."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}


class RequestRejectedError(LLMError):
    """Endpoint answered with a non-success status before streaming began."""
    pass


class RateLimitError(RequestRejectedError):
    """Rate limit error with retry information."""

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class CreditsExhaustedError(RequestRejectedError):
    """Account has run out of AI credits."""
    pass


class ServiceError(RequestRejectedError):
    """Any other non-success status from the endpoint."""
    pass


class NoStreamBodyError(ServiceError):
    """Success status, but the response carries no readable body."""

    def __init__(self, message: str = "No response body", **kwargs):
        super().__init__(message, **kwargs)


class TransportError(LLMError):
    """Network or decoding failure while reading the stream."""
    pass


def rejection_for_status(
    status_code: int,
    message: str,
    response_data: dict | None = None,
    retry_after: float | None = None,
) -> RequestRejectedError:
    """Build the rejection error matching an HTTP failure status."""
    if status_code == HTTP_TOO_MANY_REQUESTS:
        return RateLimitError(
            message,
            retry_after=retry_after,
            status_code=status_code,
            response_data=response_data,
        )
    if status_code == HTTP_PAYMENT_REQUIRED:
        return CreditsExhaustedError(
            message, status_code=status_code, response_data=response_data
        )
    return ServiceError(message, status_code=status_code, response_data=response_data)
