"""
Error taxonomy and standardized HTTP error envelope for the newsletter service
"""

import uuid
from typing import Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again later."


class NewsletterError(Exception):
    """Base class for every error raised by the subscription pipeline."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(NewsletterError):
    """Malformed or oversized input. The message is safe to show to the user."""


class AlreadySubscribed(NewsletterError):
    def __init__(self, email: str = ""):
        super().__init__("User is already subscribed")
        self.email = email


class RateLimitExceeded(NewsletterError):
    def __init__(self, key: str, retry_after: Optional[int] = None):
        super().__init__("RateLimitExceeded")
        self.key = key
        self.retry_after = retry_after


class TokenError(NewsletterError):
    pass


class TokenExpired(TokenError):
    pass


class TokenInvalid(TokenError):
    pass


class InfrastructureError(NewsletterError):
    """
    A dependency (store, email API, configuration) failed.

    The message is for server-side logs only; callers show
    GENERIC_FAILURE_MESSAGE instead.
    """


class ConfigurationError(InfrastructureError):
    pass


class KeyValueStoreUnavailable(InfrastructureError):
    pass


class RateLimiterUnavailable(KeyValueStoreUnavailable):
    pass


class SubscriberStoreUnavailable(InfrastructureError):
    pass


class EmailDeliveryFailed(InfrastructureError):
    pass


ERROR_REGISTRY = {
    400: ("NL-400", "Bad Request: General validation error", False),
    404: ("NL-404", "Not Found: Resource does not exist", False),
    405: ("NL-405", "Method Not Allowed", False),
    422: ("NL-422", "Unprocessable Entity: Semantic validation error", False),
    429: ("NL-429", "Too Many Requests: Rate limit exceeded", True),
    500: ("NL-500", "Internal Server Error: Generic server failure", True),
    503: ("NL-503", "Service Unavailable: Downstream dependency failure", True),
}


def error_body(status_code: int, message: Optional[str] = None) -> dict:
    error_code, default_message, retryable = ERROR_REGISTRY.get(
        status_code,
        ("NL-500", "Internal Server Error", True)
    )
    return {
        "transaction_id": str(uuid.uuid4()),
        "error_code": error_code,
        "message": message or default_message,
        "retryable": retryable
    }


async def error_handler(request: Request, exc: HTTPException):
    """Standardized error handler for all HTTP exceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.detail if isinstance(exc.detail, str) else None),
        headers=getattr(exc, "headers", None)
    )
