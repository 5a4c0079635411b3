"""
FastAPI dependencies resolving collaborators from the application context
"""

from fastapi import HTTPException, Request, status

from .context import AppContext
from .services.subscription_service import SubscriptionService
from .services.verification_service import VerificationService


def get_context(request: Request) -> AppContext:
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up"
        )
    return context


def get_subscription_service(request: Request) -> SubscriptionService:
    return get_context(request).subscriptions


def get_verification_service(request: Request) -> VerificationService:
    return get_context(request).verifications
