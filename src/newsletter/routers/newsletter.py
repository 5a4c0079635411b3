"""
Newsletter router: subscription form submission and email verification link
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse

from ..dependencies import get_subscription_service, get_verification_service
from ..pages import render_outcome
from ..schemas.subscription import SubscribeResult
from ..services.subscription_service import SubscriptionService
from ..services.verification_service import VerificationService
from ..utils.client_ip import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Newsletter"])


@router.post(
    "/subscribe",
    response_model=SubscribeResult,
    summary="Request a verification email",
    description="Validate the address and email a double opt-in link. The `status` field carries the outcome."
)
async def subscribe(
    request: Request,
    email: Optional[str] = Form(None),
    service: SubscriptionService = Depends(get_subscription_service)
):
    return await service.subscribe(email, get_client_ip(request))


@router.get(
    "/verify",
    response_class=HTMLResponse,
    summary="Confirm a subscription",
    description="Verify the emailed token and persist the subscriber. Always answers with an HTML page."
)
async def verify(
    token: Optional[str] = None,
    service: VerificationService = Depends(get_verification_service)
):
    outcome = await service.verify(token)
    settings = service.settings
    body = render_outcome(
        outcome,
        settings.newsletter_name,
        settings.resolved_newsletter_page_url,
        block_seconds=settings.verify_rate_limit_block_seconds,
    )
    return HTMLResponse(content=body, status_code=outcome.status_code)
