"""
Subscription orchestrator: the "request verification" half of double opt-in.

    ValidateInput -> CheckDuplicate -> RateLimit -> IssueToken -> SendEmail

Each step runs only if the previous one succeeded. Business outcomes become a
SubscribeResult with a user-facing message; infrastructure failures are
logged and reported with a generic message.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from pydantic import ValidationError as PydanticValidationError

from ..config import Settings
from ..schemas.subscription import MAX_EMAIL_LENGTH, SubscribeRequest, SubscribeResult
from ..utils.errors import (
    GENERIC_FAILURE_MESSAGE,
    AlreadySubscribed,
    ConfigurationError,
    InfrastructureError,
    KeyValueStoreUnavailable,
    RateLimitExceeded,
    ValidationError,
)
from .kv_client import KeyValueClientFactory
from .notification_service import NotificationService
from .rate_limiter import RateLimitOptions, check_rate_limit, subscribe_key
from .subscriber_store import SubscriberStore
from .token_service import VerificationTokenService

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = (
    "Invitation email sent. Please check your inbox. "
    "(Don't forget to check your spam folder)"
)
RATE_LIMITED_MESSAGE = "Too many requests. Please try again later."


def validate_email(raw: Optional[str]) -> str:
    """
    Normalize and validate a submitted address.

    Only a bare address is accepted; display-name forms such as
    ``Name <a@example.com>`` are rejected.

    Returns:
        The parsed address, as stored and used for duplicate checks

    Raises:
        ValidationError: With the message to show the user
    """
    email = (raw or "").strip()
    if not email:
        raise ValidationError("Email is required!")
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError("Email is too long!")
    try:
        parsed = SubscribeRequest(email=email).email
    except PydanticValidationError:
        raise ValidationError("Invalid email format!") from None
    if parsed.lower() != email.lower():
        raise ValidationError("Invalid email format!")
    return parsed


def build_verification_link(base_url: str, token: str) -> str:
    return f"{base_url}/api/verify?{urlencode({'token': token})}"


class SubscriptionService:

    def __init__(
        self,
        settings: Settings,
        kv_factory: KeyValueClientFactory,
        store: SubscriberStore,
        token_service: VerificationTokenService,
        notifier: NotificationService,
    ):
        self.settings = settings
        self.kv_factory = kv_factory
        self.store = store
        self.token_service = token_service
        self.notifier = notifier
        self.rate_limit_options = RateLimitOptions(
            limit=settings.subscribe_rate_limit,
            window_seconds=settings.subscribe_rate_limit_window_seconds,
            block_seconds=settings.subscribe_rate_limit_block_seconds,
        )

    async def subscribe(self, email: Optional[str], client_ip: Optional[str]) -> SubscribeResult:
        """Run the request-verification flow for one form submission."""
        try:
            email = validate_email(email)
        except ValidationError as e:
            return SubscribeResult(message=e.message, status="error")

        try:
            async with self.store.session() as session:
                if await self.store.exists(email, session=session):
                    raise AlreadySubscribed(email)

                await self._apply_rate_limit(client_ip)

                link = self._verification_link(email)
                await self.notifier.send_verification_email(email, link)

        except AlreadySubscribed:
            logger.info(f"Subscription rejected, already subscribed: {email}")
            return SubscribeResult(
                message=f"User is already subscribed to {self.settings.newsletter_name}.",
                status="error",
            )
        except RateLimitExceeded as e:
            logger.info(f"Subscription rate limited: {e.key}")
            return SubscribeResult(message=RATE_LIMITED_MESSAGE, status="rate_limited")
        except InfrastructureError as e:
            logger.error(f"Subscription process error: {e}", exc_info=True)
            return SubscribeResult(message=GENERIC_FAILURE_MESSAGE, status="error")
        except Exception as e:
            logger.exception(f"Unexpected subscription error: {e}")
            return SubscribeResult(message=GENERIC_FAILURE_MESSAGE, status="error")

        return SubscribeResult(message=SUCCESS_MESSAGE, status="success")

    async def _apply_rate_limit(self, client_ip: Optional[str]) -> None:
        if not client_ip:
            if self.settings.rate_limit_require_client_ip:
                logger.warning("Client address unavailable, rejecting subscription")
                raise RateLimitExceeded("ratelimit:subscribe:unknown")
            logger.info("Client address unavailable, skipping rate limit")
            return

        try:
            redis = await self.kv_factory.get_client()
            await check_rate_limit(redis, subscribe_key(client_ip), self.rate_limit_options)
        except (ConfigurationError, KeyValueStoreUnavailable) as e:
            if self.settings.rate_limit_enforced:
                raise
            logger.warning(f"Rate limit store unavailable, skipping rate limit: {e}")

    def _verification_link(self, email: str) -> str:
        if not self.settings.base_url:
            raise ConfigurationError("BASE_URL is not defined")
        token = self.token_service.issue(email)
        return build_verification_link(self.settings.base_url, token)
