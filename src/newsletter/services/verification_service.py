"""
Verification endpoint logic: the "confirm" half of double opt-in.

    RequireToken -> VerifyToken -> RateLimit(email) -> Persist

Returns a VerificationOutcome; the router turns it into an HTML page.
"""

import logging
from enum import Enum
from typing import Optional

from redis.exceptions import RedisError

from ..config import Settings
from ..schemas.subscription import VerificationClaims
from ..utils.errors import (
    AlreadySubscribed,
    ConfigurationError,
    KeyValueStoreUnavailable,
    RateLimitExceeded,
    TokenExpired,
    TokenInvalid,
)
from .kv_client import KeyValueClientFactory
from .rate_limiter import RateLimitOptions, check_rate_limit, verify_key
from .subscriber_store import SubscriberStore
from .token_service import VerificationTokenService

logger = logging.getLogger(__name__)

CONSUMED_PREFIX = "verify:consumed:"


class VerificationOutcome(str, Enum):
    VERIFIED = "verified"
    ALREADY_SUBSCRIBED = "already_subscribed"
    TOKEN_MISSING = "token_missing"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_INVALID = "token_invalid"
    RATE_LIMITED = "rate_limited"
    FAILED = "failed"

    @property
    def status_code(self) -> int:
        if self in (VerificationOutcome.VERIFIED, VerificationOutcome.ALREADY_SUBSCRIBED):
            return 200
        if self is VerificationOutcome.RATE_LIMITED:
            return 429
        return 400


class VerificationService:

    def __init__(
        self,
        settings: Settings,
        kv_factory: KeyValueClientFactory,
        store: SubscriberStore,
        token_service: VerificationTokenService,
    ):
        self.settings = settings
        self.kv_factory = kv_factory
        self.store = store
        self.token_service = token_service
        self.rate_limit_options = RateLimitOptions(
            limit=settings.verify_rate_limit,
            window_seconds=settings.verify_rate_limit_window_seconds,
            block_seconds=settings.verify_rate_limit_block_seconds,
        )

    async def verify(self, token: Optional[str]) -> VerificationOutcome:
        if not token or not token.strip():
            logger.error("Token missing in request")
            return VerificationOutcome.TOKEN_MISSING

        try:
            claims = self.token_service.verify(token.strip())
        except TokenExpired:
            logger.error("Verification token expired")
            return VerificationOutcome.TOKEN_EXPIRED
        except TokenInvalid as e:
            logger.error(f"Invalid verification token: {e}")
            return VerificationOutcome.TOKEN_INVALID
        except Exception as e:
            logger.exception(f"Verification failed before token check: {e}")
            return VerificationOutcome.FAILED

        try:
            if self.settings.single_use_tokens and await self._is_consumed(claims):
                logger.info(f"Verification token already used: {claims.jti}")
                return VerificationOutcome.ALREADY_SUBSCRIBED

            await self._apply_rate_limit(claims.email)
            await self.store.insert(claims.email)
        except RateLimitExceeded as e:
            logger.error(f"Rate limit exceeded: {e.key}")
            return VerificationOutcome.RATE_LIMITED
        except AlreadySubscribed:
            logger.info(f"User already subscribed: {claims.email}")
            await self._mark_consumed(claims)
            return VerificationOutcome.ALREADY_SUBSCRIBED
        except Exception as e:
            logger.exception(f"Verification failed: {e}")
            return VerificationOutcome.FAILED

        await self._mark_consumed(claims)
        return VerificationOutcome.VERIFIED

    async def _apply_rate_limit(self, email: str) -> None:
        try:
            redis = await self.kv_factory.get_client()
            await check_rate_limit(redis, verify_key(email), self.rate_limit_options)
        except (ConfigurationError, KeyValueStoreUnavailable) as e:
            if self.settings.rate_limit_enforced:
                raise
            logger.warning(f"Rate limit store unavailable, skipping rate limit: {e}")

    async def _is_consumed(self, claims: VerificationClaims) -> bool:
        try:
            redis = await self.kv_factory.get_client()
            return bool(await redis.exists(f"{CONSUMED_PREFIX}{claims.jti}"))
        except (ConfigurationError, KeyValueStoreUnavailable, RedisError) as e:
            if self.settings.rate_limit_enforced:
                raise
            logger.warning(f"Consumed-token lookup unavailable, continuing: {e}")
            return False

    async def _mark_consumed(self, claims: VerificationClaims) -> None:
        if not self.settings.single_use_tokens:
            return
        try:
            redis = await self.kv_factory.get_client()
            await redis.set(
                f"{CONSUMED_PREFIX}{claims.jti}",
                "1",
                ex=self.token_service.expiration_minutes * 60,
            )
        except Exception as e:
            logger.warning(f"Could not record consumed token {claims.jti}: {e}")
