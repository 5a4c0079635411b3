"""
Coarse per-address request limiting for every endpoint.

This sits in front of the subscription-specific limiter in
services/rate_limiter.py and only guards against request floods.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from ..config import Settings
from ..utils.client_ip import get_client_ip, get_rate_limit_key
from ..utils.errors import error_body

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 60


def create_limiter(settings: Settings) -> Limiter:
    """
    Build the global limiter.

    Shares the key-value store when one is configured so limits hold across
    workers; falls back to process memory otherwise. Storage errors are
    swallowed unless the rate limit policy is enforced.
    """
    storage_uri = settings.redis_url or "memory://"
    storage_options = {}
    if settings.redis_url and settings.redis_token:
        storage_options["password"] = settings.redis_token

    return Limiter(
        key_func=get_rate_limit_key,
        default_limits=[settings.global_rate_limit],
        storage_uri=storage_uri,
        storage_options=storage_options,
        headers_enabled=True,
        swallow_errors=not settings.rate_limit_enforced,
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render slowapi rejections in the standard error envelope."""
    logger.warning(
        f"Global rate limit exceeded: {get_client_ip(request) or 'unknown'} -> {request.url.path}"
    )

    retry_after = DEFAULT_RETRY_AFTER
    rate_limit = "unknown"
    limit = getattr(exc, "limit", None)
    if limit is not None and getattr(limit, "limit", None) is not None:
        retry_after = limit.limit.get_expiry()
        rate_limit = str(limit.limit.amount)

    body = error_body(429, "Rate limit exceeded. Please try again later.")
    body["retry_after"] = str(retry_after)

    return JSONResponse(
        status_code=429,
        content=body,
        headers={
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": rate_limit,
            "X-RateLimit-Remaining": "0"
        }
    )
