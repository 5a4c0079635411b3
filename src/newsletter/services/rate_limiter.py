"""
Fixed-window rate limiting with an extended block period.

Counters live in the shared key-value store so every worker process sees the
same state:

    <key>          integer attempt count, TTL = window
    <key>:blocked  "1", TTL = block period, set once the limit is exceeded

While the block key exists the identity is rejected without incrementing the
counter. Neither entry is cleared early; both simply expire.
"""

import logging
from dataclasses import dataclass

from redis.exceptions import RedisError

from ..utils.errors import RateLimitExceeded, RateLimiterUnavailable

logger = logging.getLogger(__name__)

BLOCK_SUFFIX = ":blocked"


@dataclass(frozen=True)
class RateLimitOptions:
    limit: int = 10
    window_seconds: int = 60
    block_seconds: int = 300


def subscribe_key(client_ip: str) -> str:
    return f"ratelimit:subscribe:{client_ip}"


def verify_key(email: str) -> str:
    return f"ratelimit:verify:{email}"


def block_key(key: str) -> str:
    return f"{key}{BLOCK_SUFFIX}"


async def check_rate_limit(store, key: str, options: RateLimitOptions = RateLimitOptions()) -> int:
    """
    Count one attempt against ``key``.

    Args:
        store: redis.asyncio.Redis compatible client
        key: Counter key, e.g. ``ratelimit:subscribe:<ip>``
        options: Limit, window and block durations

    Returns:
        The attempt count within the current window

    Raises:
        RateLimitExceeded: The identity is blocked or just went over the limit
        RateLimiterUnavailable: The backing store failed
    """
    blocked_key = block_key(key)
    try:
        if await store.exists(blocked_key):
            logger.info(f"Rate limit block active for {key}")
            raise RateLimitExceeded(key, retry_after=options.block_seconds)

        attempts = await store.incr(key)
        if attempts == 1:
            await store.expire(key, options.window_seconds)

        if attempts > options.limit:
            await store.set(blocked_key, "1", ex=options.block_seconds)
            logger.warning(
                f"Rate limit exceeded for {key}: {attempts} attempts "
                f"(limit {options.limit}/{options.window_seconds}s), blocked for {options.block_seconds}s"
            )
            raise RateLimitExceeded(key, retry_after=options.block_seconds)
    except RedisError as e:
        logger.error(f"Rate limit check failed for {key}: {e}", exc_info=True)
        raise RateLimiterUnavailable(f"Rate limit store error: {e}") from e

    return attempts
