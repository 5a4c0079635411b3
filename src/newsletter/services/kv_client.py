"""
Key-value store connection factory.

One handle per process: created on first use, smoke tested with PING, then
reused by every request. The factory instance lives in the application
context rather than in a module global.
"""

import asyncio
import logging
from typing import Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from ..config import Settings
from ..utils.errors import ConfigurationError, KeyValueStoreUnavailable

logger = logging.getLogger(__name__)


class KeyValueClientFactory:
    """
    Lazily builds and memoizes a redis.asyncio client.

    A failed connection attempt is discarded and raised; the next call tries
    again. A handle is only memoized after it answered PING.
    """

    def __init__(self, settings: Settings):
        self.url = settings.redis_url
        self.password = settings.redis_token or None
        self.timeout = settings.kv_connect_timeout_seconds
        self._client: Optional[aioredis.Redis] = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def get_client(self) -> aioredis.Redis:
        """
        Return the shared client, connecting on first call.

        Raises:
            ConfigurationError: REDIS_URL is not set
            KeyValueStoreUnavailable: The store did not answer PING
        """
        if self._client is not None:
            return self._client

        if not self.url:
            logger.warning("Key-value store credentials not configured")
            raise ConfigurationError("REDIS_URL is not configured")

        async with self._lock:
            if self._client is None:
                self._client = await self._connect()
        return self._client

    async def _connect(self) -> aioredis.Redis:
        client = aioredis.from_url(
            self.url,
            password=self.password,
            socket_connect_timeout=self.timeout,
            socket_timeout=self.timeout,
            decode_responses=True,
        )
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.error(f"Failed to connect to key-value store: {e}")
            await client.aclose()
            raise KeyValueStoreUnavailable(f"Key-value store connection failed: {e}") from e

        logger.info("Key-value store connected successfully")
        return client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Key-value store connection closed")
