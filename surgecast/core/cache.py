"""
SurgeCast Response Cache

Best-effort Redis cache for reasoning-service completions
"""

import json
from typing import Any, Optional

import redis.asyncio as redis

from .config import RedisSettings
from .logging import get_logger

logger = get_logger(__name__)


class CacheService:
    """Redis cache; every failure is logged and treated as a miss"""

    def __init__(self, settings: RedisSettings, enabled: bool = True, default_ttl: int = 3600):
        self.settings = settings
        self.enabled = enabled
        self.default_ttl = default_ttl
        self._redis: Optional[redis.Redis] = None

    async def connect(self) -> Optional[redis.Redis]:
        """Connect lazily; returns None when Redis is unreachable"""
        if self._redis is None:
            try:
                client = redis.from_url(
                    self.settings.url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                )
                await client.ping()
                self._redis = client
                logger.info(f"Redis connected: {self.settings.url}")
            except Exception as e:
                logger.warning(f"Redis connection failed: {e}")
                self._redis = None
        return self._redis

    async def disconnect(self) -> None:
        """Close the connection"""
        if self._redis:
            await self._redis.aclose()
            logger.info("Redis disconnected")
            self._redis = None

    def _make_key(self, key: str) -> str:
        return f"{self.settings.key_prefix}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        """
        Read a cached value

        Returns:
            the decoded value, or None on miss/failure
        """
        if not self.enabled:
            return None

        client = await self.connect()
        if client is None:
            return None

        try:
            value = await client.get(self._make_key(key))
            if value:
                logger.debug(f"Cache hit: {key}")
                return json.loads(value)
            logger.debug(f"Cache miss: {key}")
            return None
        except Exception as e:
            logger.error(f"Cache get error: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Store a value

        Args:
            key: cache key
            value: JSON-serialisable value
            ttl: seconds, defaults to the configured TTL

        Returns:
            True on success
        """
        if not self.enabled:
            return False

        client = await self.connect()
        if client is None:
            return False

        ttl = ttl or self.default_ttl

        try:
            await client.set(self._make_key(key), json.dumps(value, ensure_ascii=False), ex=ttl)
            logger.debug(f"Cache set: {key}, TTL: {ttl}s")
            return True
        except Exception as e:
            logger.error(f"Cache set error: {e}")
            return False
