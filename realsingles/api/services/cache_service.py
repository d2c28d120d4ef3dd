"""
Cache Service
Redis-backed caching for read-mostly API payloads (reward catalog, onboarding
step definitions).

The cache fails open: any Redis problem is logged and treated as a miss, so
requests always fall through to the database.
"""

import json
import logging
import threading
import time
from collections import defaultdict
from typing import Any, Callable, Dict, Optional

import redis
from redis.connection import ConnectionPool

from ..config import APISettings, get_settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "realsingles"


class CacheKeys:
    """Key builders for everything the API caches."""

    PRODUCTS_PATTERN = f"{KEY_PREFIX}:products:*"
    ONBOARDING_STEPS = f"{KEY_PREFIX}:onboarding:steps"

    @staticmethod
    def products(category: Optional[str], limit: int, offset: int) -> str:
        return f"{KEY_PREFIX}:products:list:{category or 'all'}:{limit}:{offset}"

    @staticmethod
    def product(product_id: Any) -> str:
        return f"{KEY_PREFIX}:products:item:{product_id}"


class CacheStatistics:
    """Track cache hit/miss counts."""

    def __init__(self):
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.deletes = 0
        self.errors = 0
        self.hits_by_type: Dict[str, int] = defaultdict(int)
        self.misses_by_type: Dict[str, int] = defaultdict(int)
        self.start_time = time.time()

    def record_hit(self, key_type: str):
        self.hits += 1
        self.hits_by_type[key_type] += 1

    def record_miss(self, key_type: str):
        self.misses += 1
        self.misses_by_type[key_type] += 1

    def get_hit_rate(self) -> float:
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0

    def get_stats(self) -> Dict[str, Any]:
        return {
            "uptime_seconds": time.time() - self.start_time,
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "errors": self.errors,
            "hit_rate_percent": self.get_hit_rate(),
            "hits_by_type": dict(self.hits_by_type),
            "misses_by_type": dict(self.misses_by_type),
        }


class CacheService:
    """
    JSON cache on top of a pooled Redis client.

    When caching is disabled in settings every read is a miss and every
    write is a no-op.
    """

    def __init__(self, settings: Optional[APISettings] = None, client: Optional[redis.Redis] = None):
        """
        Initialize cache service.

        Args:
            settings: API settings
            client: Pre-built Redis client (connection pool is created lazily otherwise)
        """
        self.settings = settings or get_settings()
        self.enabled = self.settings.enable_cache
        self.stats = CacheStatistics()
        self._client = client
        self._pool: Optional[ConnectionPool] = None
        self._lock = threading.Lock()

        logger.info(
            f"Cache service initialized (enabled={self.enabled}, "
            f"redis={self.settings.redis_host}:{self.settings.redis_port}/{self.settings.redis_db})"
        )

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._pool = ConnectionPool(
                        host=self.settings.redis_host,
                        port=self.settings.redis_port,
                        db=self.settings.redis_db,
                        decode_responses=True,
                        max_connections=20,
                        socket_timeout=2,
                        socket_connect_timeout=2,
                    )
                    self._client = redis.Redis(connection_pool=self._pool)
        return self._client

    def get(self, key: str, key_type: str = "generic") -> Optional[Any]:
        """Cached value for `key`, or None on a miss or any Redis error."""
        if not self.enabled:
            return None

        try:
            data = self._get_client().get(key)
        except redis.RedisError as e:
            self.stats.errors += 1
            logger.warning(f"Redis GET error for key '{key}': {e}")
            return None

        if data is None:
            self.stats.record_miss(key_type)
            return None

        try:
            value = json.loads(data)
        except (TypeError, ValueError) as e:
            self.stats.errors += 1
            logger.error(f"Error deserializing cached data for key '{key}': {e}")
            return None

        self.stats.record_hit(key_type)
        logger.debug(f"Cache HIT: {key}")
        return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store `value` as JSON. Returns False when disabled or on error."""
        if not self.enabled:
            return False

        try:
            data = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            self.stats.errors += 1
            logger.error(f"Error serializing data for key '{key}': {e}")
            return False

        try:
            client = self._get_client()
            if ttl is not None:
                client.setex(key, ttl, data)
            else:
                client.set(key, data)
        except redis.RedisError as e:
            self.stats.errors += 1
            logger.warning(f"Redis SET error for key '{key}': {e}")
            return False

        self.stats.sets += 1
        return True

    def delete(self, key: str) -> bool:
        if not self.enabled:
            return False
        try:
            deleted = self._get_client().delete(key)
        except redis.RedisError as e:
            self.stats.errors += 1
            logger.warning(f"Redis DELETE error for key '{key}': {e}")
            return False
        self.stats.deletes += deleted
        return deleted > 0

    def invalidate_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern.

        Uses SCAN so large keyspaces are not blocked.

        Returns:
            Number of keys deleted
        """
        if not self.enabled:
            return 0
        try:
            client = self._get_client()
            keys = list(client.scan_iter(match=pattern, count=100))
            deleted = client.delete(*keys) if keys else 0
        except redis.RedisError as e:
            self.stats.errors += 1
            logger.warning(f"Failed to invalidate pattern {pattern}: {e}")
            return 0

        self.stats.deletes += deleted
        logger.info(f"Invalidated {deleted} cache keys matching {pattern}")
        return deleted

    def get_or_set(self, key: str, loader: Callable[[], Any], ttl: Optional[int] = None,
                   key_type: str = "generic") -> Any:
        """Return the cached value, or call `loader`, cache its result and return it."""
        cached = self.get(key, key_type=key_type)
        if cached is not None:
            return cached
        value = loader()
        self.set(key, value, ttl=ttl)
        return value

    def invalidate_products(self) -> int:
        return self.invalidate_pattern(CacheKeys.PRODUCTS_PATTERN)

    def ping(self) -> bool:
        if not self.enabled:
            return False
        try:
            return bool(self._get_client().ping())
        except redis.RedisError as e:
            logger.warning(f"Redis PING error: {e}")
            return False

    def get_statistics(self) -> Dict[str, Any]:
        stats = self.stats.get_stats()
        stats["enabled"] = self.enabled
        return stats


# Singleton instance
_cache_service: Optional[CacheService] = None


def get_cache_service() -> CacheService:
    """Get global cache service instance."""
    global _cache_service
    if _cache_service is None:
        _cache_service = CacheService()
    return _cache_service


def reset_cache_service() -> None:
    """Drop the global instance (settings changed, or between tests)."""
    global _cache_service
    _cache_service = None
