"""
Tests for the Redis-backed cache service using an in-memory client.
"""

import fnmatch

import redis

from realsingles.api.config import APISettings
from realsingles.api.services.cache_service import CacheKeys, CacheService


class MemoryRedis:
    """The handful of Redis commands CacheService uses."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    def delete(self, *keys):
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    def scan_iter(self, match="*", count=None):
        return [key for key in list(self.data) if fnmatch.fnmatch(key, match)]

    def ping(self):
        return True


class BrokenRedis:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise redis.ConnectionError("connection refused")
        return fail


def enabled_settings():
    return APISettings(API_ENABLE_CACHE=True)


def test_get_or_set_caches_loader_result():
    client = MemoryRedis()
    cache = CacheService(enabled_settings(), client=client)
    calls = []

    def loader():
        calls.append(1)
        return [{"id": "p1"}]

    key = CacheKeys.products(None, 50, 0)
    assert cache.get_or_set(key, loader, ttl=300, key_type="products") == [{"id": "p1"}]
    assert cache.get_or_set(key, loader, ttl=300, key_type="products") == [{"id": "p1"}]
    assert len(calls) == 1
    assert client.ttls[key] == 300

    stats = cache.get_statistics()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["enabled"] is True


def test_invalidate_products_only_touches_product_keys():
    client = MemoryRedis()
    cache = CacheService(enabled_settings(), client=client)
    cache.set(CacheKeys.products("gift_card", 50, 0), [])
    cache.set(CacheKeys.product("abc"), {})
    cache.set(CacheKeys.ONBOARDING_STEPS, [])

    assert cache.invalidate_products() == 2
    assert list(client.data) == [CacheKeys.ONBOARDING_STEPS]


def test_redis_errors_fail_open():
    cache = CacheService(enabled_settings(), client=BrokenRedis())
    assert cache.get("anything") is None
    assert cache.set("anything", 1) is False
    assert cache.ping() is False
    assert cache.get_or_set("anything", lambda: "fresh") == "fresh"
    assert cache.get_statistics()["errors"] >= 3


def test_disabled_cache_never_connects():
    cache = CacheService(APISettings(API_ENABLE_CACHE=False), client=BrokenRedis())
    assert cache.get("key") is None
    assert cache.set("key", 1) is False
    assert cache.invalidate_products() == 0
    assert cache.get_or_set("key", lambda: 42) == 42
