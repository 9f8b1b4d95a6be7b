"""Read-through cache for computed assessment insights.

Aggregating a large cohort means loading every submission, so the result
is cached per assessment:

  read:   cache → hit → return
          cache → miss → aggregate from the repositories → populate → return

Only completed assessments are cached, so an entry never goes stale; the
TTL just bounds how long an idle entry occupies memory.  Callers treat
redis errors as a miss.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from portal.db.redis import redis_pool


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value with a TTL (time to live)."""
        ...


class InMemoryCacheService:
    """Process-local cache with no TTL enforcement; tests clear _store."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value


class RedisCacheService:
    """Redis-backed cache, shared by every API instance."""

    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{key}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)


def insights_key(assessment_id: object) -> str:
    return f"insights:{assessment_id}"


if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
