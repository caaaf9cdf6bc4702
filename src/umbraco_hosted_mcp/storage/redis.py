"""Redis-backed key-value store for multi-instance deployments."""

from typing import Optional

import redis.asyncio as redis


class RedisKeyValueStore:
    """
    Store backed by Redis, using native key expiry.

    take() uses GETDEL (Redis 6.2+), so two concurrent callbacks can never
    both consume the same state key.
    """

    def __init__(self, *, url: str, prefix: str = "umbraco_hosted_mcp"):
        if not url:
            raise ValueError("Redis key-value store requires a redis_url configuration value")

        self._client = redis.from_url(url, decode_responses=True)
        self._prefix = prefix.rstrip(":")

    def _make_key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._client.set(self._make_key(key), value, ex=ttl_seconds)

    async def get(self, key: str) -> Optional[str]:
        return await self._client.get(self._make_key(key))

    async def delete(self, key: str) -> None:
        await self._client.delete(self._make_key(key))

    async def take(self, key: str) -> Optional[str]:
        return await self._client.getdel(self._make_key(key))

    async def aclose(self) -> None:
        await self._client.aclose()
