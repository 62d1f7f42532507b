"""Redis connection management."""

from __future__ import annotations

import redis.asyncio as redis


def create_redis(url: str) -> redis.Redis | None:
    """Build a Redis client for ``url``; an empty URL means Redis is disabled."""
    if not url:
        return None
    return redis.from_url(url, decode_responses=True)


async def close_redis(client: redis.Redis | None) -> None:
    if client is not None:
        await client.aclose()
