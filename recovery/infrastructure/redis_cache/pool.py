from __future__ import annotations

from typing import Optional

from redis.asyncio import Redis

from recovery.settings import get_settings

_client: Optional[Redis] = None


def get_redis(url: str | None = None) -> Redis:
    """
    Shared Redis client for the recovery password store, created on first call.

    `url` only matters on that first call; it falls back to REDIS_URL.
    Stored hashes come back as str (decode_responses=True).
    """
    global _client
    if _client is None:
        _client = Redis.from_url(
            url or get_settings().redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
