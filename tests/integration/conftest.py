# tests/integration/conftest.py
import os
from pathlib import Path

import psycopg
import pytest
import pytest_asyncio
from psycopg_pool import AsyncConnectionPool
from redis.asyncio import Redis
from redis.exceptions import RedisError

MIGRATIONS = Path(__file__).resolve().parents[2] / "migrations"


@pytest_asyncio.fixture
async def redis_client():
    url = os.environ.get("REDIS_URL", "redis://redis:6379/0")
    r = Redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=1,
    )
    try:
        await r.ping()
    except (RedisError, OSError):
        await r.aclose()
        pytest.skip("redis not reachable")
    try:
        yield r
    finally:
        await r.aclose()


@pytest_asyncio.fixture
async def pg_pool():
    url = os.environ.get("DATABASE_URL", "postgresql://app:app@db:5432/app")
    pool = AsyncConnectionPool(url, min_size=1, max_size=4, timeout=3, open=False)
    try:
        await pool.open(wait=True, timeout=3)
    except (psycopg.Error, OSError, TimeoutError):
        await pool.close()
        pytest.skip("postgres not reachable")

    async with pool.connection() as conn:
        async with conn.transaction():
            async with conn.cursor() as cur:
                for path in sorted(MIGRATIONS.glob("*.sql")):
                    await cur.execute(path.read_text(encoding="utf-8"))
    try:
        yield pool
    finally:
        await pool.close()
