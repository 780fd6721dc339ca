from __future__ import annotations

from typing import Optional

from psycopg_pool import AsyncConnectionPool

from recovery.settings import get_settings

_pool: Optional[AsyncConnectionPool] = None


def add_connect_timeout(dsn: str, seconds: int = 3) -> str:
    if "connect_timeout=" in dsn:
        return dsn
    sep = "&" if "?" in dsn else "?"
    return f"{dsn}{sep}connect_timeout={seconds}"


def get_pool(dsn: str | None = None) -> AsyncConnectionPool:
    """
    Shared pool for the identifier resolver, created closed on first call.

    `dsn` only matters on that first call; it falls back to DATABASE_URL.
    """
    global _pool
    if _pool is None:
        _pool = AsyncConnectionPool(
            add_connect_timeout(dsn or get_settings().database_url),
            min_size=1,
            max_size=10,
            timeout=5,
            open=False,
        )
    return _pool


async def open_pool(dsn: str | None = None) -> AsyncConnectionPool:
    pool = get_pool(dsn)
    if pool.closed:
        await pool.open()
    return pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
