from __future__ import annotations

import asyncio
import logging

from recovery.application.e164_migration import E164MigrationRunner
from recovery.infrastructure.db.phone_number_identifiers import PgPhoneNumberIdentifiers
from recovery.infrastructure.db.pool import close_pool, open_pool
from recovery.infrastructure.redis_cache.pool import close_redis
from recovery.logging import setup_logging
from recovery.main import build_manager, build_store
from recovery.settings import get_settings

logger = logging.getLogger(__name__)


async def _run() -> int:
    settings = get_settings()
    setup_logging(settings.log_level)

    pool = await open_pool(settings.database_url)
    logger.info("worker: pool opened")

    store = build_store(settings)
    runner = E164MigrationRunner(
        store=store,
        manager=build_manager(store, PgPhoneNumberIdentifiers(pool), settings),
        expiration_seconds=settings.migration_expiration_seconds,
        concurrency=settings.migration_concurrency,
        batch_size=settings.migration_batch_size,
    )

    try:
        stats = await runner.run()
    finally:
        await close_redis()
        await close_pool()
        logger.info("worker: resources closed")

    logger.info("worker: stopped cleanly", extra={"failed": stats.failed})

    return 1 if stats.failed else 0


def main() -> int:
    return asyncio.run(_run())


if __name__ == "__main__":
    raise SystemExit(main())
