from contextlib import asynccontextmanager
from typing import AsyncIterator

from recovery.application.recovery_passwords import RecoveryPasswordsManager
from recovery.domain.ports.phone_number_identifiers import PhoneNumberIdentifiersPort
from recovery.domain.ports.recovery_password_store import RecoveryPasswordStorePort
from recovery.infrastructure.db.phone_number_identifiers import PgPhoneNumberIdentifiers
from recovery.infrastructure.db.pool import close_pool, open_pool
from recovery.infrastructure.redis_cache.pool import close_redis, get_redis
from recovery.infrastructure.redis_cache.recovery_passwords import RedisRecoveryPasswords
from recovery.settings import Settings, get_settings


def build_store(settings: Settings) -> RedisRecoveryPasswords:
    return RedisRecoveryPasswords(
        get_redis(settings.redis_url),
        key_prefix=settings.redis_key_prefix,
        ttl_seconds=settings.recovery_password_ttl_seconds,
    )


def build_manager(
    store: RecoveryPasswordStorePort,
    identifiers: PhoneNumberIdentifiersPort,
    settings: Settings,
) -> RecoveryPasswordsManager:
    return RecoveryPasswordsManager(
        store,
        identifiers,
        max_migration_attempts=settings.migration_max_attempts,
        token_hash_rounds=settings.token_hash_rounds,
    )


@asynccontextmanager
async def recovery_passwords_manager(
    settings: Settings | None = None,
) -> AsyncIterator[RecoveryPasswordsManager]:
    """
    Open the Postgres pool and Redis client, yield a wired manager, and close
    both on exit.

    Usage:
        async with recovery_passwords_manager() as manager:
            ok = await manager.verify("+15555550123", password)
    """
    settings = settings or get_settings()

    # startup
    pool = await open_pool(settings.database_url)
    store = build_store(settings)

    try:
        yield build_manager(store, PgPhoneNumberIdentifiers(pool), settings)
    finally:
        # shutdown
        await close_redis()
        await close_pool()
