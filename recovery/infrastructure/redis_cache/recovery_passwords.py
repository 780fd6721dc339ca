from __future__ import annotations

from typing import AsyncIterator, Optional
from uuid import UUID

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from recovery.domain.entities import SaltedTokenHash
from recovery.domain.errors import RecoveryStoreError, StoreErrorKind
from recovery.domain.ports.recovery_password_store import RecoveryPasswordStorePort


class RedisRecoveryPasswords(RecoveryPasswordStorePort):
    """
    Redis implementation of RecoveryPasswordStorePort.

    Keys:
    - <prefix>e164:<number> -> hash, no TTL (legacy record)
    - <prefix>pni:<uuid>    -> hash, with TTL

    insert_pni_record() is an optimistic transaction: WATCH the legacy key,
    check it still holds the expected hash, then MULTI/EXEC the write.
    """

    def __init__(
        self,
        redis: Redis,
        *,
        key_prefix: str = "rrp:",
        ttl_seconds: int | None = None,
    ) -> None:
        self._redis = redis
        self._prefix = key_prefix
        self._ttl = ttl_seconds

    def _e164_key(self, number: str) -> str:
        return f"{self._prefix}e164:{number}"

    def _pni_key(self, pni: UUID) -> str:
        return f"{self._prefix}pni:{pni}"

    @staticmethod
    def _ex(seconds: int | None) -> int | None:
        # Redis rejects non-positive expirations; treat them as "no TTL"
        return seconds if seconds and seconds > 0 else None

    async def lookup(self, number: str) -> Optional[SaltedTokenHash]:
        try:
            value = await self._redis.get(self._e164_key(number))
        except RedisError as e:
            raise RecoveryStoreError(StoreErrorKind.OTHER, f"redis error: {e}") from e
        return SaltedTokenHash(value) if value else None

    async def lookup_by_identifier(self, pni: UUID) -> Optional[SaltedTokenHash]:
        try:
            value = await self._redis.get(self._pni_key(pni))
        except RedisError as e:
            raise RecoveryStoreError(StoreErrorKind.OTHER, f"redis error: {e}") from e
        return SaltedTokenHash(value) if value else None

    async def add_or_replace(
        self, number: str, pni: UUID, token_hash: SaltedTokenHash
    ) -> None:
        pipe = self._redis.pipeline(transaction=True)
        pipe.set(self._e164_key(number), token_hash.value)
        pipe.set(self._pni_key(pni), token_hash.value, ex=self._ex(self._ttl))
        try:
            await pipe.execute()
        except RedisError as e:
            raise RecoveryStoreError(StoreErrorKind.OTHER, f"redis error: {e}") from e

    async def remove_entry(self, number: str, pni: UUID) -> None:
        try:
            removed = await self._redis.delete(
                self._e164_key(number), self._pni_key(pni)
            )
        except RedisError as e:
            raise RecoveryStoreError(StoreErrorKind.OTHER, f"redis error: {e}") from e
        if not removed:
            raise RecoveryStoreError(
                StoreErrorKind.NOT_FOUND, "no recovery password to remove"
            )

    async def insert_pni_record(
        self,
        number: str,
        pni: UUID,
        token_hash: SaltedTokenHash,
        expiration_seconds: int,
    ) -> None:
        e164_key = self._e164_key(number)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                await pipe.watch(e164_key)
                current = await pipe.get(e164_key)
                if current != token_hash.value:
                    raise RecoveryStoreError(
                        StoreErrorKind.CONTESTED_LOCK,
                        "legacy recovery password changed",
                    )
                pipe.multi()
                pipe.set(
                    self._pni_key(pni),
                    token_hash.value,
                    ex=self._ex(expiration_seconds),
                )
                await pipe.execute()
        except WatchError as e:
            raise RecoveryStoreError(
                StoreErrorKind.CONTESTED_LOCK, "legacy recovery password changed"
            ) from e
        except RedisError as e:
            raise RecoveryStoreError(StoreErrorKind.OTHER, f"redis error: {e}") from e

    async def scan_e164_records(
        self, batch_size: int = 100
    ) -> AsyncIterator[tuple[str, SaltedTokenHash]]:
        pattern = self._e164_key("*")
        offset = len(self._e164_key(""))
        try:
            async for key in self._redis.scan_iter(match=pattern, count=batch_size):
                value = await self._redis.get(key)
                # deleted between SCAN and GET
                if not value:
                    continue
                yield key[offset:], SaltedTokenHash(value)
        except RedisError as e:
            raise RecoveryStoreError(StoreErrorKind.OTHER, f"redis error: {e}") from e
