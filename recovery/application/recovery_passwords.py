from __future__ import annotations

import logging

from recovery.domain.entities import SaltedTokenHash
from recovery.domain.errors import (
    ContestedLockExhausted,
    RecoveryStoreError,
    StoreErrorKind,
)
from recovery.domain.ports.phone_number_identifiers import PhoneNumberIdentifiersPort
from recovery.domain.ports.recovery_password_store import RecoveryPasswordStorePort
from recovery.domain.services import mask_number, token_to_string

logger = logging.getLogger(__name__)

DEFAULT_MIGRATION_ATTEMPTS = 10


class RecoveryPasswordsManager:
    """
    Verifies, stores, removes and migrates registration recovery passwords.

    Holds no locks of its own: concurrent writers are arbitrated by the
    store's conditional write in insert_pni_record().
    """

    def __init__(
        self,
        store: RecoveryPasswordStorePort,
        identifiers: PhoneNumberIdentifiersPort,
        *,
        max_migration_attempts: int = DEFAULT_MIGRATION_ATTEMPTS,
        token_hash_rounds: int | None = None,
    ) -> None:
        self._store = store
        self._identifiers = identifiers
        self._max_migration_attempts = max_migration_attempts
        self._token_hash_rounds = token_hash_rounds

    async def verify(self, number: str, password: bytes) -> bool:
        try:
            token_hash = await self._store.lookup(number)
        except Exception:
            logger.warning(
                "failed to look up recovery password",
                exc_info=True,
                extra={"number": mask_number(number)},
            )
            return False

        if token_hash is None:
            return False
        return token_hash.verify(token_to_string(password))

    async def store_for_current_number(self, number: str, password: bytes) -> None:
        token_hash = SaltedTokenHash.generate_for(
            token_to_string(password), rounds=self._token_hash_rounds
        )
        try:
            pni = await self._identifiers.get_phone_number_identifier(number)
            await self._store.add_or_replace(number, pni, token_hash)
        except Exception:
            logger.warning(
                "failed to store recovery password",
                exc_info=True,
                extra={"number": mask_number(number)},
            )
            raise

    async def remove_for_number(self, number: str) -> None:
        try:
            pni = await self._identifiers.get_phone_number_identifier(number)
            await self._store.remove_entry(number, pni)
        except RecoveryStoreError as err:
            # already gone; removal is reached from many flows
            if err.kind is StoreErrorKind.NOT_FOUND:
                return
            logger.warning(
                "failed to remove recovery password",
                exc_info=True,
                extra={"number": mask_number(number)},
            )
            raise
        except Exception:
            logger.warning(
                "failed to remove recovery password",
                exc_info=True,
                extra={"number": mask_number(number)},
            )
            raise

    async def migrate_e164_record(
        self, number: str, token_hash: SaltedTokenHash, expiration_seconds: int
    ) -> bool:
        """
        Copy the legacy record for `number` to its identifier-keyed record.

        Returns True once written, False when the legacy record disappeared
        while retrying (nothing left to migrate). Raises ContestedLockExhausted
        when every attempt lost the optimistic lock; other failures propagate
        without retry.
        """
        masked = mask_number(number)
        try:
            pni = await self._identifiers.get_phone_number_identifier(number)
        except Exception:
            logger.warning(
                "failed to resolve identifier for migration",
                exc_info=True,
                extra={"number": masked},
            )
            raise

        candidate = token_hash
        for attempt in range(1, self._max_migration_attempts + 1):
            try:
                await self._store.insert_pni_record(
                    number, pni, candidate, expiration_seconds
                )
                return True
            except RecoveryStoreError as err:
                if err.kind is not StoreErrorKind.CONTESTED_LOCK:
                    logger.warning(
                        "failed to migrate recovery password",
                        exc_info=True,
                        extra={"number": masked, "attempt": attempt},
                    )
                    raise
            except Exception:
                logger.warning(
                    "failed to migrate recovery password",
                    exc_info=True,
                    extra={"number": masked, "attempt": attempt},
                )
                raise

            logger.debug(
                "migration lost optimistic lock; refreshing",
                extra={"number": masked, "attempt": attempt},
            )
            try:
                refreshed = await self._store.lookup(number)
            except Exception:
                logger.warning(
                    "failed to refresh recovery password during migration",
                    exc_info=True,
                    extra={"number": masked, "attempt": attempt},
                )
                raise
            if refreshed is None:
                logger.info(
                    "legacy recovery password removed during migration",
                    extra={"number": masked, "attempt": attempt},
                )
                return False
            candidate = refreshed

        logger.error(
            "migration gave up on contested optimistic lock",
            extra={"number": masked, "attempts": self._max_migration_attempts},
        )
        raise ContestedLockExhausted(number, self._max_migration_attempts)
