from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from recovery.application.recovery_passwords import RecoveryPasswordsManager
from recovery.domain.entities import SaltedTokenHash
from recovery.domain.ports.recovery_password_store import RecoveryPasswordStorePort
from recovery.domain.services import mask_number

logger = logging.getLogger(__name__)


@dataclass
class MigrationStats:
    scanned: int = 0
    migrated: int = 0
    moot: int = 0
    failed: int = 0


class E164MigrationRunner:
    """
    Walks every legacy (E.164-keyed) recovery password and migrates it to an
    identifier-keyed record through the manager.

    A failed record is logged and counted; the run carries on with the rest.
    """

    def __init__(
        self,
        *,
        store: RecoveryPasswordStorePort,
        manager: RecoveryPasswordsManager,
        expiration_seconds: int,
        concurrency: int = 16,
        batch_size: int = 100,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.store = store
        self.manager = manager
        self.expiration_seconds = expiration_seconds
        self.concurrency = concurrency
        self.batch_size = batch_size

    async def run(self) -> MigrationStats:
        logger.info(
            "e164 migration started",
            extra={"concurrency": self.concurrency, "batch_size": self.batch_size},
        )
        stats = MigrationStats()
        semaphore = asyncio.Semaphore(self.concurrency)
        tasks: set[asyncio.Task] = set()

        try:
            async for number, token_hash in self.store.scan_e164_records(
                self.batch_size
            ):
                stats.scanned += 1
                await semaphore.acquire()
                task = asyncio.create_task(self._migrate_one(number, token_hash, stats))
                tasks.add(task)
                task.add_done_callback(tasks.discard)
                task.add_done_callback(lambda _: semaphore.release())
        finally:
            if tasks:
                await asyncio.gather(*tasks)

        logger.info(
            "e164 migration finished",
            extra={
                "scanned": stats.scanned,
                "migrated": stats.migrated,
                "moot": stats.moot,
                "failed": stats.failed,
            },
        )
        return stats

    async def _migrate_one(
        self, number: str, token_hash: SaltedTokenHash, stats: MigrationStats
    ) -> None:
        try:
            migrated = await self.manager.migrate_e164_record(
                number, token_hash, self.expiration_seconds
            )
        except Exception:  # noqa: BLE001
            # the manager already logged the cause
            stats.failed += 1
            logger.warning(
                "skipping record after failed migration",
                extra={"number": mask_number(number)},
            )
            return

        if migrated:
            stats.migrated += 1
        else:
            stats.moot += 1
