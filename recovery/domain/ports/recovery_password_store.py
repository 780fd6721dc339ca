from __future__ import annotations

from typing import AsyncIterator, Optional, Protocol
from uuid import UUID

from recovery.domain.entities import SaltedTokenHash


class RecoveryPasswordStorePort(Protocol):
    """
    Durable recovery password records.

    Records live under two keys: the legacy E.164 number and the phone
    number identifier (PNI). Failures are raised as RecoveryStoreError with
    a `kind` callers can branch on.
    """

    async def lookup(self, number: str) -> Optional[SaltedTokenHash]:
        """Current hash stored under the legacy number key, or None."""

    async def lookup_by_identifier(self, pni: UUID) -> Optional[SaltedTokenHash]:
        """Current hash stored under the identifier key, or None."""

    async def add_or_replace(
        self, number: str, pni: UUID, token_hash: SaltedTokenHash
    ) -> None:
        """Unconditionally write both records."""

    async def remove_entry(self, number: str, pni: UUID) -> None:
        """
        Delete both records.
        Raise RecoveryStoreError(NOT_FOUND) if neither existed.
        """

    async def insert_pni_record(
        self,
        number: str,
        pni: UUID,
        token_hash: SaltedTokenHash,
        expiration_seconds: int,
    ) -> None:
        """
        Write the identifier record with a TTL, only if the legacy record
        still holds `token_hash` and is not changed while writing.
        Raise RecoveryStoreError(CONTESTED_LOCK) otherwise.
        """

    def scan_e164_records(
        self, batch_size: int = 100
    ) -> AsyncIterator[tuple[str, SaltedTokenHash]]:
        """Yield (number, hash) for every legacy record."""
