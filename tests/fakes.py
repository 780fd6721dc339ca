from typing import Callable, Optional
from uuid import UUID, uuid4

from recovery.domain.entities import SaltedTokenHash
from recovery.domain.errors import RecoveryStoreError, StoreErrorKind


class FakePhoneNumberIdentifiers:
    def __init__(self):
        self.pnis: dict[str, UUID] = {}
        self.calls: list[str] = []
        self.error: Exception | None = None

    async def get_phone_number_identifier(self, number: str) -> UUID:
        self.calls.append(number)
        if self.error:
            raise self.error
        return self.pnis.setdefault(number, uuid4())


class FakeRecoveryPasswords:
    """
    In-memory store with the same conditional-write rules as the Redis one.

    `contended_inserts` makes the next N insert_pni_record() calls lose the
    optimistic lock; `on_contention` runs right before each of those losses,
    standing in for the concurrent writer.
    """

    def __init__(self):
        self.e164: dict[str, SaltedTokenHash] = {}
        self.pni: dict[UUID, tuple[SaltedTokenHash, Optional[int]]] = {}
        self.insert_calls: list[tuple[str, UUID, SaltedTokenHash, int]] = []
        self.lookup_calls: list[str] = []
        self.contended_inserts = 0
        self.on_contention: Callable[["FakeRecoveryPasswords"], None] | None = None
        self.lookup_error: Exception | None = None
        self.write_error: Exception | None = None
        self.remove_error: Exception | None = None
        self.insert_error: Exception | None = None

    async def lookup(self, number: str) -> Optional[SaltedTokenHash]:
        self.lookup_calls.append(number)
        if self.lookup_error:
            raise self.lookup_error
        return self.e164.get(number)

    async def lookup_by_identifier(self, pni: UUID) -> Optional[SaltedTokenHash]:
        record = self.pni.get(pni)
        return record[0] if record else None

    async def add_or_replace(
        self, number: str, pni: UUID, token_hash: SaltedTokenHash
    ) -> None:
        if self.write_error:
            raise self.write_error
        self.e164[number] = token_hash
        self.pni[pni] = (token_hash, None)

    async def remove_entry(self, number: str, pni: UUID) -> None:
        if self.remove_error:
            raise self.remove_error
        found_e164 = self.e164.pop(number, None)
        found_pni = self.pni.pop(pni, None)
        if found_e164 is None and found_pni is None:
            raise RecoveryStoreError(StoreErrorKind.NOT_FOUND)

    async def insert_pni_record(
        self,
        number: str,
        pni: UUID,
        token_hash: SaltedTokenHash,
        expiration_seconds: int,
    ) -> None:
        self.insert_calls.append((number, pni, token_hash, expiration_seconds))
        if self.insert_error:
            raise self.insert_error
        if self.contended_inserts > 0:
            self.contended_inserts -= 1
            if self.on_contention:
                self.on_contention(self)
            raise RecoveryStoreError(StoreErrorKind.CONTESTED_LOCK)
        if self.e164.get(number) != token_hash:
            raise RecoveryStoreError(StoreErrorKind.CONTESTED_LOCK)
        self.pni[pni] = (token_hash, expiration_seconds)

    async def scan_e164_records(self, batch_size: int = 100):
        for number, token_hash in list(self.e164.items()):
            yield number, token_hash


class FakeFailingScanStore(FakeRecoveryPasswords):
    async def scan_e164_records(self, batch_size: int = 100):
        for number, token_hash in list(self.e164.items()):
            yield number, token_hash
        raise RecoveryStoreError(StoreErrorKind.OTHER, "scan broke")
