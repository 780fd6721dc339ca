from enum import Enum


class DomainError(Exception):
    """Base class for all domain-level errors."""

    pass


class StoreErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONTESTED_LOCK = "contested_lock"
    OTHER = "other"


class RecoveryStoreError(DomainError):
    """
    Raised by recovery password stores.

    Callers branch on `kind`:
    - NOT_FOUND: the record to delete did not exist.
    - CONTESTED_LOCK: a conditional write lost against a concurrent writer.
    - OTHER: anything else the backend reported.
    """

    def __init__(self, kind: StoreErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind


class ContestedLockExhausted(DomainError):
    """Migration kept losing the optimistic lock and ran out of attempts."""

    def __init__(self, number: str, attempts: int) -> None:
        super().__init__(
            f"contested optimistic lock not resolved after {attempts} attempts"
        )
        self.number = number
        self.attempts = attempts


class IdentifierResolutionError(DomainError):
    """A phone number could not be mapped to its phone number identifier."""

    pass
