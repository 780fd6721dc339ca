import pytest

from recovery.application.recovery_passwords import RecoveryPasswordsManager
from recovery.domain.entities import SaltedTokenHash
from tests.fakes import FakePhoneNumberIdentifiers, FakeRecoveryPasswords

# low rounds keep hashing fast in tests
TEST_ROUNDS = 1000


@pytest.fixture()
def store():
    return FakeRecoveryPasswords()


@pytest.fixture()
def identifiers():
    return FakePhoneNumberIdentifiers()


@pytest.fixture()
def manager(store, identifiers):
    return RecoveryPasswordsManager(store, identifiers, token_hash_rounds=TEST_ROUNDS)


@pytest.fixture()
def make_hash():
    return lambda token: SaltedTokenHash.generate_for(token, rounds=TEST_ROUNDS)
