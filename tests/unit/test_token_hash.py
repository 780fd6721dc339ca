import pytest

from recovery.domain.entities import SaltedTokenHash
from recovery.domain.services import (
    make_token_hash,
    mask_number,
    token_to_string,
    verify_token_hash,
)


def test_hash_verification_success_and_failure():
    h = make_token_hash("a1b2c3", rounds=1000)
    assert verify_token_hash("a1b2c3", h) is True
    assert verify_token_hash("000000", h) is False


def test_salts_are_random():
    h1 = make_token_hash("a1b2c3", rounds=1000)
    h2 = make_token_hash("a1b2c3", rounds=1000)
    # same token, different salt
    assert h1 != h2


def test_hash_is_self_describing():
    h = make_token_hash("a1b2c3", rounds=1234)
    assert h.startswith("$pbkdf2-sha256$1234$")


def test_malformed_hash_never_matches():
    assert verify_token_hash("a1b2c3", "not-a-hash") is False
    assert verify_token_hash("a1b2c3", "$pbkdf2-sha256$x$y$z") is False


def test_token_to_string_is_lowercase_hex():
    assert token_to_string(bytes.fromhex("A1B2C3")) == "a1b2c3"
    assert token_to_string(b"") == ""


def test_salted_token_hash_generate_and_verify():
    token = token_to_string(bytes(range(16)))
    h = SaltedTokenHash.generate_for(token, rounds=1000)
    assert h.verify(token)
    assert not h.verify(token_to_string(bytes(16)))


def test_salted_token_hash_equality_is_by_value():
    h = SaltedTokenHash.generate_for("abc", rounds=1000)
    assert SaltedTokenHash(h.value) == h


def test_salted_token_hash_rejects_empty():
    with pytest.raises(ValueError):
        SaltedTokenHash("")


def test_salted_token_hash_repr_hides_value():
    h = SaltedTokenHash.generate_for("abc", rounds=1000)
    assert h.value not in repr(h)


def test_mask_number_keeps_last_four():
    assert mask_number("+15555550123") == "********0123"
    assert mask_number("123") == "***"
