# recovery/domain/services.py
from __future__ import annotations

from passlib.context import CryptContext

DEFAULT_TOKEN_HASH_ROUNDS = 29_000

# pbkdf2_sha256 hashes carry algorithm, rounds, salt and digest in one string.
_tokens = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def token_to_string(token: bytes) -> str:
    """Lowercase hex form of a raw recovery password."""
    return token.hex()


def make_token_hash(token: str, *, rounds: int | None = None) -> str:
    """
    Salted hash of `token`. A fresh random salt is drawn on every call.
    """
    handler = _tokens.handler().using(rounds=rounds or DEFAULT_TOKEN_HASH_ROUNDS)
    return handler.hash(token)


def verify_token_hash(token: str, token_hash: str) -> bool:
    """
    Verify `token` against a hash from make_token_hash() (safe timing).
    Malformed hashes never match.
    """
    try:
        return _tokens.verify(token, token_hash)
    except (ValueError, TypeError):
        return False


def mask_number(number: str) -> str:
    """Phone number safe for logs: keeps the last 4 digits only."""
    if len(number) <= 4:
        return "*" * len(number)
    return "*" * (len(number) - 4) + number[-4:]
