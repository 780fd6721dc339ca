from dataclasses import dataclass

import recovery.domain.services as domain_services


@dataclass(frozen=True)
class SaltedTokenHash:
    value: str

    def __post_init__(self):
        if not self.value:
            raise ValueError("token hash cannot be empty")

    @classmethod
    def generate_for(cls, token: str, *, rounds: int | None = None) -> "SaltedTokenHash":
        return cls(domain_services.make_token_hash(token, rounds=rounds))

    def verify(self, token: str) -> bool:
        return domain_services.verify_token_hash(token, self.value)

    def __repr__(self) -> str:
        return "SaltedTokenHash(value=<redacted>)"
