from typing import Protocol
from uuid import UUID


class PhoneNumberIdentifiersPort(Protocol):
    async def get_phone_number_identifier(self, number: str) -> UUID:
        """
        Return the stable identifier for `number`, creating it on first use.
        Calling it again for the same number returns the same identifier.
        """
