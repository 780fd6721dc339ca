from __future__ import annotations

from uuid import UUID

import psycopg
from psycopg_pool import AsyncConnectionPool

from recovery.domain.errors import IdentifierResolutionError
from recovery.domain.ports.phone_number_identifiers import PhoneNumberIdentifiersPort


class PgPhoneNumberIdentifiers(PhoneNumberIdentifiersPort):
    """
    Postgres implementation of PhoneNumberIdentifiersPort.

    The identifier is created on first use; concurrent first uses for the same
    number converge on a single row thanks to ON CONFLICT DO NOTHING.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def get_phone_number_identifier(self, number: str) -> UUID:
        sql = """
        WITH inserted AS (
        INSERT INTO phone_number_identifiers (phone_number)
        VALUES (%s)
        ON CONFLICT (phone_number) DO NOTHING
        RETURNING pni
        )
        SELECT pni FROM inserted
        UNION ALL
        SELECT pni
        FROM phone_number_identifiers
        WHERE phone_number = %s AND NOT EXISTS (SELECT 1 FROM inserted)
        LIMIT 1;
        """
        try:
            async with self._pool.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        await cur.execute(sql, (number, number))
                        row = await cur.fetchone()
                        if not row:
                            # lost an insert race; the winner committed after
                            # this statement took its snapshot
                            await cur.execute(
                                "SELECT pni FROM phone_number_identifiers"
                                " WHERE phone_number = %s",
                                (number,),
                            )
                            row = await cur.fetchone()
        except psycopg.Error as e:
            raise IdentifierResolutionError(f"database error: {e}") from e

        if not row:
            raise IdentifierResolutionError("phone number identifier lookup returned no row")
        pni = row[0]
        return pni if isinstance(pni, UUID) else UUID(str(pni))
