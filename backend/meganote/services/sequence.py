"""
Meganote Backend - Ticket Sequence
===================================

What:  Hands out the human-facing ticket numbers of notes.
How:   A dedicated row in `counters` is advanced with a single
       `UPDATE counters SET seq = seq + 1 WHERE id = :name RETURNING seq`.
       The storage engine serializes concurrent updates of one row, so every
       caller receives a distinct value and the values are gapless from the
       start offset (a rolled-back create gives its number back to the row).

       The row is normally seeded by the initial migration. When it is
       missing it is created with `INSERT ... ON CONFLICT DO NOTHING` and the
       update is retried, so two first-ever creates still get 500 and 501.

Nothing is cached in process memory; the sequence survives restarts.
"""

from typing import Optional

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from meganote.models.counter import Counter

TICKET_SEQUENCE = "ticketNums"
TICKET_START = 500


class SequenceService:
    """Atomic increment-and-read over named counter rows."""

    async def next_value(
        self,
        db: AsyncSession,
        name: str = TICKET_SEQUENCE,
        start: int = TICKET_START,
    ) -> int:
        value = await self._advance(db, name)
        if value is not None:
            return value

        await self._seed(db, name, start - 1)
        value = await self._advance(db, name)
        if value is None:
            raise RuntimeError(f"Counter '{name}' could not be created")
        return value

    async def _advance(self, db: AsyncSession, name: str) -> Optional[int]:
        stmt = (
            update(Counter)
            .where(Counter.id == name)
            .values(seq=Counter.seq + 1)
            .returning(Counter.seq)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def _seed(self, db: AsyncSession, name: str, last_value: int) -> None:
        dialect = db.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        stmt = (
            insert(Counter)
            .values(id=name, seq=last_value)
            .on_conflict_do_nothing(index_elements=[Counter.id])
        )
        await db.execute(stmt)


sequence_service = SequenceService()
