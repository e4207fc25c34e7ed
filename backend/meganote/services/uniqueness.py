"""
Meganote Backend - Uniqueness Guard
====================================

What:  Enforces that no two live entities share a unique key.
How:   Two layers:
       1. Pre-check: query for an existing holder of the key and raise
          ConflictError unless it is the entity being updated.
       2. Storage: partial unique indexes (see models/account.py and
          models/record.py). Two requests that both pass the pre-check
          race to the index; the loser's IntegrityError is translated by
          `flush_or_conflict` into the same ConflictError the pre-check
          would have raised.

Keys:
    Account.username  case-insensitive, live accounts only
    Account.email     exact, live accounts only
    Record.title      case-insensitive, pre-check scans ALL records
                      (deleted ones included); the index covers live rows
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from meganote.exceptions import ConflictError, UnexpectedError
from meganote.models.account import Account
from meganote.models.record import Record

logger = logging.getLogger(__name__)

USERNAME_TAKEN = "This username already exists!"
EMAIL_TAKEN = "This email has already been used!"
TITLE_TAKEN = "This note title has already been used!"

# Index names appear in PostgreSQL messages and SQLite expression-index
# messages; plain-column SQLite indexes report `table.column` instead.
# Index names are tried first since PostgreSQL also echoes the clashing value.
INDEX_CONFLICTS = (
    ("uq_accounts_email_live", EMAIL_TAKEN, "email"),
    ("uq_accounts_username_live", USERNAME_TAKEN, "username"),
    ("uq_records_title_live", TITLE_TAKEN, "title"),
)
COLUMN_CONFLICTS = (
    ("accounts.email", EMAIL_TAKEN, "email"),
    ("accounts.username", USERNAME_TAKEN, "username"),
    ("records.title", TITLE_TAKEN, "title"),
)


class UniquenessGuard:
    """Pre-checks and storage-error translation for unique keys."""

    async def ensure_username_available(
        self,
        db: AsyncSession,
        username: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Account.id).where(
            func.lower(Account.username) == username.lower(),
            Account.live(),
        )
        await self._ensure_absent(db, query, exclude_id, USERNAME_TAKEN, "username")

    async def ensure_email_available(
        self,
        db: AsyncSession,
        email: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Account.id).where(Account.email == email, Account.live())
        await self._ensure_absent(db, query, exclude_id, EMAIL_TAKEN, "email")

    async def ensure_title_available(
        self,
        db: AsyncSession,
        title: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        # No lifecycle filter: a deleted note still blocks its title
        query = select(Record.id).where(func.lower(Record.title) == title.lower())
        await self._ensure_absent(db, query, exclude_id, TITLE_TAKEN, "title")

    async def _ensure_absent(
        self,
        db: AsyncSession,
        query,
        exclude_id: Optional[uuid.UUID],
        message: str,
        field: str,
    ) -> None:
        result = await db.execute(query)
        for holder_id in result.scalars().all():
            if holder_id != exclude_id:
                raise ConflictError(message=message, field=field)

    async def flush_or_conflict(self, db: AsyncSession) -> None:
        """
        Flush pending writes, translating a unique-index violation into
        ConflictError. The session must be rolled back afterwards; the
        request-scoped session dependency does that when the error propagates.
        """
        try:
            await db.flush()
        except IntegrityError as e:
            detail = str(e.orig)
            logger.info("Unique index rejected write: %s", detail)
            for marker, message, field in INDEX_CONFLICTS + COLUMN_CONFLICTS:
                if marker in detail:
                    raise ConflictError(message=message, field=field) from e
            raise UnexpectedError(context={"integrity_error": detail}) from e


uniqueness_guard = UniquenessGuard()
