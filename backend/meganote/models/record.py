"""
Meganote Backend - Record (Note) SQLAlchemy Model
==================================================

What:  ORM model representing the `records` table (assignable notes).
How:   Inherits from DeclarativeBase; Alembic reads this for migrations.
Who:   Used by RecordService for CRUD and by the query composer for listings.

Table Design:
    - owner_id: the assignee. It may point at a soft-deleted account; an
      orphaned reference is tolerated and rendered as "Unassigned" only when
      the account cannot be found at all.
    - ticket: human-facing number allocated once from the `ticketNums`
      counter (see services/sequence.py). Unique, never reused.
    - created_at DESC index: the default sort of every listing.

Uniqueness (partial index, live rows only):
    uq_records_title_live: lower(title)
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from meganote.database import Base
from meganote.models.lifecycle import SoftDeleteMixin, utcnow

STATUSES = ("Open", "In Progress", "Completed")
DEFAULT_STATUS = "Open"


class Record(SoftDeleteMixin, Base):
    """
    Represents an assignable unit of work.

    Lifecycle:
        1. Created by any authenticated user; ticket allocated in the same transaction
        2. Updated by any authenticated user (owner, title, text, status)
        3. Soft-deleted; the ticket number stays burned
    """

    __tablename__ = "records"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    text: Mapped[str] = mapped_column(Text, nullable=False, default="")

    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=DEFAULT_STATUS,
    )

    ticket: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Record(id={self.id}, ticket={self.ticket}, status='{self.status}')>"


Index(
    "uq_records_title_live",
    func.lower(Record.title),
    unique=True,
    postgresql_where=Record.deleted_at.is_(None),
    sqlite_where=Record.deleted_at.is_(None),
)
Index("idx_records_created_at", Record.created_at.desc())
