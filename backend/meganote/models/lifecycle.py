"""
Meganote Backend - Soft-Delete Lifecycle
=========================================

What:  Shared columns and helpers for entities that are retired, never removed.
How:   A single nullable `deleted_at` column is the whole lifecycle state:
       NULL means Active, a timestamp means Deleted(at). `is_deleted` is
       derived from it, so "not deleted but deletedAt set" cannot be stored.
Who:   Mixed into Account and Record.

Query rule:
    Every list/search query filters `Model.live()`. Lookups by primary key
    do not, so a retired entity stays resolvable by id forever.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy import DateTime
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class Active:
    pass


@dataclass(frozen=True)
class Deleted:
    at: datetime


Lifecycle = Union[Active, Deleted]


class SoftDeleteMixin:
    """Adds the `deleted_at` lifecycle column and its accessors."""

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
        comment="NULL while active; retirement time once soft-deleted",
    )

    @hybrid_property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @is_deleted.inplace.expression
    @classmethod
    def _is_deleted_expression(cls):
        return cls.deleted_at.is_not(None)

    @classmethod
    def live(cls):
        """WHERE clause selecting entities that have not been soft-deleted."""
        return cls.deleted_at.is_(None)

    @property
    def lifecycle(self) -> Lifecycle:
        if self.deleted_at is None:
            return Active()
        return Deleted(at=as_utc(self.deleted_at))

    def mark_deleted(self, at: Optional[datetime] = None) -> bool:
        """
        Moves the entity to Deleted(at).

        Returns False when it was already deleted; the original retirement
        time is kept in that case.
        """
        if self.deleted_at is not None:
            return False
        self.deleted_at = at or utcnow()
        return True
