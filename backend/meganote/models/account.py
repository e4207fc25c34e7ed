"""
Meganote Backend - Account SQLAlchemy Model
============================================

What:  ORM model representing the `accounts` table (system users).
How:   Inherits from DeclarativeBase; Alembic reads this for migrations.
Who:   Used by the account, auth and password-reset services.

Table Design:
    - UUID primary key, kept forever (soft delete only) so notes owned by a
      retired account still resolve.
    - password_hash: bcrypt hash; the plain password is never stored and the
      hash is never serialized by read endpoints.
    - password_reset_token / password_reset_at: SHA-256 of the pending reset
      secret and its issuance time. Both NULL when no reset is pending.

Uniqueness (partial indexes, live rows only):
    uq_accounts_username_live: lower(username)
    uq_accounts_email_live:    email (exact)
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from meganote.database import Base
from meganote.models.lifecycle import SoftDeleteMixin, utcnow

ROLES = ("Employee", "Manager", "Admin")
DEFAULT_ROLE = "Employee"
DEFAULT_AVATAR_URL = "https://i.redd.it/6qk9jq22ho541.jpg"


class Account(SoftDeleteMixin, Base):
    """
    Represents a system user.

    Lifecycle:
        1. Created by self-registration or by an administrator
        2. Updated by the owner (account routes) or an administrator (user routes)
        3. Soft-deleted by an administrator once it owns no live notes
        4. Never hard-deleted
    """

    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    username: Mapped[str] = mapped_column(String(255), nullable=False)

    fullname: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
        comment="Display name; also the target of the notes owner search",
    )

    email: Mapped[str] = mapped_column(String(320), nullable=False)

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    avatar_url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
        default=DEFAULT_AVATAR_URL,
    )

    role: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=DEFAULT_ROLE,
    )

    # Soft-suspend; independent from the soft-delete lifecycle
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    password_reset_token: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        default=None,
        index=True,
    )
    password_reset_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )

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

    def clear_password_reset(self) -> None:
        self.password_reset_token = None
        self.password_reset_at = None

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, username='{self.username}', role='{self.role}')>"


Index(
    "uq_accounts_username_live",
    func.lower(Account.username),
    unique=True,
    postgresql_where=Account.deleted_at.is_(None),
    sqlite_where=Account.deleted_at.is_(None),
)
Index(
    "uq_accounts_email_live",
    Account.email,
    unique=True,
    postgresql_where=Account.deleted_at.is_(None),
    sqlite_where=Account.deleted_at.is_(None),
)
Index("idx_accounts_created_at", Account.created_at.desc())
