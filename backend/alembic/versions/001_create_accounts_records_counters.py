"""Create accounts, records and counters tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema: accounts (users), records (notes) and the counters
       row that hands out ticket numbers.
How:   Uniqueness among live rows is enforced by partial unique indexes
       (WHERE deleted_at IS NULL); username and title compare lower-cased.
       The `ticketNums` counter is seeded so the first ticket is 500.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LIVE = sa.text("deleted_at IS NULL")


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column(
            "fullname",
            sa.String(255),
            nullable=False,
            server_default=sa.text("''"),
            comment="Display name; also the target of the notes owner search",
        ),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "avatar_url",
            sa.String(2048),
            nullable=False,
            server_default=sa.text("'https://i.redd.it/6qk9jq22ho541.jpg'"),
        ),
        sa.Column("role", sa.String(32), nullable=False, server_default=sa.text("'Employee'")),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("password_reset_token", sa.String(64), nullable=True),
        sa.Column("password_reset_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "deleted_at",
            sa.TIMESTAMP(timezone=True),
            nullable=True,
            comment="NULL while active; retirement time once soft-deleted",
        ),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_accounts_username_live",
        "accounts",
        [sa.text("lower(username)")],
        unique=True,
        postgresql_where=LIVE,
    )
    op.create_index(
        "uq_accounts_email_live",
        "accounts",
        ["email"],
        unique=True,
        postgresql_where=LIVE,
    )
    op.create_index("ix_accounts_password_reset_token", "accounts", ["password_reset_token"])
    op.create_index("idx_accounts_created_at", "accounts", [sa.text("created_at DESC")])

    op.create_table(
        "records",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("text", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("status", sa.String(32), nullable=False, server_default=sa.text("'Open'")),
        sa.Column("ticket", sa.Integer(), nullable=False),
        sa.Column("deleted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_id"], ["accounts.id"]),
        sa.UniqueConstraint("ticket"),
    )
    op.create_index("ix_records_owner_id", "records", ["owner_id"])
    op.create_index(
        "uq_records_title_live",
        "records",
        [sa.text("lower(title)")],
        unique=True,
        postgresql_where=LIVE,
    )
    op.create_index("idx_records_created_at", "records", [sa.text("created_at DESC")])

    counters = op.create_table(
        "counters",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("seq", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    # seq holds the last ticket handed out; the first increment yields 500
    op.bulk_insert(counters, [{"id": "ticketNums", "seq": 499}])


def downgrade() -> None:
    op.drop_table("counters")
    op.drop_index("idx_records_created_at", table_name="records")
    op.drop_index("uq_records_title_live", table_name="records")
    op.drop_index("ix_records_owner_id", table_name="records")
    op.drop_table("records")
    op.drop_index("idx_accounts_created_at", table_name="accounts")
    op.drop_index("ix_accounts_password_reset_token", table_name="accounts")
    op.drop_index("uq_accounts_email_live", table_name="accounts")
    op.drop_index("uq_accounts_username_live", table_name="accounts")
    op.drop_table("accounts")
