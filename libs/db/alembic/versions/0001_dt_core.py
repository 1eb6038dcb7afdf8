# ruff: noqa: I001
"""Detection core tables: seen messages, pending review rows, confirmed transactions.

Revision ID: 0001_dt_core
Revises: None
Create Date: 2025-08-05
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_dt_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # dt_seen_messages
    op.create_table(
        "dt_seen_messages",
        sa.Column("fingerprint", sa.String(length=64), primary_key=True),
        sa.Column("channel", sa.String(), nullable=False),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=False),
    )

    # dt_pending_transactions
    op.create_table(
        "dt_pending_transactions",
        sa.Column("pending_id", sa.String(length=64), primary_key=True),
        sa.Column("fingerprint", sa.String(length=64), nullable=True),
        sa.Column("source_channel", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("override_category", sa.String(), nullable=True),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("record_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('detected','saved','saved_with_override_category','skipped')",
            name="ck_dt_pending_status",
        ),
    )
    op.create_index("ix_dt_pending_status", "dt_pending_transactions", ["status"])

    # dt_transactions
    op.create_table(
        "dt_transactions",
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            primary_key=True,
            autoincrement=True,
        ),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("idempotency_key", sa.String(length=64), nullable=True, unique=True),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("currency_code", sa.CHAR(length=3), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("provider", sa.String(), nullable=False),
        sa.Column("source_channel", sa.String(), nullable=False),
        sa.Column("raw_record", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("type IN ('income','expense')", name="ck_dt_tx_type"),
        sa.CheckConstraint("amount > 0", name="ck_dt_tx_amount_positive"),
    )
    op.create_index("ix_dt_tx_user_created", "dt_transactions", ["user_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_dt_tx_user_created", table_name="dt_transactions")
    op.drop_table("dt_transactions")
    op.drop_index("ix_dt_pending_status", table_name="dt_pending_transactions")
    op.drop_table("dt_pending_transactions")
    op.drop_table("dt_seen_messages")
