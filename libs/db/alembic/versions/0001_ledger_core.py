# ruff: noqa: I001
"""Ledger core tables: transactions, drafts and import batches.

Revision ID: 0001_ledger_core
Revises: None
Create Date: 2025-11-02
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_ledger_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ledger_transactions
    op.create_table(
        "ledger_transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("currency", sa.String(8), nullable=False, server_default=sa.text("'UAH'")),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("source", sa.String(50), nullable=False, server_default=sa.text("'manual'")),
        sa.Column("type", sa.String(16), nullable=False, server_default=sa.text("'expense'")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("amount > 0", name="ck_ledger_tx_amount_positive"),
        sa.CheckConstraint("type in ('income','expense')", name="ck_ledger_tx_type"),
    )
    op.create_index("ix_ledger_tx_owner_date", "ledger_transactions", ["owner_id", "date"])
    op.create_index(
        "ix_ledger_tx_owner_category", "ledger_transactions", ["owner_id", "category"]
    )

    # ledger_drafts
    op.create_table(
        "ledger_drafts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column("source", sa.String(50), nullable=False),
        sa.Column("lang", sa.String(8), nullable=True),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'draft'")),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("applied_batch_key", sa.String(200), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "status in ('draft','applied','discarded')",
            name="ck_ledger_draft_status",
        ),
    )
    op.create_index(
        "ix_ledger_drafts_owner_created", "ledger_drafts", ["owner_id", "created_at"]
    )

    # ledger_import_batches
    op.create_table(
        "ledger_import_batches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column("batch_key", sa.String(200), nullable=False),
        sa.Column("transaction_ids", sa.JSON(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("owner_id", "batch_key", name="uq_ledger_batch_owner_key"),
    )


def downgrade() -> None:
    op.drop_table("ledger_import_batches")
    op.drop_index("ix_ledger_drafts_owner_created", table_name="ledger_drafts")
    op.drop_table("ledger_drafts")
    op.drop_index("ix_ledger_tx_owner_category", table_name="ledger_transactions")
    op.drop_index("ix_ledger_tx_owner_date", table_name="ledger_transactions")
    op.drop_table("ledger_transactions")
