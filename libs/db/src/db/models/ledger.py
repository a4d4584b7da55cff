from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------
# Core: ledger_transactions
# ---------------------------


class LedgerTransaction(Base):
    __tablename__ = "ledger_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_id: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    # Always positive; the direction of money lives in ``type``.
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="UAH")
    category: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    # Provenance tag: manual, voice, import, ai-text, ...
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="manual")
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="expense")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_ledger_tx_amount_positive"),
        CheckConstraint("type in ('income','expense')", name="ck_ledger_tx_type"),
        Index("ix_ledger_tx_owner_date", "owner_id", "date"),
        Index("ix_ledger_tx_owner_category", "owner_id", "category"),
    )


# ---------------------------
# Drafts: ledger_drafts
# ---------------------------


class LedgerDraft(Base):
    __tablename__ = "ledger_drafts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_id: Mapped[str] = mapped_column(String, nullable=False)
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    lang: Mapped[str | None] = mapped_column(String(8), nullable=True)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="draft")
    # Pending items as a JSON array of plain dicts (amounts as decimal strings).
    # They become ledger rows only through the idempotent writer.
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    applied_batch_key: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status in ('draft','applied','discarded')",
            name="ck_ledger_draft_status",
        ),
        Index("ix_ledger_drafts_owner_created", "owner_id", "created_at"),
    )


# ---------------------------
# Commit receipts: ledger_import_batches
# ---------------------------


class LedgerImportBatch(Base):
    __tablename__ = "ledger_import_batches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String, nullable=False)
    batch_key: Mapped[str] = mapped_column(String(200), nullable=False)
    # Ordered ids of the rows produced by this batch. NULL only inside the
    # claiming database transaction, never after it commits.
    transaction_ids: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        # The idempotency arbiter: one receipt per (owner, batch key), ever.
        UniqueConstraint("owner_id", "batch_key", name="uq_ledger_batch_owner_key"),
    )


__all__ = [
    "Base",
    "LedgerTransaction",
    "LedgerDraft",
    "LedgerImportBatch",
]
