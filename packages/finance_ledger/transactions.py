"""Owner-scoped operations on ledger rows.

Rows are only ever created through :func:`create_transactions`, which goes
through the idempotent writer. Once written, a row belongs to its owner and
can be read, edited and deleted here without any reference to the draft it
may have come from.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from typing import Any

from db.models.ledger import LedgerTransaction
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .errors import NotFoundError, ValidationError
from .ledger_writer import commit_batch
from .logging_setup import get_logger, log_event
from .models import CommitResult, LedgerItem, TransactionPage, TransactionView, coerce_day
from .settings import load_settings
from .validation import normalize_owner, validate_patch

_logger = get_logger("finance_ledger.transactions")

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 200


def create_transactions(
    session: Session,
    *,
    owner_id: str,
    batch_key: str,
    payloads: Sequence[Mapping[str, Any]],
) -> CommitResult:
    """Create ledger rows from untyped payloads under ``batch_key``.

    Retrying with the same key returns the original rows.
    """

    return commit_batch(
        session,
        owner_id=owner_id,
        batch_key=batch_key,
        transactions=payloads,
    )


def _load_row(session: Session, transaction_id: str, owner_id: str) -> LedgerTransaction:
    owner = normalize_owner(owner_id)
    row = (
        session.execute(
            select(LedgerTransaction).where(
                LedgerTransaction.id == str(transaction_id),
                LedgerTransaction.owner_id == owner,
            )
        )
        .scalars()
        .first()
    )
    if row is None:
        raise NotFoundError(f"transaction {transaction_id} not found")
    return row


def _optional_day(raw: Any, path: str) -> date | None:
    if raw is None or raw == "":
        return None
    try:
        return coerce_day(raw)
    except ValueError as e:
        raise ValidationError(str(e), path=path) from None


def list_transactions(
    session: Session,
    *,
    owner_id: str,
    date_from: Any = None,
    date_to: Any = None,
    category: str | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_LIMIT,
) -> TransactionPage:
    """Page through an owner's rows, newest date first."""

    owner = normalize_owner(owner_id)
    d_from = _optional_day(date_from, "from")
    d_to = _optional_day(date_to, "to")
    if d_from is not None and d_to is not None and d_from > d_to:
        raise ValidationError("must not be after 'to'", path="from")
    page_n = max(int(page or 1), 1)
    limit_n = min(max(int(limit or DEFAULT_PAGE_LIMIT), 1), MAX_PAGE_LIMIT)

    conds = [LedgerTransaction.owner_id == owner]
    if d_from is not None:
        conds.append(LedgerTransaction.date >= d_from)
    if d_to is not None:
        conds.append(LedgerTransaction.date <= d_to)
    if category and category.strip():
        conds.append(LedgerTransaction.category == category.strip())

    total = int(
        session.execute(select(func.count()).select_from(LedgerTransaction).where(*conds)).scalar_one()
    )
    rows = (
        session.execute(
            select(LedgerTransaction)
            .where(*conds)
            .order_by(
                LedgerTransaction.date.desc(),
                LedgerTransaction.created_at.desc(),
                LedgerTransaction.id.desc(),
            )
            .offset((page_n - 1) * limit_n)
            .limit(limit_n)
        )
        .scalars()
        .all()
    )
    return TransactionPage(
        items=tuple(TransactionView.from_row(r) for r in rows),
        page=page_n,
        limit=limit_n,
        total=total,
    )


def get_transaction(session: Session, transaction_id: str, owner_id: str) -> TransactionView:
    return TransactionView.from_row(_load_row(session, transaction_id, owner_id))


def update_transaction(
    session: Session, transaction_id: str, owner_id: str, patch: Mapping[str, Any]
) -> TransactionView:
    """Edit fields of an owned row in place; the id never changes."""

    row = _load_row(session, transaction_id, owner_id)
    current = LedgerItem.model_validate(
        {
            "date": row.date,
            "amount": row.amount,
            "currency": row.currency,
            "category": row.category,
            "description": row.description,
            "source": row.source,
            "type": row.type,
        }
    )
    updated = validate_patch(current, patch, default_currency=load_settings().default_currency)

    row.date = updated.date
    row.amount = updated.amount
    row.currency = updated.currency
    row.category = updated.category
    row.description = updated.description
    row.type = updated.type
    session.flush()
    log_event(
        _logger,
        "transaction:updated",
        owner=row.owner_id,
        id=row.id,
        fields=",".join(sorted(patch)),
    )
    return TransactionView.from_row(row)


def delete_transaction(session: Session, transaction_id: str, owner_id: str) -> None:
    row = _load_row(session, transaction_id, owner_id)
    session.delete(row)
    session.flush()
    log_event(_logger, "transaction:deleted", owner=row.owner_id, id=row.id)


__all__ = [
    "DEFAULT_PAGE_LIMIT",
    "MAX_PAGE_LIMIT",
    "create_transactions",
    "delete_transaction",
    "get_transaction",
    "list_transactions",
    "update_transaction",
]
