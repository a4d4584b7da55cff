"""Idempotent batch commits into ``ledger_transactions``.

:func:`commit_batch` writes a list of validated entries under a caller-chosen
batch key exactly once per ``(owner_id, batch_key)``:

1. Claim the key by inserting a ``ledger_import_batches`` row and flushing.
   The unique constraint ``uq_ledger_batch_owner_key`` is the race arbiter;
   whichever transaction inserts first wins, across threads and processes.
2. The winner inserts one ledger row per entry (input order) and attaches
   the ordered id list to its batch row. Claim, rows and id list belong to the
   same database transaction, committed by the caller's ``session_scope``; any
   failure rolls all of it back, so a claimed-but-empty batch never becomes
   visible.
3. A loser sees ``IntegrityError`` on the claim. That is translated into
   :class:`~finance_ledger.errors.ConflictRace`, the session is rolled back
   and the existing receipt is returned as a duplicate result. A conflict
   on anything other than the batch key re-raises the ``IntegrityError``.

The session passed in must not carry unrelated pending work: the conflict
path rolls the session back.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from db.models.ledger import LedgerImportBatch, LedgerTransaction
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import ConflictRace
from .logging_setup import get_logger, log_event
from .models import CommitResult, LedgerItem, TransactionView
from .settings import load_settings
from .validation import normalize_batch_key, normalize_items, normalize_owner

_logger = get_logger("finance_ledger.ledger_writer")


def _find_batch(session: Session, owner_id: str, batch_key: str) -> LedgerImportBatch | None:
    return (
        session.execute(
            select(LedgerImportBatch).where(
                LedgerImportBatch.owner_id == owner_id,
                LedgerImportBatch.batch_key == batch_key,
            )
        )
        .scalars()
        .first()
    )


def _load_rows_in_order(
    session: Session, owner_id: str, ids: Sequence[str]
) -> list[LedgerTransaction]:
    """Return rows for ``ids`` preserving the recorded order.

    Rows deleted by their owner since the commit are skipped.
    """

    if not ids:
        return []
    rows = (
        session.execute(
            select(LedgerTransaction).where(
                LedgerTransaction.owner_id == owner_id,
                LedgerTransaction.id.in_(list(ids)),
            )
        )
        .scalars()
        .all()
    )
    by_id = {r.id: r for r in rows}
    return [by_id[i] for i in ids if i in by_id]


def _duplicate_result(
    session: Session, batch: LedgerImportBatch, owner_id: str, batch_key: str
) -> CommitResult:
    ids = tuple(batch.transaction_ids or ())
    rows = _load_rows_in_order(session, owner_id, ids)
    log_event(
        _logger,
        "commit_batch:duplicate",
        owner=owner_id,
        batch_key=batch_key,
        rows=len(ids),
    )
    return CommitResult(
        duplicate=True,
        batch_key=batch_key,
        transaction_ids=ids,
        items=tuple(TransactionView.from_row(r) for r in rows),
    )


def _claim(session: Session, owner_id: str, batch_key: str) -> LedgerImportBatch:
    """Insert the batch placeholder; raise ``ConflictRace`` if the key is taken."""

    batch = LedgerImportBatch(owner_id=owner_id, batch_key=batch_key, transaction_ids=None)
    session.add(batch)
    try:
        session.flush()
    except IntegrityError as e:
        session.rollback()
        raise ConflictRace(owner_id, batch_key) from e
    return batch


def commit_batch(
    session: Session,
    *,
    owner_id: str,
    batch_key: str,
    transactions: Iterable[LedgerItem | dict[str, Any]],
    max_rows: int | None = None,
) -> CommitResult:
    """Commit ``transactions`` under ``batch_key`` exactly once.

    Parameters
    ----------
    session:
        Session whose transaction the writes join. The caller commits it
        (normally via ``db.client.session_scope``).
    owner_id:
        Owner of the rows and of the batch key.
    batch_key:
        Idempotency token, unique per owner.
    transactions:
        Validated :class:`LedgerItem` objects or untyped payloads (validated
        here). Empty input and more than ``max_rows`` entries are rejected
        before anything is written.
    max_rows:
        Upper bound on the batch size; defaults to
        ``FINANCE_LEDGER_MAX_BATCH_ROWS``.

    Returns
    -------
    CommitResult
        ``duplicate=False`` with the new rows when this call performed the
        writes; ``duplicate=True`` with the previously created rows, in their
        original order, when the key had already been committed.
    """

    settings = load_settings()
    owner = normalize_owner(owner_id)
    key = normalize_batch_key(batch_key)
    limit = max_rows if max_rows is not None else settings.max_batch_rows
    items = normalize_items(
        list(transactions),
        max_items=limit,
        path="transactions",
        default_currency=settings.default_currency,
    )

    existing = _find_batch(session, owner, key)
    if existing is not None:
        return _duplicate_result(session, existing, owner, key)

    try:
        batch = _claim(session, owner, key)
    except ConflictRace as race:
        existing = _find_batch(session, owner, key)
        if existing is None:
            # The conflict was not on our key; surface the database error.
            raise race.__cause__ from None
        return _duplicate_result(session, existing, owner, key)

    rows = [
        LedgerTransaction(
            owner_id=owner,
            date=it.date,
            amount=it.amount,
            currency=it.currency,
            category=it.category,
            description=it.description,
            source=it.source,
            type=it.type,
        )
        for it in items
    ]
    session.add_all(rows)
    session.flush()

    ids = [r.id for r in rows]
    batch.transaction_ids = ids
    session.flush()

    log_event(_logger, "commit_batch:created", owner=owner, batch_key=key, rows=len(ids))
    return CommitResult(
        duplicate=False,
        batch_key=key,
        transaction_ids=tuple(ids),
        items=tuple(TransactionView.from_row(r) for r in rows),
    )


__all__ = [
    "commit_batch",
]
