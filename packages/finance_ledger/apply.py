"""Turn a draft into ledger rows exactly once."""

from __future__ import annotations

from sqlalchemy.orm import Session

from .drafts import load_draft_row
from .errors import IllegalTransitionError
from .ledger_writer import commit_batch
from .logging_setup import get_logger, log_event
from .models import ApplyResult
from .settings import load_settings
from .validation import normalize_items

_logger = get_logger("finance_ledger.apply")


def draft_batch_key(draft_id: str) -> str:
    """Batch key under which a draft's rows are committed."""

    return f"draft:{draft_id}"


def apply_draft(session: Session, draft_id: str, owner_id: str) -> ApplyResult:
    """Commit the draft's items to the ledger and mark the draft applied.

    Safe to repeat and to race: every call for the same draft returns the same
    transaction ids, and only the call that actually wrote them reports
    ``duplicate=False``.

    Raises
    ------
    NotFoundError
        Draft absent or owned by someone else.
    IllegalTransitionError
        Draft discarded, or it holds no items.
    ValidationError
        A stored item no longer passes validation; paths name ``items[i].field``.
    """

    row = load_draft_row(session, draft_id, owner_id, for_update=True)
    if row.status == "discarded":
        raise IllegalTransitionError(f"draft {row.id} is discarded and cannot be applied")

    owner = row.owner_id
    key = draft_batch_key(row.id)
    if not row.items:
        raise IllegalTransitionError(f"draft {row.id} has no items to apply")

    settings = load_settings()
    items = normalize_items(
        list(row.items),
        max_items=max(settings.max_draft_items, settings.max_batch_rows),
        default_currency=settings.default_currency,
    )

    result = commit_batch(
        session,
        owner_id=owner,
        batch_key=key,
        transactions=items,
        max_rows=len(items),
    )

    # The writer may have rolled the session back after losing a race; reload
    # before touching the draft.
    row = load_draft_row(session, draft_id, owner, for_update=True)
    if row.status != "applied" or row.applied_batch_key != key:
        row.status = "applied"
        row.applied_batch_key = key
        session.flush()

    log_event(
        _logger,
        "draft:applied",
        owner=owner,
        draft=row.id,
        batch_key=key,
        duplicate=result.duplicate,
        rows=len(result.transaction_ids),
    )
    return result


__all__ = [
    "apply_draft",
    "draft_batch_key",
]
