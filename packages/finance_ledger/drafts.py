"""Draft store: owner-scoped CRUD for pending ledger entries.

A draft holds validated candidate items until it is applied (through
:mod:`finance_ledger.apply`) or discarded. Status moves one way only::

    draft -> applied
    draft -> discarded

Items and title may change only while the status is ``draft``. Lookups are
always scoped by owner; another owner's draft looks exactly like a missing
one.

Callers own the transaction scope (``db.client.session_scope``).
"""

from __future__ import annotations

from typing import Any, Final

from db.models.ledger import LedgerDraft
from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import IllegalTransitionError, NotFoundError
from .logging_setup import get_logger, log_event
from .models import DraftDetails, DraftSummary, LedgerItem
from .settings import load_settings
from .validation import (
    normalize_items,
    normalize_lang,
    normalize_owner,
    normalize_source,
    normalize_title,
)

_logger = get_logger("finance_ledger.drafts")

DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 100


class _Unset:
    """Marker for "argument not supplied" (``None`` is a valid title)."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:  # pragma: no cover - debug aid
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()


def _serialize_items(items: list[LedgerItem]) -> list[dict[str, Any]]:
    return [it.to_json_dict() for it in items]


def _stored_items(row: LedgerDraft) -> tuple[LedgerItem, ...]:
    # Stored items were validated on the way in; re-validate to get typed values.
    return tuple(
        normalize_items(
            list(row.items or []),
            max_items=max(len(row.items or []), 1),
            allow_empty=True,
        )
    )


def _to_details(row: LedgerDraft) -> DraftDetails:
    return DraftDetails(
        id=row.id,
        owner_id=row.owner_id,
        source=row.source,
        lang=row.lang,
        title=row.title,
        status=row.status,  # type: ignore[arg-type]
        items=_stored_items(row),
        applied_batch_key=row.applied_batch_key,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_summary(row: LedgerDraft) -> DraftSummary:
    return DraftSummary(
        id=row.id,
        owner_id=row.owner_id,
        source=row.source,
        lang=row.lang,
        title=row.title,
        status=row.status,  # type: ignore[arg-type]
        items_count=len(row.items or []),
        applied_batch_key=row.applied_batch_key,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def load_draft_row(
    session: Session, draft_id: str, owner_id: str, *, for_update: bool = False
) -> LedgerDraft:
    """Return the owned draft row or raise :class:`NotFoundError`.

    ``for_update`` adds ``SELECT ... FOR UPDATE`` on dialects that support it
    (a no-op on SQLite).
    """

    owner = normalize_owner(owner_id)
    stmt = select(LedgerDraft).where(
        LedgerDraft.id == str(draft_id), LedgerDraft.owner_id == owner
    )
    if for_update:
        stmt = stmt.with_for_update()
    row = session.execute(stmt).scalars().first()
    if row is None:
        raise NotFoundError(f"draft {draft_id} not found")
    return row


def create_draft(
    session: Session,
    *,
    owner_id: str,
    source: str,
    items: Any,
    lang: str | None = None,
    title: str | None = None,
) -> DraftDetails:
    """Validate ``items`` and persist a new draft in status ``draft``."""

    settings = load_settings()
    owner = normalize_owner(owner_id)
    src = normalize_source(source)
    lang_n = normalize_lang(lang)
    title_n = normalize_title(title)
    normalized = normalize_items(
        items,
        max_items=settings.max_draft_items,
        default_currency=settings.default_currency,
    )

    row = LedgerDraft(
        owner_id=owner,
        source=src,
        lang=lang_n,
        title=title_n,
        status="draft",
        items=_serialize_items(normalized),
    )
    session.add(row)
    session.flush()
    log_event(_logger, "draft:created", owner=owner, draft=row.id, items=len(normalized))
    return _to_details(row)


def get_draft(session: Session, draft_id: str, owner_id: str) -> DraftDetails:
    return _to_details(load_draft_row(session, draft_id, owner_id))


def list_drafts(
    session: Session, owner_id: str, limit: int = DEFAULT_LIST_LIMIT
) -> list[DraftSummary]:
    """Most recent drafts first; ``limit`` is clamped to ``[1, 100]``."""

    owner = normalize_owner(owner_id)
    try:
        n = int(limit)
    except (TypeError, ValueError):
        n = DEFAULT_LIST_LIMIT
    n = min(max(n, 1), MAX_LIST_LIMIT)
    rows = (
        session.execute(
            select(LedgerDraft)
            .where(LedgerDraft.owner_id == owner)
            .order_by(LedgerDraft.created_at.desc(), LedgerDraft.id.desc())
            .limit(n)
        )
        .scalars()
        .all()
    )
    return [_to_summary(r) for r in rows]


def update_draft(
    session: Session,
    draft_id: str,
    owner_id: str,
    *,
    title: str | None | _Unset = UNSET,
    items: Any = UNSET,
) -> DraftDetails:
    """Replace title and/or items of a draft that is still editable.

    Omitted arguments are left untouched; an empty patch returns the current
    draft unchanged. Items are replaced wholesale and validated exactly like
    :func:`create_draft` input.
    """

    row = load_draft_row(session, draft_id, owner_id, for_update=True)
    if row.status != "draft":
        raise IllegalTransitionError(
            f"draft {row.id} is {row.status} and can no longer be edited"
        )
    if title is UNSET and items is UNSET:
        return _to_details(row)

    new_title = row.title if title is UNSET else normalize_title(title)
    new_items: list[dict[str, Any]] | None = None
    if items is not UNSET:
        settings = load_settings()
        new_items = _serialize_items(
            normalize_items(
                items,
                max_items=settings.max_draft_items,
                default_currency=settings.default_currency,
            )
        )

    row.title = new_title
    if new_items is not None:
        row.items = new_items
    session.flush()
    log_event(
        _logger,
        "draft:updated",
        owner=row.owner_id,
        draft=row.id,
        items=len(row.items or []),
    )
    return _to_details(row)


def discard_draft(session: Session, draft_id: str, owner_id: str) -> None:
    """Mark a draft as discarded.

    Idempotent. Drafts already ``applied`` or ``discarded`` are left as they
    are: an applied draft keeps its status, ledger rows and receipt.
    """

    row = load_draft_row(session, draft_id, owner_id, for_update=True)
    if row.status != "draft":
        log_event(_logger, "draft:discard_noop", owner=row.owner_id, draft=row.id, status=row.status)
        return
    row.status = "discarded"
    session.flush()
    log_event(_logger, "draft:discarded", owner=row.owner_id, draft=row.id)


__all__ = [
    "DEFAULT_LIST_LIMIT",
    "MAX_LIST_LIMIT",
    "UNSET",
    "create_draft",
    "discard_draft",
    "get_draft",
    "list_drafts",
    "load_draft_row",
    "update_draft",
]
