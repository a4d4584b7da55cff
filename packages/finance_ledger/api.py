"""Caller-facing operations for the ``finance_ledger`` package.

Each function owns its unit of work: it opens
``db.client.session_scope(database_url=...)``, runs one ledger operation and
commits, or rolls everything back when the operation raises. Results are the
frozen views from :mod:`finance_ledger.models`, detached from any session.

``database_url`` defaults to ``DATABASE_URL`` from the environment.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, date, datetime
from typing import Any

from db.client import session_scope

from . import aggregation, apply, assistant, drafts, parsing, transactions
from .drafts import UNSET
from .models import (
    Analytics,
    ApplyResult,
    AssistantAnswer,
    CommitResult,
    DraftDetails,
    DraftSummary,
    ParseResult,
    Period,
    Summary,
    TransactionPage,
    TransactionView,
)
from .periods import resolve_period as _resolve_period


def resolve_period(phrase: str | None, now: datetime | date | None = None) -> Period:
    """Resolve a relative phrase; ``now`` defaults to the current UTC instant."""

    return _resolve_period(phrase, now if now is not None else datetime.now(UTC))


# ---------------------------
# Drafts
# ---------------------------


def create_draft(
    owner_id: str,
    source: str,
    items: Sequence[Mapping[str, Any]],
    *,
    lang: str | None = None,
    title: str | None = None,
    database_url: str | None = None,
) -> str:
    """Create a draft and return its id."""

    with session_scope(database_url=database_url) as session:
        draft = drafts.create_draft(
            session, owner_id=owner_id, source=source, items=items, lang=lang, title=title
        )
    return draft.id


def get_draft(draft_id: str, owner_id: str, *, database_url: str | None = None) -> DraftDetails:
    with session_scope(database_url=database_url) as session:
        return drafts.get_draft(session, draft_id, owner_id)


def list_drafts(
    owner_id: str,
    limit: int = drafts.DEFAULT_LIST_LIMIT,
    *,
    database_url: str | None = None,
) -> list[DraftSummary]:
    with session_scope(database_url=database_url) as session:
        return drafts.list_drafts(session, owner_id, limit)


def update_draft(
    draft_id: str,
    owner_id: str,
    *,
    title: Any = UNSET,
    items: Any = UNSET,
    database_url: str | None = None,
) -> DraftDetails:
    with session_scope(database_url=database_url) as session:
        return drafts.update_draft(session, draft_id, owner_id, title=title, items=items)


def apply_draft(draft_id: str, owner_id: str, *, database_url: str | None = None) -> ApplyResult:
    with session_scope(database_url=database_url) as session:
        return apply.apply_draft(session, draft_id, owner_id)


def discard_draft(draft_id: str, owner_id: str, *, database_url: str | None = None) -> None:
    with session_scope(database_url=database_url) as session:
        drafts.discard_draft(session, draft_id, owner_id)


def create_draft_from_text(
    owner_id: str,
    text: str,
    *,
    source: str = "ai-text",
    lang: str | None = None,
    today: date | None = None,
    client: Any | None = None,
    database_url: str | None = None,
) -> tuple[DraftDetails, ParseResult]:
    """Parse ``text`` with the language model and store the result as a draft.

    The model call happens before the database unit of work is opened.
    """

    parsed = parse_text(text, today=today, client=client, source=source)
    with session_scope(database_url=database_url) as session:
        draft = parsing.draft_from_parse(
            session, owner_id=owner_id, parsed=parsed, source=source, lang=lang
        )
    return draft, parsed


def parse_text(
    text: str,
    *,
    today: date | None = None,
    client: Any | None = None,
    source: str = "ai-text",
) -> ParseResult:
    day = today if today is not None else datetime.now(UTC).date()
    return parsing.parse_text(text, today=day, client=client, source=source)


# ---------------------------
# Ledger
# ---------------------------


def create_transactions(
    owner_id: str,
    batch_key: str,
    payloads: Sequence[Mapping[str, Any]],
    *,
    database_url: str | None = None,
) -> CommitResult:
    with session_scope(database_url=database_url) as session:
        return transactions.create_transactions(
            session, owner_id=owner_id, batch_key=batch_key, payloads=payloads
        )


def list_transactions(
    owner_id: str,
    *,
    date_from: Any = None,
    date_to: Any = None,
    category: str | None = None,
    page: int = 1,
    limit: int = transactions.DEFAULT_PAGE_LIMIT,
    database_url: str | None = None,
) -> TransactionPage:
    with session_scope(database_url=database_url) as session:
        return transactions.list_transactions(
            session,
            owner_id=owner_id,
            date_from=date_from,
            date_to=date_to,
            category=category,
            page=page,
            limit=limit,
        )


def get_transaction(
    transaction_id: str, owner_id: str, *, database_url: str | None = None
) -> TransactionView:
    with session_scope(database_url=database_url) as session:
        return transactions.get_transaction(session, transaction_id, owner_id)


def update_transaction(
    transaction_id: str,
    owner_id: str,
    patch: Mapping[str, Any],
    *,
    database_url: str | None = None,
) -> TransactionView:
    with session_scope(database_url=database_url) as session:
        return transactions.update_transaction(session, transaction_id, owner_id, patch)


def delete_transaction(
    transaction_id: str, owner_id: str, *, database_url: str | None = None
) -> None:
    with session_scope(database_url=database_url) as session:
        transactions.delete_transaction(session, transaction_id, owner_id)


# ---------------------------
# Reporting
# ---------------------------


def summarize(
    owner_id: str,
    date_from: date | str,
    date_to: date | str,
    type: str | None = None,
    *,
    database_url: str | None = None,
) -> Summary:
    with session_scope(database_url=database_url) as session:
        return aggregation.summarize(
            session, owner_id=owner_id, date_from=date_from, date_to=date_to, type=type
        )


def analyze(
    owner_id: str,
    date_from: date | str,
    date_to: date | str,
    *,
    type: str = "expense",
    top_n: int | None = None,
    limit_largest: int | None = None,
    database_url: str | None = None,
) -> Analytics:
    with session_scope(database_url=database_url) as session:
        return aggregation.analyze(
            session,
            owner_id=owner_id,
            date_from=date_from,
            date_to=date_to,
            type=type,
            top_n=top_n,
            limit_largest=limit_largest,
        )


def answer_question(
    owner_id: str,
    message: str,
    *,
    now: datetime | date | None = None,
    lang: str | None = "en",
    database_url: str | None = None,
) -> AssistantAnswer:
    with session_scope(database_url=database_url) as session:
        return assistant.answer_question(
            session, owner_id=owner_id, message=message, now=now, lang=lang
        )


__all__ = [
    "analyze",
    "answer_question",
    "apply_draft",
    "create_draft",
    "create_draft_from_text",
    "create_transactions",
    "delete_transaction",
    "discard_draft",
    "get_draft",
    "get_transaction",
    "list_drafts",
    "list_transactions",
    "parse_text",
    "resolve_period",
    "summarize",
    "update_draft",
    "update_transaction",
]
