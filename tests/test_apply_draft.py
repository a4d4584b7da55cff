from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from db.client import session_scope
from db.models.ledger import LedgerDraft

from finance_ledger import api, drafts
from finance_ledger.apply import apply_draft, draft_batch_key
from finance_ledger.errors import IllegalTransitionError, NotFoundError, ValidationError
from tests.helpers.db import count_transactions

OWNER = "user-1"

ITEMS = [
    {"date": "2024-03-12", "amount": "60", "category": "food", "description": "coffee"},
    {"date": "2024-03-13", "amount": "150", "category": "transport", "description": "taxi"},
    {"date": "2024-03-13", "amount": "2500", "category": "other", "description": "salary", "type": "income"},
]


def _new_draft(db_url: str, items=ITEMS) -> str:
    return api.create_draft(OWNER, "ai-text", items, database_url=db_url)


def test_apply_commits_rows_and_marks_draft_applied(db_url: str) -> None:
    draft_id = _new_draft(db_url)
    result = api.apply_draft(draft_id, OWNER, database_url=db_url)

    assert result.duplicate is False
    assert result.batch_key == f"draft:{draft_id}"
    assert [t.description for t in result.items] == ["coffee", "taxi", "salary"]
    assert [t.type for t in result.items] == ["expense", "expense", "income"]
    assert count_transactions(db_url, OWNER) == 3

    d = api.get_draft(draft_id, OWNER, database_url=db_url)
    assert d.status == "applied"
    assert d.applied_batch_key == draft_batch_key(draft_id)


def test_repeated_apply_returns_same_ids(db_url: str) -> None:
    draft_id = _new_draft(db_url)
    results = [api.apply_draft(draft_id, OWNER, database_url=db_url) for _ in range(3)]

    assert [r.duplicate for r in results] == [False, True, True]
    assert len({r.transaction_ids for r in results}) == 1
    assert count_transactions(db_url, OWNER) == 3


def test_concurrent_apply_writes_once(db_url: str) -> None:
    draft_id = _new_draft(db_url)

    def _apply(_: int):
        return api.apply_draft(draft_id, OWNER, database_url=db_url)

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(_apply, range(8)))

    assert sum(1 for r in results if not r.duplicate) == 1
    assert len({r.transaction_ids for r in results}) == 1
    assert count_transactions(db_url, OWNER) == 3
    assert api.get_draft(draft_id, OWNER, database_url=db_url).status == "applied"


def test_apply_discarded_draft_is_rejected(db_url: str) -> None:
    draft_id = _new_draft(db_url)
    api.discard_draft(draft_id, OWNER, database_url=db_url)
    with pytest.raises(IllegalTransitionError):
        api.apply_draft(draft_id, OWNER, database_url=db_url)
    assert count_transactions(db_url) == 0


def test_apply_empty_draft_is_rejected(db_url: str) -> None:
    draft_id = _new_draft(db_url)
    # Drafts cannot be created or edited empty; simulate a stored empty draft.
    with session_scope(database_url=db_url) as session:
        session.get(LedgerDraft, draft_id).items = []

    with pytest.raises(IllegalTransitionError):
        api.apply_draft(draft_id, OWNER, database_url=db_url)
    assert count_transactions(db_url) == 0
    assert api.get_draft(draft_id, OWNER, database_url=db_url).status == "draft"


def test_apply_stored_invalid_item_reports_field_path(db_url: str) -> None:
    draft_id = _new_draft(db_url)
    with session_scope(database_url=db_url) as session:
        session.get(LedgerDraft, draft_id).items = [{**ITEMS[0], "date": "nope"}]

    with pytest.raises(ValidationError) as excinfo:
        api.apply_draft(draft_id, OWNER, database_url=db_url)
    assert not isinstance(excinfo.value, IllegalTransitionError)
    assert excinfo.value.paths == ["items[0].date"]
    assert count_transactions(db_url) == 0
    with session_scope(database_url=db_url) as session:
        assert session.get(LedgerDraft, draft_id).status == "draft"


def test_discard_after_apply_keeps_rows(db_url: str) -> None:
    draft_id = _new_draft(db_url)
    applied = api.apply_draft(draft_id, OWNER, database_url=db_url)

    api.discard_draft(draft_id, OWNER, database_url=db_url)

    d = api.get_draft(draft_id, OWNER, database_url=db_url)
    assert d.status == "applied"
    assert count_transactions(db_url, OWNER) == 3
    again = api.apply_draft(draft_id, OWNER, database_url=db_url)
    assert again.duplicate is True
    assert again.transaction_ids == applied.transaction_ids


def test_update_after_apply_is_rejected(db_url: str) -> None:
    draft_id = _new_draft(db_url)
    api.apply_draft(draft_id, OWNER, database_url=db_url)
    with pytest.raises(IllegalTransitionError):
        api.update_draft(draft_id, OWNER, title="late edit", database_url=db_url)
    assert api.get_draft(draft_id, OWNER, database_url=db_url).title is None


def test_apply_other_owners_draft(db_url: str) -> None:
    draft_id = _new_draft(db_url)
    with pytest.raises(NotFoundError):
        api.apply_draft(draft_id, "intruder", database_url=db_url)
    assert count_transactions(db_url) == 0


def test_apply_with_shared_session(db_url: str) -> None:
    with session_scope(database_url=db_url) as session:
        draft = drafts.create_draft(session, owner_id=OWNER, source="manual", items=ITEMS[:1])
        result = apply_draft(session, draft.id, OWNER)
    assert result.duplicate is False
    assert count_transactions(db_url, OWNER) == 1
