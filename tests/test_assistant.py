from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from finance_ledger import api
from finance_ledger.assistant import detect_intent
from finance_ledger.errors import ValidationError
from tests.helpers.db import seed_transactions

OWNER = "user-1"
NOW = datetime(2024, 3, 14, 12, 0, tzinfo=UTC)


@pytest.fixture()
def ledger(db_url: str) -> str:
    seed_transactions(
        database_url=db_url,
        owner_id=OWNER,
        rows=[
            # last week (2024-03-04..10)
            {"date": date(2024, 3, 4), "amount": Decimal("200"), "category": "food"},
            {"date": date(2024, 3, 6), "amount": Decimal("100"), "category": "transport"},
            {"date": date(2024, 3, 8), "amount": Decimal("700"), "category": "rent"},
            # this week
            {"date": date(2024, 3, 12), "amount": Decimal("50"), "category": "food"},
            {"date": date(2024, 3, 12), "amount": Decimal("5000"), "category": "other", "type": "income"},
        ],
    )
    return db_url


@pytest.mark.parametrize(
    ("message", "intent", "category"),
    [
        ("How much did I spend last week?", "total", None),
        ("How much on food this month?", "category", "food"),
        ("сколько я потратил на такси", "category", "transport"),
        ("What was my biggest category?", "biggestCategory", None),
        ("на что я потратил больше всего", "biggestCategory", None),
    ],
)
def test_detect_intent(message: str, intent: str, category: str | None) -> None:
    assert detect_intent(message) == (intent, category)


def test_total_over_resolved_period(ledger: str) -> None:
    ans = api.answer_question(
        OWNER, "How much did I spend last week?", now=NOW, database_url=ledger
    )
    assert ans.intent == "total"
    assert ans.period.as_dict() == {"from": "2024-03-04", "to": "2024-03-10"}
    assert ans.total == Decimal("1000.00")
    assert ans.amount == Decimal("1000.00")
    assert "1000.00" in ans.answer


def test_category_share(ledger: str) -> None:
    ans = api.answer_question(
        OWNER, "How much on food last week?", now=NOW, database_url=ledger
    )
    assert ans.intent == "category"
    assert ans.category == "food"
    assert ans.amount == Decimal("200.00")
    assert ans.share == 0.2
    assert "20.0%" in ans.answer


def test_biggest_category_in_russian(ledger: str) -> None:
    ans = api.answer_question(
        OWNER,
        "на что я потратил больше всего на прошлой неделе",
        now=NOW,
        lang="ru",
        database_url=ledger,
    )
    assert ans.intent == "biggestCategory"
    assert ans.category == "rent"
    assert ans.amount == Decimal("700.00")
    assert ans.share == 0.7
    assert "Аренда жилья" in ans.answer


def test_income_is_not_counted_as_spending(ledger: str) -> None:
    ans = api.answer_question(OWNER, "How much did I spend this week?", now=NOW, database_url=ledger)
    assert ans.total == Decimal("50.00")


def test_empty_period(ledger: str) -> None:
    ans = api.answer_question(OWNER, "biggest category last year", now=NOW, database_url=ledger)
    assert ans.category is None
    assert ans.amount == Decimal("0.00")
    assert ans.share == 0.0
    assert ans.to_dict()["details"]["period"] == {"from": "2023-01-01", "to": "2023-12-31"}


def test_blank_message_is_rejected(db_url: str) -> None:
    with pytest.raises(ValidationError):
        api.answer_question(OWNER, "   ", now=NOW, database_url=db_url)
