from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from finance_ledger import api
from finance_ledger import parsing as parsing_mod
from finance_ledger.errors import ValidationError
from finance_ledger.parsing import MissingApiKeyError, parse_text
from tests.helpers.openai_stub import OpenAIStub

OWNER = "user-1"
TODAY = date(2024, 3, 14)


def _model_payload() -> dict:
    return {
        "recognizedText": "вчера кофе 60, такси 150",
        "transactions": [
            {"date": "2024-03-13", "amount": 60, "currency": "uah", "category": "food", "description": "кофе"},
            {"amount": "150,5", "category": "Taxi", "description": "такси"},
            "garbage",
        ],
        "warnings": ["category guessed", 3],
        "questions": [],
    }


def test_parse_text_coerces_untrusted_output() -> None:
    calls: list[dict] = []
    result = parse_text(
        "вчера кофе 60, такси 150", today=TODAY, client=OpenAIStub(_model_payload(), calls)
    )

    assert len(calls) == 1
    assert calls[0]["model"] == "gpt-4o-mini"
    assert calls[0]["input"] == "вчера кофе 60, такси 150"
    assert "2024-03-14" in calls[0]["instructions"]

    assert result.recognized_text == "вчера кофе 60, такси 150"
    assert len(result.transactions) == 2
    second = result.transactions[1]
    assert second["date"] == "2024-03-14"
    assert second["amount"] == "150.5"
    assert second["category"] == "transport"
    assert second["source"] == "ai-text"
    assert result.warnings == ("category guessed",)


def test_model_setting_is_used(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FINANCE_LEDGER_LLM_MODEL", "gpt-test")
    calls: list[dict] = []
    parse_text("x", today=TODAY, client=OpenAIStub({"transactions": []}, calls))
    assert calls[0]["model"] == "gpt-test"


def test_non_json_output_raises() -> None:
    with pytest.raises(ValueError):
        parse_text("x", today=TODAY, client=OpenAIStub("Sure! Here you go"))


def test_missing_api_key() -> None:
    with pytest.raises(MissingApiKeyError):
        parse_text("кофе 60", today=TODAY)


def test_blank_text_is_rejected() -> None:
    with pytest.raises(ValidationError):
        parse_text("  ", today=TODAY, client=OpenAIStub({}))


def test_create_draft_from_text(db_url: str) -> None:
    draft, parsed = api.create_draft_from_text(
        OWNER,
        "вчера кофе 60, такси 150",
        lang="ru",
        today=TODAY,
        client=OpenAIStub(_model_payload()),
        database_url=db_url,
    )
    assert parsed.recognized_text.startswith("вчера")
    assert draft.source == "ai-text"
    assert draft.lang == "ru"
    assert [(it.category, it.amount, it.currency) for it in draft.items] == [
        ("food", Decimal("60.00"), "UAH"),
        ("transport", Decimal("150.50"), "UAH"),
    ]
    assert api.get_draft(draft.id, OWNER, database_url=db_url).status == "draft"


def test_invalid_model_items_never_reach_a_draft(db_url: str) -> None:
    payload = {"transactions": [{"amount": -10, "category": "food", "description": "refund?"}]}
    with pytest.raises(ValidationError) as ei:
        api.create_draft_from_text(
            OWNER, "minus ten", today=TODAY, client=OpenAIStub(payload), database_url=db_url
        )
    assert ei.value.paths == ["items[0].amount"]
    assert api.list_drafts(OWNER, database_url=db_url) == []


def test_instructions_list_categories() -> None:
    text = parsing_mod.build_parser_instructions(TODAY)
    assert "food|transport|bills|rent|health|fun|shopping|other" in text
