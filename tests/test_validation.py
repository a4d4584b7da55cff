from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from finance_ledger.errors import CapacityError, ValidationError
from finance_ledger.models import LedgerItem
from finance_ledger.validation import (
    normalize_batch_key,
    normalize_items,
    normalize_lang,
    normalize_source,
    normalize_title,
    validate_item,
    validate_patch,
)


def _item(**overrides):
    base = {
        "date": "2024-03-10",
        "amount": "120.5",
        "category": "food",
        "description": "groceries",
    }
    base.update(overrides)
    return base


def test_item_defaults_and_normalization() -> None:
    item = validate_item(_item(category="  food ", description=" milk  "))
    assert item.date == date(2024, 3, 10)
    assert item.amount == Decimal("120.50")
    assert item.currency == "UAH"
    assert item.source == "manual"
    assert item.type == "expense"
    assert item.category == "food"
    assert item.description == "milk"


def test_currency_is_uppercased_and_type_lowercased() -> None:
    item = validate_item(_item(currency=" usd ", type="INCOME"))
    assert item.currency == "USD"
    assert item.type == "income"


def test_default_currency_comes_from_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FINANCE_LEDGER_DEFAULT_CURRENCY", "eur")
    assert validate_item(_item()).currency == "EUR"


def test_datetime_string_is_reduced_to_utc_day() -> None:
    item = validate_item(_item(date="2024-03-10T23:30:00-02:00"))
    assert item.date == date(2024, 3, 11)


def test_amount_is_rounded_half_up_to_cents() -> None:
    assert validate_item(_item(amount=10.005)).amount == Decimal("10.01")
    assert validate_item(_item(amount="3")).amount == Decimal("3.00")


@pytest.mark.parametrize("amount", [0, -5, "abc", None, True, "0.004", float("nan"), float("inf")])
def test_invalid_amounts_are_rejected(amount) -> None:
    with pytest.raises(ValidationError) as ei:
        validate_item(_item(amount=amount), path="items[0]")
    assert ei.value.paths == ["items[0].amount"]


def test_every_bad_field_is_reported() -> None:
    with pytest.raises(ValidationError) as ei:
        validate_item({"date": "not a date", "amount": -1, "category": " ", "type": "transfer"})
    assert sorted(ei.value.paths) == ["amount", "category", "date", "description", "type"]


def test_missing_date_message() -> None:
    with pytest.raises(ValidationError) as ei:
        validate_item(_item(date=None))
    assert "date: is required and must be a valid date" in str(ei.value)


def test_description_length_limit() -> None:
    validate_item(_item(description="x" * 240))
    with pytest.raises(ValidationError) as ei:
        validate_item(_item(description="x" * 241))
    assert ei.value.paths == ["description"]


def test_non_mapping_payload() -> None:
    with pytest.raises(ValidationError) as ei:
        validate_item(["not", "an", "object"], path="items[2]")
    assert ei.value.paths == ["items[2]"]


def test_normalize_items_collects_errors_with_indices() -> None:
    with pytest.raises(ValidationError) as ei:
        normalize_items([_item(), _item(amount=0), _item(category="")], max_items=10)
    assert ei.value.paths == ["items[1].amount", "items[2].category"]


def test_normalize_items_rejects_empty_and_non_arrays() -> None:
    with pytest.raises(ValidationError, match="must not be empty"):
        normalize_items([], max_items=10)
    with pytest.raises(ValidationError, match="must be an array"):
        normalize_items("oops", max_items=10)
    assert normalize_items([], max_items=10, allow_empty=True) == []


def test_normalize_items_capacity() -> None:
    with pytest.raises(CapacityError):
        normalize_items([_item(), _item(), _item()], max_items=2)


def test_patch_merges_and_revalidates() -> None:
    current = validate_item(_item())
    updated = validate_patch(current, {"amount": "99.999", "category": "transport"})
    assert updated.amount == Decimal("100.00")
    assert updated.category == "transport"
    assert updated.description == current.description


def test_patch_rejects_unknown_fields_and_blank_currency() -> None:
    current = validate_item(_item())
    with pytest.raises(ValidationError) as ei:
        validate_patch(current, {"owner_id": "someone-else", "id": "x"})
    assert ei.value.paths == ["id", "owner_id"]
    with pytest.raises(ValidationError) as ei:
        validate_patch(current, {"currency": "  "})
    assert ei.value.paths == ["currency"]


def test_ledger_item_is_immutable() -> None:
    item = validate_item(_item())
    assert isinstance(item, LedgerItem)
    with pytest.raises(Exception):
        item.amount = Decimal("1")  # type: ignore[misc]


def test_draft_metadata_helpers() -> None:
    assert normalize_source(" ai-text ") == "ai-text"
    with pytest.raises(ValidationError):
        normalize_source("email")
    assert normalize_lang("UK") == "uk"
    assert normalize_lang("") is None
    with pytest.raises(ValidationError):
        normalize_lang("de")
    assert normalize_title("  ") is None
    with pytest.raises(ValidationError):
        normalize_title(42)


def test_batch_key_bounds() -> None:
    assert normalize_batch_key(" k1 ") == "k1"
    normalize_batch_key("k" * 200)
    with pytest.raises(ValidationError):
        normalize_batch_key("k" * 201)
    with pytest.raises(ValidationError):
        normalize_batch_key("   ")
