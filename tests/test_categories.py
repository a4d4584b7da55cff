from __future__ import annotations

import pytest

from finance_ledger.categories import (
    CATEGORY_IDS,
    get_categories_meta,
    get_category_label,
    is_category_id,
    match_category,
    normalize_category_id,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("food", "food"),
        ("  Rent ", "rent"),
        ("Uber to the airport", "transport"),
        ("оплата за квартиру", "rent"),
        ("продукти в АТБ", "food"),
        ("аптека", "health"),
        ("current account fee", None),
        ("", None),
        (None, None),
    ],
)
def test_match_category(text, expected) -> None:
    assert match_category(text) == expected


def test_normalize_falls_back_to_other() -> None:
    assert normalize_category_id("something odd") == "other"
    assert normalize_category_id(42) == "other"


def test_labels_and_meta() -> None:
    assert get_category_label("food", "uk") == "Їжа та продукти"
    assert get_category_label("food", "de") == "Food & groceries"
    assert get_category_label("custom") == "custom"
    meta = get_categories_meta("ru")
    assert [m["id"] for m in meta] == list(CATEGORY_IDS)
    assert meta[-1] == {"id": "other", "label": "Другое"}
    assert is_category_id("fun") and not is_category_id("Fun")
