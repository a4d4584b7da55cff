"""Canonical spending categories.

The ledger stores category ids as plain strings; this module provides the
canonical id list, localized labels for ``en``/``ru``/``uk`` and keyword based
normalization used by the parser adapter and the assistant to map free text
onto an id.
"""

from __future__ import annotations

import re
from typing import Any, TypedDict

CATEGORY_IDS: tuple[str, ...] = (
    "food",
    "transport",
    "bills",
    "rent",
    "health",
    "fun",
    "shopping",
    "other",
)

FALLBACK_CATEGORY = "other"

CATEGORY_LABELS: dict[str, dict[str, str]] = {
    "food": {"en": "Food & groceries", "ru": "Еда и продукты", "uk": "Їжа та продукти"},
    "transport": {"en": "Transport", "ru": "Транспорт", "uk": "Транспорт"},
    "bills": {"en": "Bills & utilities", "ru": "Коммунальные услуги", "uk": "Комунальні послуги"},
    "rent": {"en": "Rent", "ru": "Аренда жилья", "uk": "Оренда житла"},
    "health": {"en": "Health", "ru": "Здоровье", "uk": "Здоров'я"},
    "fun": {"en": "Entertainment", "ru": "Развлечения", "uk": "Розваги"},
    "shopping": {"en": "Shopping", "ru": "Покупки и шопинг", "uk": "Покупки та шопінг"},
    "other": {"en": "Other", "ru": "Другое", "uk": "Інше"},
}

# Keyword prefixes per category, checked in CATEGORY_IDS order. A keyword
# must start a word ("rent" matches "rent" and "rental", not "current").
_CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "food": (
        "food", "grocery", "groceries", "restaurant", "cafe",
        "еда", "еду", "еды", "продукт", "магазин", "супермаркет", "кафе", "ресторан",
        "їжа", "продукти",
    ),
    "transport": (
        "transport", "bus", "metro", "taxi", "uber", "bolt", "train",
        "транспорт", "проезд", "проїзд", "маршрутк", "трамвай", "троллейбус",
        "такси", "таксі", "метро", "автобус", "поезд", "поїзд",
    ),
    "bills": (
        "bill", "utilit", "electricity", "water", "internet",
        "коммунал", "комунал", "жкх", "электрич", "електри", "газ", "вода", "интернет",
    ),
    "rent": ("rent", "аренд", "оренд", "квартир", "кварплат", "съём", "съем"),
    "health": (
        "health", "medicine", "pharmacy", "doctor", "dentist",
        "аптек", "лекарств", "ліки", "медицин", "стоматолог", "врач", "лікар", "здоров",
    ),
    "fun": (
        "fun", "entertainment", "cinema", "movie", "concert", "game", "netflix", "spotify",
        "развлеч", "розваг", "кино", "кіно", "театр", "концерт", "игр", "подписк", "підписк",
    ),
    "shopping": (
        "shopping", "shop", "clothes", "electronics", "marketplace", "amazon", "aliexpress",
        "покупк", "шопинг", "одежд", "одяг", "обувь", "взуття", "техник", "технік", "rozetka",
    ),
    "other": (),
}


_CATEGORY_PATTERNS: dict[str, re.Pattern[str]] = {
    cid: re.compile(r"(?<!\w)(?:" + "|".join(re.escape(kw) for kw in kws) + ")")
    for cid, kws in _CATEGORY_KEYWORDS.items()
    if kws
}


class CategoryMeta(TypedDict):
    id: str
    label: str


def is_category_id(value: Any) -> bool:
    return isinstance(value, str) and value in CATEGORY_IDS


def match_category(text: Any) -> str | None:
    """Return the first category whose id or keyword occurs in ``text``."""

    if not isinstance(text, str):
        return None
    value = text.strip().lower()
    if not value:
        return None
    if value in CATEGORY_IDS:
        return value
    for cid in CATEGORY_IDS:
        pattern = _CATEGORY_PATTERNS.get(cid)
        if pattern is not None and pattern.search(value):
            return cid
    return None


def normalize_category_id(raw: Any) -> str:
    """Map ``raw`` to a canonical id, falling back to ``other``."""

    return match_category(raw) or FALLBACK_CATEGORY


def get_category_label(category_id: str | None, lang: str = "en") -> str:
    if not category_id or category_id not in CATEGORY_LABELS:
        return category_id or ""
    labels = CATEGORY_LABELS[category_id]
    return labels.get(lang) or labels["en"]


def get_categories_meta(lang: str = "en") -> list[CategoryMeta]:
    return [{"id": cid, "label": get_category_label(cid, lang)} for cid in CATEGORY_IDS]


__all__ = [
    "CATEGORY_IDS",
    "CATEGORY_LABELS",
    "FALLBACK_CATEGORY",
    "CategoryMeta",
    "get_categories_meta",
    "get_category_label",
    "is_category_id",
    "match_category",
    "normalize_category_id",
]
