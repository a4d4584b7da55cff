"""Answer spending questions from the ledger.

Interpretation is deterministic: the period comes from
:func:`finance_ledger.periods.resolve_period`, the category from keyword
matching, and the intent from a handful of phrases. Figures always cover
expenses only.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from .aggregation import summarize
from .categories import get_category_label, match_category
from .errors import ValidationError
from .logging_setup import get_logger, log_event
from .models import AssistantAnswer, Period
from .periods import resolve_period
from .validation import normalize_lang, normalize_owner

_logger = get_logger("finance_ledger.assistant")

_BIGGEST = re.compile(
    r"\b(?:biggest|largest|most|top)\b"
    r"|сам(?:ая|ой|ую|ое)\s+(?:больш|затрат|дорог)\w*|больше\s+всего"
    r"|найбільш\w*|найдорожч\w*|найбільше",
    re.IGNORECASE | re.UNICODE,
)

_TEMPLATES: dict[str, dict[str, str]] = {
    "total": {
        "en": "From {date_from} to {date_to} your expenses totalled {total}.",
        "ru": "За период с {date_from} по {date_to} общая сумма расходов составила {total}.",
        "uk": "За період з {date_from} по {date_to} загальна сума витрат склала {total}.",
    },
    "category": {
        "en": (
            "From {date_from} to {date_to} you spent {amount} on {label}. "
            "That is {percent}% of total expenses of {total}."
        ),
        "ru": (
            "За период с {date_from} по {date_to} по категории {label} сумма расходов "
            "составила {amount}. Это {percent}% от общей суммы {total}."
        ),
        "uk": (
            "За період з {date_from} по {date_to} за категорією {label} сума витрат "
            "склала {amount}. Це {percent}% від загальної суми {total}."
        ),
    },
    "biggestCategory": {
        "en": (
            "Your biggest category from {date_from} to {date_to} is {label} "
            "with {amount} ({percent}% of all expenses)."
        ),
        "ru": (
            "Самая затратная категория за период с {date_from} по {date_to} — {label} "
            "с суммой {amount} ({percent}% от всех расходов)."
        ),
        "uk": (
            "Найбільша категорія витрат за період з {date_from} по {date_to} — {label} "
            "із сумою {amount} ({percent}% від усіх витрат)."
        ),
    },
    "empty": {
        "en": "No expenses recorded from {date_from} to {date_to}.",
        "ru": "За период с {date_from} по {date_to} расходов нет.",
        "uk": "За період з {date_from} по {date_to} витрат немає.",
    },
}


def detect_intent(message: str) -> tuple[str, str | None]:
    """Return ``(intent, category)`` for a question."""

    if _BIGGEST.search(message):
        return "biggestCategory", None
    category = match_category(message)
    if category is not None:
        return "category", category
    return "total", None


def _render(key: str, lang: str, period: Period, **values: object) -> str:
    template = _TEMPLATES[key].get(lang) or _TEMPLATES[key]["en"]
    return template.format(
        date_from=period.date_from.isoformat(),
        date_to=period.date_to.isoformat(),
        **values,
    )


def answer_question(
    session: Session,
    *,
    owner_id: str,
    message: str,
    now: datetime | date | None = None,
    lang: str | None = "en",
) -> AssistantAnswer:
    owner = normalize_owner(owner_id)
    if not isinstance(message, str) or not message.strip():
        raise ValidationError("is required", path="message")
    text = message.strip()
    language = normalize_lang(lang) or "en"

    period = resolve_period(text, now if now is not None else datetime.now(UTC))
    intent, category = detect_intent(text)
    summary = summarize(
        session,
        owner_id=owner,
        date_from=period.date_from,
        date_to=period.date_to,
        type="expense",
    )
    total = summary.expense_total
    amount = total

    if intent == "category":
        amount = next(
            (c.amount for c in summary.by_category if c.category == category),
            Decimal("0.00"),
        )
    elif intent == "biggestCategory" and summary.by_category:
        biggest = summary.by_category[0]
        category = biggest.category
        amount = biggest.amount
    elif intent == "biggestCategory":
        amount = Decimal("0.00")

    share = round(float(amount / total), 2) if total > 0 else 0.0
    percent = f"{share * 100:.1f}"
    label = get_category_label(category, language) if category else ""

    if intent == "total":
        answer = _render("total", language, period, total=f"{total:.2f}")
    elif intent == "biggestCategory" and category is None:
        answer = _render("empty", language, period)
    else:
        answer = _render(
            intent,
            language,
            period,
            label=label,
            amount=f"{amount:.2f}",
            total=f"{total:.2f}",
            percent=percent,
        )

    log_event(
        _logger,
        "assistant:answered",
        owner=owner,
        intent=intent,
        category=category or "-",
        period=f"{period.date_from.isoformat()}..{period.date_to.isoformat()}",
        text_length=len(text),
    )
    return AssistantAnswer(
        question=text,
        intent=intent,  # type: ignore[arg-type]
        category=category,
        period=period,
        amount=amount,
        total=total,
        share=share,
        answer=answer,
    )


__all__ = [
    "answer_question",
    "detect_intent",
]
