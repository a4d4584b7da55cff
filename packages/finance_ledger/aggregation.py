"""Totals and breakdowns over an owner's ledger for an inclusive day range.

Everything is computed with SQL aggregates (``SUM``/``COUNT`` grouped by
type, category or date) and then normalized to ``Decimal`` cents in Python,
since some backends (SQLite) hand sums back as floats.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from db.models.ledger import LedgerTransaction
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .errors import ValidationError
from .models import (
    TRANSACTION_TYPES,
    Analytics,
    CategoryShare,
    CategoryTotal,
    DateTotal,
    Period,
    Summary,
    TransactionType,
    TransactionView,
    coerce_day,
    to_decimal_2,
)
from .validation import normalize_owner

_ZERO = Decimal("0.00")

DEFAULT_TOP_N = 5
DEFAULT_LIMIT_LARGEST = 5


def _cents(value: Any) -> Decimal:
    return to_decimal_2(value) or _ZERO


def _period(date_from: Any, date_to: Any) -> Period:
    errors = []
    try:
        d_from = coerce_day(date_from)
    except ValueError as e:
        errors.append(("from", str(e)))
    try:
        d_to = coerce_day(date_to)
    except ValueError as e:
        errors.append(("to", str(e)))
    if errors:
        path, message = errors[0]
        raise ValidationError(message, path=path)
    if d_from > d_to:
        raise ValidationError("must not be after 'to'", path="from")
    return Period(d_from, d_to)


def _type_filter(raw: Any) -> TransactionType | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        s = raw.strip().lower()
        if s in ("", "all"):
            return None
        if s in TRANSACTION_TYPES:
            return s  # type: ignore[return-value]
    raise ValidationError("must be one of income, expense, all", path="type")


def _scope(owner: str, period: Period) -> list[Any]:
    return [
        LedgerTransaction.owner_id == owner,
        LedgerTransaction.date >= period.date_from,
        LedgerTransaction.date <= period.date_to,
    ]


def summarize(
    session: Session,
    *,
    owner_id: str,
    date_from: date | str,
    date_to: date | str,
    type: str | None = None,
) -> Summary:
    """Income/expense totals and breakdowns for ``[date_from, date_to]``.

    ``income_total``, ``expense_total`` and ``balance`` always cover both
    types. ``by_category`` and ``by_date`` honour ``type`` (``income``,
    ``expense``, or both for ``None``/``"all"``). Groups without rows are
    omitted.
    """

    owner = normalize_owner(owner_id)
    period = _period(date_from, date_to)
    type_filter = _type_filter(type)
    scope = _scope(owner, period)

    totals: dict[str, Decimal] = {"income": _ZERO, "expense": _ZERO}
    for tx_type, amount in session.execute(
        select(LedgerTransaction.type, func.sum(LedgerTransaction.amount))
        .where(*scope)
        .group_by(LedgerTransaction.type)
    ):
        if tx_type in totals:
            totals[tx_type] = _cents(amount)

    breakdown_scope = list(scope)
    if type_filter is not None:
        breakdown_scope.append(LedgerTransaction.type == type_filter)

    by_category = [
        CategoryTotal(category=cat, amount=_cents(amount))
        for cat, amount in session.execute(
            select(LedgerTransaction.category, func.sum(LedgerTransaction.amount))
            .where(*breakdown_scope)
            .group_by(LedgerTransaction.category)
        )
    ]
    by_category.sort(key=lambda c: (-c.amount, c.category))

    by_date = [
        DateTotal(date=coerce_day(day), amount=_cents(amount))
        for day, amount in session.execute(
            select(LedgerTransaction.date, func.sum(LedgerTransaction.amount))
            .where(*breakdown_scope)
            .group_by(LedgerTransaction.date)
            .order_by(LedgerTransaction.date.asc())
        )
    ]

    return Summary(
        period=period,
        type_filter=type_filter,
        income_total=totals["income"],
        expense_total=totals["expense"],
        balance=totals["income"] - totals["expense"],
        by_category=tuple(by_category),
        by_date=tuple(by_date),
    )


def _positive_or_default(value: Any, default: int, path: str) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError("must be a positive integer", path=path)
    return value


def analyze(
    session: Session,
    *,
    owner_id: str,
    date_from: date | str,
    date_to: date | str,
    type: str = "expense",
    top_n: int | None = None,
    limit_largest: int | None = None,
) -> Analytics:
    """Total, row count, top categories with shares and the largest rows.

    ``type`` must be ``income`` or ``expense``; shares are fractions of the
    total rounded to four places.
    """

    owner = normalize_owner(owner_id)
    period = _period(date_from, date_to)
    tx_type = _type_filter(type) or "expense"
    n_top = _positive_or_default(top_n, DEFAULT_TOP_N, "top_n")
    n_largest = _positive_or_default(limit_largest, DEFAULT_LIMIT_LARGEST, "limit_largest")
    scope = _scope(owner, period) + [LedgerTransaction.type == tx_type]

    total_raw, count = session.execute(
        select(func.sum(LedgerTransaction.amount), func.count(LedgerTransaction.id)).where(*scope)
    ).one()
    total = _cents(total_raw)

    groups = [
        (cat, _cents(amount))
        for cat, amount in session.execute(
            select(LedgerTransaction.category, func.sum(LedgerTransaction.amount))
            .where(*scope)
            .group_by(LedgerTransaction.category)
        )
    ]
    groups.sort(key=lambda g: (-g[1], g[0]))
    top = tuple(
        CategoryShare(
            category=cat,
            amount=amount,
            share=round(float(amount / total), 4) if total > 0 else 0.0,
        )
        for cat, amount in groups[:n_top]
    )

    largest_rows = (
        session.execute(
            select(LedgerTransaction)
            .where(*scope)
            .order_by(
                LedgerTransaction.amount.desc(),
                LedgerTransaction.date.desc(),
                LedgerTransaction.id.asc(),
            )
            .limit(n_largest)
        )
        .scalars()
        .all()
    )

    return Analytics(
        period=period,
        type=tx_type,
        total=total,
        count=int(count or 0),
        top_categories=top,
        largest=tuple(TransactionView.from_row(r) for r in largest_rows),
    )


__all__ = [
    "DEFAULT_LIMIT_LARGEST",
    "DEFAULT_TOP_N",
    "analyze",
    "summarize",
]
