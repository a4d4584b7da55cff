"""Data models for ``finance_ledger``.

Two families live here:

- :class:`LedgerItem`, a pydantic model that is the single strict validator
  for anything that may become a ledger row: manual input, draft items and
  the untyped payloads produced by the language-model parser. It never trusts
  inferred types; every field is coerced and checked explicitly.
- Frozen dataclasses describing results handed back to callers (draft views,
  commit receipts, summaries). They carry plain Python values and expose
  ``to_dict()`` for JSON output.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

type TransactionType = Literal["income", "expense"]
type DraftStatus = Literal["draft", "applied", "discarded"]

TRANSACTION_TYPES: frozenset[str] = frozenset({"income", "expense"})

MAX_DESCRIPTION_LENGTH = 240
MAX_SOURCE_LENGTH = 50
MAX_CURRENCY_LENGTH = 8

_CENT = Decimal("0.01")

# Alias so the ``date`` field below does not shadow its own annotation.
_Day = date


# ---------------------------------------------------------------------------
# Scalar coercion helpers (shared with validation/aggregation)
# ---------------------------------------------------------------------------


def to_decimal_2(raw: Any) -> Decimal | None:
    """Parse ``raw`` into a Decimal rounded half-up to cents, or ``None``."""

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, float) and not math.isfinite(raw):
        return None
    try:
        d = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite():
        return None
    return d.quantize(_CENT, rounding=ROUND_HALF_UP)


def coerce_day(raw: Any) -> date:
    """Return the calendar day for a date, datetime or ISO string.

    Datetimes (and datetime strings) are reduced to their UTC day; naive
    values are taken as UTC already.
    """

    if isinstance(raw, datetime):
        if raw.tzinfo is not None:
            raw = raw.astimezone(UTC)
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError("is required and must be a valid date")
    s = raw.strip()
    try:
        return date.fromisoformat(s)
    except ValueError:
        pass
    try:
        return coerce_day(datetime.fromisoformat(s))
    except ValueError:
        raise ValueError("must be a valid date") from None


# ---------------------------------------------------------------------------
# Strict input model
# ---------------------------------------------------------------------------


class LedgerItem(BaseModel):
    """A validated, normalized ledger entry.

    Validation context keys:

    - ``default_currency``: currency used when the payload carries none
      (defaults to ``UAH``).
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    date: _Day
    amount: Decimal
    currency: str = Field(default=None, validate_default=True)  # type: ignore[assignment]
    category: str
    description: str
    source: str = Field(default=None, validate_default=True)  # type: ignore[assignment]
    type: TransactionType = Field(default=None, validate_default=True)  # type: ignore[assignment]

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, v: Any) -> date:
        return coerce_day(v)

    @field_validator("amount", mode="before")
    @classmethod
    def _positive_amount(cls, v: Any) -> Decimal:
        if isinstance(v, str | int | float | Decimal) and not isinstance(v, bool):
            d = to_decimal_2(v)
            if d is not None and d > 0:
                return d
        raise ValueError("must be a positive number")

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: Any) -> str:
        s = v.strip() if isinstance(v, str) else ""
        if not s:
            raise ValueError("is required")
        return s

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v: Any) -> str:
        s = v.strip() if isinstance(v, str) else ""
        if not s:
            raise ValueError("is required")
        if len(s) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f"must be at most {MAX_DESCRIPTION_LENGTH} characters")
        return s

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, v: Any, info: ValidationInfo) -> str:
        if v is None or (isinstance(v, str) and not v.strip()):
            ctx = info.context or {}
            return str(ctx.get("default_currency") or "UAH").upper()
        if not isinstance(v, str):
            raise ValueError("must be a string")
        s = v.strip().upper()
        if len(s) > MAX_CURRENCY_LENGTH:
            raise ValueError(f"must be at most {MAX_CURRENCY_LENGTH} characters")
        return s

    @field_validator("source", mode="before")
    @classmethod
    def _source(cls, v: Any) -> str:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "manual"
        if not isinstance(v, str):
            raise ValueError("must be a string")
        s = v.strip()
        if len(s) > MAX_SOURCE_LENGTH:
            raise ValueError(f"must be at most {MAX_SOURCE_LENGTH} characters")
        return s

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v: Any) -> str:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "expense"
        s = v.strip().lower() if isinstance(v, str) else None
        if s not in TRANSACTION_TYPES:
            raise ValueError("must be either expense or income")
        return s

    def to_json_dict(self) -> dict[str, Any]:
        """JSON-safe dict: ISO date and the amount as a 2dp string."""

        return {
            "date": self.date.isoformat(),
            "amount": f"{self.amount:.2f}",
            "currency": self.currency,
            "category": self.category,
            "description": self.description,
            "source": self.source,
            "type": self.type,
        }


# ---------------------------------------------------------------------------
# Result views
# ---------------------------------------------------------------------------


def _iso(v: datetime | date | None) -> str | None:
    return v.isoformat() if v is not None else None


@dataclass(frozen=True, slots=True)
class TransactionView:
    id: str
    owner_id: str
    date: date
    amount: Decimal
    currency: str
    category: str
    description: str
    source: str
    type: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> TransactionView:
        return cls(
            id=row.id,
            owner_id=row.owner_id,
            date=row.date,
            amount=to_decimal_2(row.amount) or Decimal("0.00"),
            currency=row.currency,
            category=row.category,
            description=row.description,
            source=row.source,
            type=row.type,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "date": self.date.isoformat(),
            "amount": f"{self.amount:.2f}",
            "currency": self.currency,
            "category": self.category,
            "description": self.description,
            "source": self.source,
            "type": self.type,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass(frozen=True, slots=True)
class DraftSummary:
    id: str
    owner_id: str
    source: str
    lang: str | None
    title: str | None
    status: DraftStatus
    items_count: int
    applied_batch_key: str | None
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "source": self.source,
            "lang": self.lang,
            "title": self.title,
            "status": self.status,
            "items_count": self.items_count,
            "applied_batch_key": self.applied_batch_key,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass(frozen=True, slots=True)
class DraftDetails:
    id: str
    owner_id: str
    source: str
    lang: str | None
    title: str | None
    status: DraftStatus
    items: tuple[LedgerItem, ...]
    applied_batch_key: str | None
    created_at: datetime
    updated_at: datetime

    def summary(self) -> DraftSummary:
        return DraftSummary(
            id=self.id,
            owner_id=self.owner_id,
            source=self.source,
            lang=self.lang,
            title=self.title,
            status=self.status,
            items_count=len(self.items),
            applied_batch_key=self.applied_batch_key,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        out = self.summary().to_dict()
        out.pop("items_count")
        out["items"] = [it.to_json_dict() for it in self.items]
        return out


@dataclass(frozen=True, slots=True)
class CommitResult:
    """Outcome of an idempotent batch commit.

    ``duplicate`` is ``True`` when the batch key had already been committed
    and no rows were written by this call.
    """

    duplicate: bool
    batch_key: str
    transaction_ids: tuple[str, ...]
    items: tuple[TransactionView, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "duplicate": self.duplicate,
            "batch_key": self.batch_key,
            "transaction_ids": list(self.transaction_ids),
            "items": [it.to_dict() for it in self.items],
        }


# Applying a draft reports exactly what the underlying commit reported.
ApplyResult = CommitResult


@dataclass(frozen=True, slots=True)
class Period:
    """An absolute, inclusive ``[date_from, date_to]`` calendar-day range."""

    date_from: date
    date_to: date

    def __post_init__(self) -> None:
        if self.date_from > self.date_to:
            raise ValueError("Period.date_from must not be after date_to")

    def as_dict(self) -> dict[str, str]:
        return {"from": self.date_from.isoformat(), "to": self.date_to.isoformat()}


@dataclass(frozen=True, slots=True)
class CategoryTotal:
    category: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class DateTotal:
    date: date
    amount: Decimal


@dataclass(frozen=True, slots=True)
class Summary:
    period: Period
    type_filter: TransactionType | None
    income_total: Decimal
    expense_total: Decimal
    balance: Decimal
    by_category: tuple[CategoryTotal, ...]
    by_date: tuple[DateTotal, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period.as_dict(),
            "type": self.type_filter or "all",
            "income_total": f"{self.income_total:.2f}",
            "expense_total": f"{self.expense_total:.2f}",
            "balance": f"{self.balance:.2f}",
            "by_category": [
                {"category": c.category, "amount": f"{c.amount:.2f}"} for c in self.by_category
            ],
            "by_date": [
                {"date": d.date.isoformat(), "amount": f"{d.amount:.2f}"} for d in self.by_date
            ],
        }


@dataclass(frozen=True, slots=True)
class CategoryShare:
    category: str
    amount: Decimal
    share: float


@dataclass(frozen=True, slots=True)
class Analytics:
    period: Period
    type: TransactionType
    total: Decimal
    count: int
    top_categories: tuple[CategoryShare, ...]
    largest: tuple[TransactionView, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period.as_dict(),
            "type": self.type,
            "total": f"{self.total:.2f}",
            "count": self.count,
            "top_categories": [
                {"category": c.category, "amount": f"{c.amount:.2f}", "share": c.share}
                for c in self.top_categories
            ],
            "largest": [t.to_dict() for t in self.largest],
        }


@dataclass(frozen=True, slots=True)
class TransactionPage:
    items: tuple[TransactionView, ...]
    page: int
    limit: int
    total: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [t.to_dict() for t in self.items],
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
        }


@dataclass(frozen=True, slots=True)
class ParseResult:
    """Best-effort output of the language-model parser (untrusted)."""

    recognized_text: str
    transactions: tuple[dict[str, Any], ...]
    warnings: tuple[str, ...] = ()
    questions: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class AssistantAnswer:
    question: str
    intent: Literal["total", "category", "biggestCategory"]
    category: str | None
    period: Period
    amount: Decimal
    total: Decimal
    share: float
    answer: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "question": self.question,
            "answer": self.answer,
            "details": {
                "intent": self.intent,
                "period": self.period.as_dict(),
                "category": self.category,
                "amount": f"{self.amount:.2f}",
                "total": f"{self.total:.2f}",
                "share": self.share,
            },
        }


__all__ = [
    "Analytics",
    "ApplyResult",
    "AssistantAnswer",
    "CategoryShare",
    "CategoryTotal",
    "CommitResult",
    "DateTotal",
    "DraftDetails",
    "DraftStatus",
    "DraftSummary",
    "LedgerItem",
    "ParseResult",
    "Period",
    "Summary",
    "TRANSACTION_TYPES",
    "TransactionPage",
    "TransactionType",
    "TransactionView",
    "coerce_day",
    "to_decimal_2",
]
