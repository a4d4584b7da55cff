"""Strict, field-by-field validation of ledger input.

All inputs that can end up in the ledger pass through here, regardless of
where they came from (manual entry, stored draft items, language-model
output). Payloads are treated as untyped mappings; errors are reported with a
path such as ``items[3].amount`` so callers can point at the offending field.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import pydantic

from .errors import CapacityError, FieldError, ValidationError
from .models import LedgerItem
from .settings import load_settings

SUPPORTED_LANGS: frozenset[str] = frozenset({"ru", "uk", "en"})
SUPPORTED_DRAFT_SOURCES: frozenset[str] = frozenset({"ai-text", "ai-voice", "manual"})
MAX_BATCH_KEY_LENGTH = 200

# Fields a caller may change on an existing ledger row.
EDITABLE_TRANSACTION_FIELDS: frozenset[str] = frozenset(
    {"date", "amount", "currency", "category", "description", "type"}
)


def _join_path(prefix: str, loc: tuple[Any, ...]) -> str:
    path = prefix
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path = f"{path}.{part}" if path else str(part)
    return path


def _field_errors(exc: pydantic.ValidationError, prefix: str) -> list[FieldError]:
    out: list[FieldError] = []
    for err in exc.errors():
        msg = str(err.get("msg") or "is invalid")
        # pydantic prefixes messages raised from our own validators
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, ") :]
        elif err.get("type") == "missing":
            msg = "is required"
        out.append(FieldError(_join_path(prefix, tuple(err.get("loc") or ())), msg))
    return out


def validate_item(
    payload: Any, *, path: str = "", default_currency: str | None = None
) -> LedgerItem:
    """Validate one untyped payload into a :class:`LedgerItem`.

    Raises :class:`ValidationError` listing every offending field.
    """

    if isinstance(payload, LedgerItem):
        return payload
    if not isinstance(payload, Mapping):
        raise ValidationError("must be an object", path=path)
    currency = default_currency or load_settings().default_currency
    try:
        return LedgerItem.model_validate(
            dict(payload), context={"default_currency": currency}
        )
    except pydantic.ValidationError as e:
        raise ValidationError(_field_errors(e, path)) from None


def normalize_items(
    raw_items: Any,
    *,
    max_items: int,
    allow_empty: bool = False,
    path: str = "items",
    default_currency: str | None = None,
) -> list[LedgerItem]:
    """Validate a list of payloads; the whole list fails if any item fails.

    - ``raw_items`` must be a list/tuple (not a string or mapping).
    - Empty lists are rejected unless ``allow_empty``.
    - More than ``max_items`` entries raises :class:`CapacityError` before any
      item is inspected.
    """

    if isinstance(raw_items, str | bytes) or not isinstance(raw_items, Sequence):
        raise ValidationError("must be an array", path=path)
    if not allow_empty and len(raw_items) == 0:
        raise ValidationError("must not be empty", path=path)
    if len(raw_items) > max_items:
        raise CapacityError(f"too many items, max {max_items} allowed", path=path)

    items: list[LedgerItem] = []
    errors: list[FieldError] = []
    for index, raw in enumerate(raw_items):
        try:
            items.append(
                validate_item(raw, path=f"{path}[{index}]", default_currency=default_currency)
            )
        except ValidationError as e:
            errors.extend(e.errors)
    if errors:
        raise ValidationError(errors)
    return items


def validate_patch(
    current: LedgerItem, patch: Mapping[str, Any], *, default_currency: str | None = None
) -> LedgerItem:
    """Apply a partial update to ``current`` and re-validate the merged entry.

    Only :data:`EDITABLE_TRANSACTION_FIELDS` may appear in ``patch``. Fields
    that are present are validated exactly like a full entry; ``currency``
    may not be blanked.
    """

    if not isinstance(patch, Mapping):
        raise ValidationError("must be an object", path="patch")
    unknown = sorted(k for k in patch if k not in EDITABLE_TRANSACTION_FIELDS)
    if unknown:
        raise ValidationError(
            [FieldError(str(k), "is not an editable field") for k in unknown]
        )
    if "currency" in patch and not (isinstance(patch["currency"], str) and patch["currency"].strip()):
        raise ValidationError("must be a non-empty string", path="currency")
    merged = current.to_json_dict()
    merged.update(patch)
    return validate_item(merged, default_currency=default_currency)


def normalize_source(source: Any) -> str:
    if not isinstance(source, str) or not source.strip():
        raise ValidationError("is required", path="source")
    s = source.strip()
    if s not in SUPPORTED_DRAFT_SOURCES:
        raise ValidationError(
            f"unsupported source, expected one of {sorted(SUPPORTED_DRAFT_SOURCES)}",
            path="source",
        )
    return s


def normalize_lang(lang: Any) -> str | None:
    if lang is None:
        return None
    if not isinstance(lang, str):
        raise ValidationError("must be a string", path="lang")
    s = lang.strip().lower()
    if not s:
        return None
    if s not in SUPPORTED_LANGS:
        raise ValidationError("unsupported lang value", path="lang")
    return s


def normalize_title(title: Any) -> str | None:
    if title is None:
        return None
    if not isinstance(title, str):
        raise ValidationError("must be a string", path="title")
    return title.strip() or None


def normalize_batch_key(batch_key: Any) -> str:
    if not isinstance(batch_key, str) or not batch_key.strip():
        raise ValidationError("is required", path="batch_key")
    s = batch_key.strip()
    if len(s) > MAX_BATCH_KEY_LENGTH:
        raise ValidationError(
            f"must be at most {MAX_BATCH_KEY_LENGTH} characters", path="batch_key"
        )
    return s


def normalize_owner(owner_id: Any) -> str:
    if not isinstance(owner_id, str) or not owner_id.strip():
        raise ValidationError("is required", path="owner_id")
    return owner_id.strip()


__all__ = [
    "EDITABLE_TRANSACTION_FIELDS",
    "SUPPORTED_DRAFT_SOURCES",
    "SUPPORTED_LANGS",
    "normalize_batch_key",
    "normalize_items",
    "normalize_lang",
    "normalize_owner",
    "normalize_source",
    "normalize_title",
    "validate_item",
    "validate_patch",
]
