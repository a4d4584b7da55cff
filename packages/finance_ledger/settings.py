"""Runtime settings read from the environment.

Entrypoints load ``.env`` (``python-dotenv``) before calling
:func:`load_settings`; library code only reads ``os.environ``. Invalid or
non-positive integers fall back to the defaults so a typo in an env var never
disables the capacity limits.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_MAX_DRAFT_ITEMS = 200
DEFAULT_MAX_BATCH_ROWS = 200
DEFAULT_CURRENCY = "UAH"
DEFAULT_LLM_MODEL = "gpt-4o-mini"


@dataclass(frozen=True, slots=True)
class LedgerSettings:
    max_draft_items: int = DEFAULT_MAX_DRAFT_ITEMS
    max_batch_rows: int = DEFAULT_MAX_BATCH_ROWS
    default_currency: str = DEFAULT_CURRENCY
    llm_model: str = DEFAULT_LLM_MODEL


def _env_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        value = int(raw) if raw else None
    except ValueError:
        value = None
    if value is None or value <= 0:
        return default
    return value


def _env_str(name: str, default: str) -> str:
    raw = (os.getenv(name) or "").strip()
    return raw or default


def load_settings() -> LedgerSettings:
    """Build settings from ``FINANCE_LEDGER_*`` environment variables."""

    return LedgerSettings(
        max_draft_items=_env_positive_int(
            "FINANCE_LEDGER_MAX_DRAFT_ITEMS", DEFAULT_MAX_DRAFT_ITEMS
        ),
        max_batch_rows=_env_positive_int("FINANCE_LEDGER_MAX_BATCH_ROWS", DEFAULT_MAX_BATCH_ROWS),
        default_currency=_env_str("FINANCE_LEDGER_DEFAULT_CURRENCY", DEFAULT_CURRENCY).upper(),
        llm_model=_env_str("FINANCE_LEDGER_LLM_MODEL", DEFAULT_LLM_MODEL),
    )


__all__ = [
    "LedgerSettings",
    "load_settings",
]
