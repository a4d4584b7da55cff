"""Pytest configuration for test isolation.

Every test gets its own file-backed SQLite database (``db_url`` fixture) and
a clean view of the ``FINANCE_LEDGER_*`` environment, so limits or defaults
set in a developer's shell or ``.env`` never leak into assertions.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Make the workspace packages importable without installing the project:
# ``packages/`` holds ``finance_ledger`` and ``libs/db/src`` holds ``db``.
_ROOT = Path(__file__).resolve().parents[1]
_PATHS = [_ROOT / "packages", _ROOT / "libs" / "db" / "src", _ROOT]
sys.path[:0] = [str(p) for p in _PATHS if str(p) not in sys.path]

from db.client import dispose_engines  # noqa: E402

from tests.helpers.db import bootstrap_sqlite_db  # noqa: E402

_ENV_VARS = (
    "DATABASE_URL",
    "OPENAI_API_KEY",
    "FINANCE_LEDGER_MAX_DRAFT_ITEMS",
    "FINANCE_LEDGER_MAX_BATCH_ROWS",
    "FINANCE_LEDGER_DEFAULT_CURRENCY",
    "FINANCE_LEDGER_LLM_MODEL",
    "FINANCE_LEDGER_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def db_url(tmp_path: Path) -> Iterator[str]:
    """URL of a fresh SQLite database with the ledger schema."""

    url = bootstrap_sqlite_db(tmp_path / "ledger.sqlite3")
    yield url
    dispose_engines()
