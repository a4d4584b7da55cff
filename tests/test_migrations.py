from __future__ import annotations

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from db.client import dispose_engines, session_scope
from sqlalchemy import inspect

from finance_ledger.ledger_writer import commit_batch

_ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "libs" / "db" / "alembic"


def _config() -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(_ALEMBIC_DIR))
    return cfg


def test_upgrade_creates_schema_usable_by_writer(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    url = f"sqlite+pysqlite:///{tmp_path / 'migrated.sqlite3'}"
    monkeypatch.setenv("DATABASE_URL", url)
    command.upgrade(_config(), "head")

    try:
        with session_scope(database_url=url) as session:
            names = set(inspect(session.connection()).get_table_names())
            assert {"ledger_transactions", "ledger_drafts", "ledger_import_batches"} <= names
            result = commit_batch(
                session,
                owner_id="u1",
                batch_key="migrated",
                transactions=[
                    {"date": "2024-03-01", "amount": 5, "category": "food", "description": "tea"}
                ],
            )
        assert result.duplicate is False
    finally:
        dispose_engines()

    command.downgrade(_config(), "base")
