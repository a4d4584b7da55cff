"""DB helpers for tests: bootstrap a temporary SQLite DB and seed ledger rows."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from db import Base
from db.client import get_engine, session_scope
from db.models.ledger import LedgerTransaction
from sqlalchemy import event, func, select


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize the schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections (and
    threads) share the same state; in-memory DBs are per-connection.
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):  # pragma: no cover - tiny bridge
        dbapi_conn.execute("PRAGMA foreign_keys = ON")

    Base.metadata.create_all(bind=engine)

    if set_default_env:
        os.environ.setdefault("DATABASE_URL", url)
    return url


def seed_transactions(
    *, database_url: str, owner_id: str, rows: Iterable[Mapping[str, Any]]
) -> list[str]:
    """Insert ledger rows directly (bypassing the writer) and return their ids."""

    out: list[str] = []
    with session_scope(database_url=database_url) as session:
        for r in rows:
            tx = LedgerTransaction(
                owner_id=owner_id,
                date=r["date"],
                amount=r["amount"],
                currency=r.get("currency", "UAH"),
                category=r["category"],
                description=r.get("description", r["category"]),
                source=r.get("source", "manual"),
                type=r.get("type", "expense"),
            )
            session.add(tx)
            session.flush()
            out.append(tx.id)
    return out


def count_transactions(database_url: str, owner_id: str | None = None) -> int:
    with session_scope(database_url=database_url) as session:
        stmt = select(func.count()).select_from(LedgerTransaction)
        if owner_id is not None:
            stmt = stmt.where(LedgerTransaction.owner_id == owner_id)
        return int(session.execute(stmt).scalar_one())
