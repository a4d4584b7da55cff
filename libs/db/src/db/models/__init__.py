"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger domain models used by ``finance_ledger``.
"""

from .ledger import Base, LedgerDraft, LedgerImportBatch, LedgerTransaction

__all__ = [
    "Base",
    "LedgerDraft",
    "LedgerImportBatch",
    "LedgerTransaction",
]
