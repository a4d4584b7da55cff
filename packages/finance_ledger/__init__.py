"""finance_ledger package.

Draft lifecycle, idempotent ledger commits, relative period resolution and
spending aggregation on top of the shared ``db`` library. The caller-facing
operations live in :mod:`finance_ledger.api`; the per-session building blocks
(``drafts``, ``ledger_writer``, ``apply``, ``aggregation``, ...) accept an
open SQLAlchemy session.
"""

from .errors import (
    CapacityError,
    IllegalTransitionError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from .models import (
    Analytics,
    ApplyResult,
    AssistantAnswer,
    CommitResult,
    DraftDetails,
    DraftSummary,
    LedgerItem,
    ParseResult,
    Period,
    Summary,
    TransactionPage,
    TransactionView,
)
from .periods import resolve_period

__all__ = [
    "Analytics",
    "ApplyResult",
    "AssistantAnswer",
    "CapacityError",
    "CommitResult",
    "DraftDetails",
    "DraftSummary",
    "IllegalTransitionError",
    "LedgerError",
    "LedgerItem",
    "NotFoundError",
    "ParseResult",
    "Period",
    "Summary",
    "TransactionPage",
    "TransactionView",
    "ValidationError",
    "resolve_period",
]
