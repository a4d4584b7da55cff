"""Error taxonomy for ledger operations.

Every public operation raises one of these (or lets a database error
propagate). Callers map them to their own transport; the CLI prints the
message and exits non-zero.

``ConflictRace`` is internal to the ledger writer: it marks a lost race for a
batch key and is always resolved into a duplicate result before returning.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FieldError:
    """One offending field, addressed by a path such as ``items[2].amount``."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


class LedgerError(Exception):
    """Base class for ledger errors."""


class ValidationError(LedgerError, ValueError):
    """Malformed, missing or out-of-range input; no state was changed."""

    def __init__(self, errors: list[FieldError] | str, *, path: str = "") -> None:
        if isinstance(errors, str):
            errors = [FieldError(path, errors)]
        self.errors: list[FieldError] = list(errors)
        super().__init__(", ".join(str(e) for e in self.errors))

    @property
    def paths(self) -> list[str]:
        return [e.path for e in self.errors]


class CapacityError(ValidationError):
    """Too many items/rows for one request; rejected before any write."""


class NotFoundError(LedgerError, LookupError):
    """Entity absent or owned by someone else (the two are indistinguishable)."""


class IllegalTransitionError(LedgerError):
    """The draft's status does not allow the requested operation."""


class ConflictRace(LedgerError):
    """Another caller already holds the batch key."""

    def __init__(self, owner_id: str, batch_key: str) -> None:
        self.owner_id = owner_id
        self.batch_key = batch_key
        super().__init__(f"batch key already claimed: owner={owner_id} batch_key={batch_key}")


__all__ = [
    "CapacityError",
    "ConflictRace",
    "FieldError",
    "IllegalTransitionError",
    "LedgerError",
    "NotFoundError",
    "ValidationError",
]
