from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.classification import ApplyOutcome, ClassifiedRecord

"""Reconciliation exceptions."""

__all__ = [
    "ReconciliationError",
    "KeyColumnError",
    "DecisionApplicationError",
    "InvalidTransitionError",
]


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""


class KeyColumnError(ReconciliationError):
    """The configured key column is not part of the archive header."""

    def __init__(self, archive_id: int, key_column: str, columns: tuple[str, ...]) -> None:
        self.archive_id = archive_id
        self.key_column = key_column
        self.columns = columns
        super().__init__(
            f"archive {archive_id}: key column '{key_column}' not in header {list(columns)}"
        )


class DecisionApplicationError(ReconciliationError):
    """A store failure stopped decision application part way.

    ``outcome`` counts what was applied before the failure; ``record`` is the
    record whose mutation failed. The original store error is ``__cause__``.
    """

    def __init__(self, record: ClassifiedRecord, outcome: ApplyOutcome, cause: BaseException) -> None:
        self.record = record
        self.outcome = outcome
        super().__init__(
            f"decision for archive {record.archive_id} row {record.row_number} "
            f"(key {record.unique_key!r}) failed after {outcome.processed} processed: {cause}"
        )


class InvalidTransitionError(ReconciliationError):
    """A review session operation is not allowed in the current state."""
