from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Classified record models and the user decision enum.

A reconciliation pass turns every staged row into exactly one classified
record. The three record kinds share one base shape (archive, file, row, key,
column names, new values) and carry a ``kind`` tag, so decision dispatch can
switch on ``record.kind`` instead of on concrete classes.

Classified records are derived views: they are never persisted and are
recomputed on every pass. ``is_reviewed`` is the only mutable field and is
set once a decision for the record has been processed.
"""

__all__ = [
    "RecordKind",
    "UserDecision",
    "ClassifiedRecord",
    "NewRecord",
    "MatchRecord",
    "DisagreementRecord",
    "ClassificationResult",
    "ApplyOutcome",
]


class RecordKind(Enum):
    """Classification tag.

    - NEW: derived key has no master record
    - MATCH: master record exists and every compared field is equal
    - DISAGREEMENT: master record exists and at least one field differs
    """
    NEW = "new"
    MATCH = "match"
    DISAGREEMENT = "disagreement"


class UserDecision(Enum):
    """Decision recorded for one classified record."""
    IGNORE = "ignore"  # leave the master store untouched
    UPDATE = "update"  # overwrite the master payload at the derived key
    ADD_AS_NEW = "add_as_new"  # insert (upsert) a master record

    @classmethod
    def parse(cls, value: str | UserDecision) -> UserDecision:
        """Accept enum members, values or names in any case (``AddAsNew`` too)."""
        if isinstance(value, UserDecision):
            return value
        norm = str(value).strip().replace("-", "_").lower()
        if norm == "addasnew":
            norm = "add_as_new"
        for member in cls:
            if member.value == norm:
                return member
        raise ValueError(f"unknown decision: {value!r}")


@dataclass(eq=False)
class ClassifiedRecord:
    """Shared shape of all classified records."""
    archive_id: int
    file_name: str
    row_number: int  # staged row number within the archive
    unique_key: str  # derived key; empty string when the key cell was blank
    columns: tuple[str, ...]  # staged header, in source order
    new_values: tuple[str, ...]  # staged values, aligned with ``columns``
    is_reviewed: bool = field(default=False, kw_only=True)

    kind: RecordKind = field(init=False, default=RecordKind.NEW)

    @property
    def has_key(self) -> bool:
        return bool(self.unique_key.strip())

    @property
    def field_values(self) -> tuple[str, ...]:
        return self.new_values


@dataclass(eq=False)
class NewRecord(ClassifiedRecord):
    """Staged row whose key has no master record."""

    def __post_init__(self) -> None:
        self.kind = RecordKind.NEW


@dataclass(eq=False)
class MatchRecord(ClassifiedRecord):
    """Staged row identical to its master record (still presented for review)."""
    existing_values: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        self.kind = RecordKind.MATCH


@dataclass(eq=False)
class DisagreementRecord(ClassifiedRecord):
    """Staged row whose master record differs in one or more columns."""
    existing_values: tuple[str, ...] = ()
    discrepancy_columns: frozenset[int] = frozenset()
    discrepancies: tuple[str, ...] = ()  # "column: old → new"
    malformed_master: bool = False  # master payload could not be decoded

    def __post_init__(self) -> None:
        self.kind = RecordKind.DISAGREEMENT


@dataclass(frozen=True)
class ClassificationResult:
    """The three ordered lists of one reconciliation pass."""
    archive_id: int
    new_records: list[NewRecord]
    match_records: list[MatchRecord]
    disagreement_records: list[DisagreementRecord]

    @property
    def total(self) -> int:
        return len(self.new_records) + len(self.match_records) + len(self.disagreement_records)

    def all_records(self) -> list[ClassifiedRecord]:
        """Every classified record ordered by staged row number."""
        records: list[ClassifiedRecord] = [
            *self.new_records,
            *self.match_records,
            *self.disagreement_records,
        ]
        return sorted(records, key=lambda r: r.row_number)

    @classmethod
    def empty(cls, archive_id: int) -> ClassificationResult:
        return cls(archive_id=archive_id, new_records=[], match_records=[], disagreement_records=[])


@dataclass
class ApplyOutcome:
    """Counters of one decision-application pass."""
    ignored: int = 0
    updated: int = 0
    added: int = 0
    skipped: int = 0  # UPDATE on a missing key, or UPDATE without a key

    @property
    def processed(self) -> int:
        return self.ignored + self.updated + self.added + self.skipped
