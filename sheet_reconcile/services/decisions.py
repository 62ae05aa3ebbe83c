from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from ..db.errors import StoreUnavailableError
from ..db.ports import MasterRecordStore
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.classification import (
    ApplyOutcome,
    ClassifiedRecord,
    DisagreementRecord,
    MatchRecord,
    NewRecord,
    UserDecision,
)
from .errors import DecisionApplicationError
from .payload import encode_payload

"""Application of user decisions to the master record store.

Contract per decision:
- IGNORE: no store access at all
- UPDATE: overwrite the payload at the record's key; a key that no longer
  exists (or a blank key) is skipped, not an error
- ADD_AS_NEW: upsert at the record's key; rows without a key get the
  synthetic key ``archive-{archive_id}-row-{row_number}``

Records are independent: there is no transaction spanning records. Each
store write happens while holding the per-key lock of its key, so two
archives reconciled in parallel cannot interleave on the same key.

The first store failure stops the pass with ``DecisionApplicationError``;
records processed before it stay applied.
"""

__all__ = [
    "KeyLockRegistry",
    "synthetic_key",
    "apply_decision",
    "process_user_decisions",
]

logger = logging.getLogger(__name__)


class KeyLockRegistry:
    """One ``threading.Lock`` per master key while it is held or waited for.

    Each entry counts its holders and waiters; the last one out removes it,
    so the registry only ever contains keys currently being written.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # key -> [lock, users]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


def synthetic_key(record: ClassifiedRecord) -> str:
    return f"archive-{record.archive_id}-row-{record.row_number}"


def apply_decision(
    record: ClassifiedRecord,
    decision: UserDecision,
    master_store: MasterRecordStore,
    locks: KeyLockRegistry,
) -> str:
    """Apply one decision; returns the ``ApplyOutcome`` counter it belongs to."""
    if decision is UserDecision.IGNORE:
        return "ignored"

    payload = encode_payload(record.columns, record.new_values)

    if decision is UserDecision.UPDATE:
        if not record.has_key:
            logger.warning(
                "archive_id=%s row=%s: UPDATE without a key skipped", record.archive_id, record.row_number
            )
            return "skipped"
        with locks.hold(record.unique_key):
            updated = master_store.update_record(record.unique_key, payload)
        if not updated:
            logger.info("key %r no longer in master data; UPDATE skipped", record.unique_key)
            return "skipped"
        logger.debug("updated master record %r", record.unique_key)
        return "updated"

    key = record.unique_key if record.has_key else synthetic_key(record)
    with locks.hold(key):
        master_store.add_record(key, payload)
    logger.debug("added master record %r", key)
    return "added"


def process_user_decisions(
    new_decisions: Iterable[tuple[NewRecord, UserDecision]],
    match_decisions: Iterable[tuple[MatchRecord, UserDecision]],
    disagreement_decisions: Iterable[tuple[DisagreementRecord, UserDecision]],
    master_store: MasterRecordStore,
    locks: KeyLockRegistry | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ApplyOutcome:
    """Apply (record, decision) pairs of all three categories.

    Records not mentioned are left untouched. Each processed record gets
    ``is_reviewed = True``.

    Raises:
        DecisionApplicationError: a store write failed; carries the partial
            ``ApplyOutcome`` and the failing record
        ValueError: a decision cannot be parsed; raised before any write
    """
    if locks is None:
        locks = KeyLockRegistry()
    outcome = ApplyOutcome()

    # 書き込み前に全件を検証する
    pairs: list[tuple[ClassifiedRecord, UserDecision]] = [
        (record, UserDecision.parse(decision))
        for record, decision in (*new_decisions, *match_decisions, *disagreement_decisions)
    ]
    for record, decision in pairs:
        try:
            counter = apply_decision(record, decision, master_store, locks)
        except StoreUnavailableError as e:
            logger.error(
                "archive_id=%s row=%s key=%r: %s failed: %s",
                record.archive_id, record.row_number, record.unique_key, decision.name, e,
            )
            if error_log is not None:
                error_log.append(
                    ErrorRecord.create(
                        archive_id=record.archive_id,
                        file=record.file_name,
                        row=record.row_number,
                        error_type="STORE_UNAVAILABLE",
                        message=str(e),
                    )
                )
            raise DecisionApplicationError(record, outcome, e) from e
        setattr(outcome, counter, getattr(outcome, counter) + 1)
        record.is_reviewed = True

    logger.info(
        "Processed %d decisions: ignored=%d updated=%d added=%d skipped=%d",
        outcome.processed, outcome.ignored, outcome.updated, outcome.added, outcome.skipped,
    )
    return outcome
