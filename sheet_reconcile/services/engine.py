from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from ..db.errors import StoreUnavailableError
from ..db.ports import ArchiveStore, MasterRecordStore, StagedContentStore
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.classification import (
    ApplyOutcome,
    ClassificationResult,
    ClassifiedRecord,
    DisagreementRecord,
    MatchRecord,
    NewRecord,
    UserDecision,
)
from ..models.config_models import ReconciliationConfig
from .classifier import identify_matching_records
from .decisions import KeyLockRegistry, process_user_decisions

"""Reconciliation engine facade.

Binds the three stores, the key column configuration and one shared key lock
registry, and exposes the three engine operations:

- ``identify_matching_records(archive_id)``: classify (read-only, repeatable)
- ``process_user_decisions(new, match, disagreement)``: mutate master data
- ``cleanup_indexed_content(archive_id)``: purge staged cells (idempotent)

One engine instance may serve several archives at once; only master store
writes are serialized, per key.
"""

__all__ = [
    "DecisionPairs",
    "ReconciliationEngine",
    "pair_decisions",
]

logger = logging.getLogger(__name__)

DecisionPairs = tuple[
    list[tuple[NewRecord, UserDecision]],
    list[tuple[MatchRecord, UserDecision]],
    list[tuple[DisagreementRecord, UserDecision]],
]


def pair_decisions(
    result: ClassificationResult,
    decide: Callable[[ClassifiedRecord], UserDecision | None],
) -> DecisionPairs:
    """Build the three decision lists by asking ``decide`` for every record.

    ``None`` from ``decide`` leaves the record out (untouched, not reviewed).
    """
    def _pairs(records: Iterable[ClassifiedRecord]) -> list:
        out = []
        for r in records:
            d = decide(r)
            if d is not None:
                out.append((r, UserDecision.parse(d)))
        return out

    return (
        _pairs(result.new_records),
        _pairs(result.match_records),
        _pairs(result.disagreement_records),
    )


class ReconciliationEngine:
    def __init__(
        self,
        archive_store: ArchiveStore,
        content_store: StagedContentStore,
        master_store: MasterRecordStore,
        config: ReconciliationConfig | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.archive_store = archive_store
        self.content_store = content_store
        self.master_store = master_store
        self.config = config if config is not None else ReconciliationConfig()
        self.error_log = error_log
        self.locks = KeyLockRegistry()

    def key_column_for(self, archive_id: int, key_column: str | None = None) -> str | None:
        """Explicit argument > per-file override > global setting > first column (None)."""
        if key_column is not None:
            return key_column
        if self.config.key_column_overrides:
            archive = self.archive_store.get_archive(archive_id)
            if archive is not None:
                return self.config.key_column_for(archive.file_name)
        return self.config.key_column

    def identify_matching_records(
        self, archive_id: int, key_column: str | None = None
    ) -> ClassificationResult:
        return identify_matching_records(
            archive_id,
            content_store=self.content_store,
            master_store=self.master_store,
            archive_store=self.archive_store,
            key_column=self.key_column_for(archive_id, key_column),
            error_log=self.error_log,
        )

    def process_user_decisions(
        self,
        new_decisions: Iterable[tuple[NewRecord, UserDecision]] = (),
        match_decisions: Iterable[tuple[MatchRecord, UserDecision]] = (),
        disagreement_decisions: Iterable[tuple[DisagreementRecord, UserDecision]] = (),
    ) -> ApplyOutcome:
        return process_user_decisions(
            new_decisions,
            match_decisions,
            disagreement_decisions,
            master_store=self.master_store,
            locks=self.locks,
            error_log=self.error_log,
        )

    def cleanup_indexed_content(self, archive_id: int) -> int:
        """Purge staged content of the archive; master data is not touched.

        Safe without a prior ``process_user_decisions`` (cancelled review) and
        safe to repeat. Returns the number of staged cells removed.
        """
        try:
            deleted = self.content_store.delete_indexed_content(archive_id)
        except StoreUnavailableError as e:
            logger.error("cleanup of archive_id=%s failed: %s", archive_id, e)
            if self.error_log is not None:
                self.error_log.append(
                    ErrorRecord.create(
                        archive_id=archive_id,
                        file="<ARCHIVE_LEVEL>",
                        row=-1,
                        error_type="CLEANUP_FAILED",
                        message=str(e),
                    )
                )
            raise
        logger.info("Indexed content cleaned up for archive_id=%s (%d cells)", archive_id, deleted)
        return deleted
