from __future__ import annotations

import logging

from ..db.ports import ArchiveStore, MasterRecordStore, StagedContentStore
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.archive import UNKNOWN_FILE_NAME
from ..models.classification import (
    ClassificationResult,
    DisagreementRecord,
    MatchRecord,
    NewRecord,
)
from ..models.staged_row import StagedRow
from .discrepancy import ARROW, describe_discrepancies, find_discrepancies
from .errors import KeyColumnError
from .payload import MalformedPayloadError, decode_payload
from .progress import RowProgress

"""Classification of staged rows against the master record set.

Every staged row of the archive ends up in exactly one of the three result
lists. The pass is read-only: it may be repeated any number of times before
decisions are applied.

Per row:
1. derive the unique key from the key column (blank key -> NEW, no lookup)
2. look the key up in the master store
3. no record -> NEW; record -> decode, align, compare -> MATCH / DISAGREEMENT

Store failures propagate (``StoreUnavailableError``). A master payload that
cannot be decoded only affects its own row, which is reported as a
disagreement on every column.
"""

__all__ = [
    "UNREADABLE_VALUE",
    "resolve_key_index",
    "classify_row",
    "identify_matching_records",
]

logger = logging.getLogger(__name__)

UNREADABLE_VALUE = "<unreadable>"


def resolve_key_index(archive_id: int, columns: tuple[str, ...], key_column: str | None) -> int:
    """Position of the key column; first column when none is configured."""
    if key_column is None:
        return 0
    try:
        return columns.index(key_column)
    except ValueError:
        raise KeyColumnError(archive_id, key_column, columns) from None


def classify_row(
    row: StagedRow,
    key_index: int,
    file_name: str,
    master_store: MasterRecordStore,
    error_log: ErrorLogBuffer | None = None,
) -> NewRecord | MatchRecord | DisagreementRecord:
    key = row.values[key_index].strip() if key_index < len(row.values) else ""
    base = dict(
        archive_id=row.archive_id,
        file_name=file_name,
        row_number=row.row_number,
        unique_key=key,
        columns=row.columns,
        new_values=row.values,
    )
    if not key:
        # 空キーは照合不可 -> 常に NEW
        return NewRecord(**base)

    master = master_store.get_record(key)
    if master is None:
        return NewRecord(**base)

    try:
        existing = decode_payload(master.data, row.columns)
    except MalformedPayloadError as e:
        logger.warning(
            "archive_id=%s row=%s key=%r: malformed master payload (%s); all columns flagged",
            row.archive_id, row.row_number, key, e,
        )
        if error_log is not None:
            error_log.append(
                ErrorRecord.create(
                    archive_id=row.archive_id,
                    file=file_name,
                    row=row.row_number,
                    error_type="MALFORMED_MASTER_PAYLOAD",
                    message=f"key {key!r}: {e}",
                )
            )
        return DisagreementRecord(
            **base,
            existing_values=(),
            discrepancy_columns=frozenset(range(len(row.values))),
            discrepancies=tuple(
                f"{col}: {UNREADABLE_VALUE} {ARROW} {val}" for col, val in zip(row.columns, row.values)
            ),
            malformed_master=True,
        )

    diff = find_discrepancies(existing, row.values)
    if not diff:
        return MatchRecord(**base, existing_values=existing)
    return DisagreementRecord(
        **base,
        existing_values=existing,
        discrepancy_columns=diff,
        discrepancies=describe_discrepancies(row.columns, existing, row.values, diff),
    )


def identify_matching_records(
    archive_id: int,
    content_store: StagedContentStore,
    master_store: MasterRecordStore,
    archive_store: ArchiveStore,
    key_column: str | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ClassificationResult:
    """Classify every staged row of ``archive_id``.

    Returns three empty lists when the archive has no staged rows (unknown
    archive, or already cleaned up).

    Raises:
        KeyColumnError: ``key_column`` is given but missing from the header
        StoreUnavailableError: any store read failed
    """
    rows = content_store.get_indexed_content(archive_id)
    if not rows:
        logger.info("archive_id=%s has no staged content; nothing to reconcile", archive_id)
        return ClassificationResult.empty(archive_id)

    archive = archive_store.get_archive(archive_id)
    file_name = archive.file_name if archive is not None and archive.file_name else UNKNOWN_FILE_NAME

    key_index = resolve_key_index(archive_id, rows[0].columns, key_column)
    logger.debug(
        "archive_id=%s rows=%d key_column=%r (index %d)",
        archive_id, len(rows), rows[0].columns[key_index] if rows[0].columns else None, key_index,
    )

    result = ClassificationResult.empty(archive_id)
    with RowProgress(len(rows), description=f"Classifying {file_name}") as progress:
        for row in rows:
            record = classify_row(row, key_index, file_name, master_store, error_log)
            if isinstance(record, NewRecord):
                result.new_records.append(record)
            elif isinstance(record, MatchRecord):
                result.match_records.append(record)
            else:
                result.disagreement_records.append(record)
            progress.advance(
                new=len(result.new_records),
                match=len(result.match_records),
                disagreement=len(result.disagreement_records),
            )

    logger.info(
        "Identified %d new records, %d matches and %d disagreements for archive_id=%s",
        len(result.new_records), len(result.match_records), len(result.disagreement_records), archive_id,
    )
    return result
