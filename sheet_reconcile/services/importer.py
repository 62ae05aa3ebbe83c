from __future__ import annotations

import contextlib
import logging
import shutil
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..db.connection import transaction
from ..db.errors import StoreUnavailableError
from ..db.ports import ArchiveStore, StagedContentStore
from ..excel.reader import (
    SUPPORTED_EXTENSIONS,
    LoadedSheet,
    SheetHeaderError,
    UnsupportedFileError,
    load_file,
)
from ..models.archive import ArchiveRecord
from ..models.staged_row import StagedCell

"""Import step: archive a source file and stage its content.

1. Validate the file exists and has a supported extension
2. Load it (header + text rows) before touching the store
3. Copy it into the archive directory as ``{uuid}_{name}``
4. In one transaction: insert the ``archive_log`` row, then one staged cell
   per (data row, column)

A failure after the copy removes the copy again, and the transaction makes
sure no archive row is left without its staged content. ``cursor=None``
runs without an explicit transaction (in-memory stores).
"""

__all__ = [
    "ImportFileError",
    "ImportResult",
    "build_staged_cells",
    "import_file",
]

logger = logging.getLogger(__name__)


class ImportFileError(Exception):
    """Import or indexing of a source file failed."""


@dataclass(frozen=True)
class ImportResult:
    archive: ArchiveRecord
    staged_rows: int
    staged_cells: int


def build_staged_cells(archive_id: int, sheet: LoadedSheet) -> list[StagedCell]:
    """One cell per (data row, column); row numbers start at 1 after the header."""
    cells: list[StagedCell] = []
    for row_number, values in enumerate(sheet.rows, start=1):
        for column_index, (column_name, value) in enumerate(zip(sheet.columns, values, strict=True)):
            cells.append(
                StagedCell(
                    archive_id=archive_id,
                    sheet_name=sheet.sheet_name,
                    row_number=row_number,
                    column_index=column_index,
                    column_name=column_name,
                    cell_value=value,
                )
            )
    return cells


def import_file(
    path: Path,
    uploaded_by: str,
    archive_dir: Path,
    archive_store: ArchiveStore,
    content_store: StagedContentStore,
    cursor: Any = None,
    sheet_name: str | None = None,
    header_row: int = 1,
) -> ImportResult:
    if not path.exists():
        raise ImportFileError(f"file not found: {path}")
    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise ImportFileError(f"unsupported file type: {path.name}")

    try:
        sheet = load_file(path, sheet_name=sheet_name, header_row=header_row)
    except (SheetHeaderError, UnsupportedFileError) as e:
        raise ImportFileError(str(e)) from e
    except Exception as e:
        raise ImportFileError(f"cannot read {path.name}: {e}") from e

    try:
        archive_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ImportFileError(f"failed to create archive folder {archive_dir}: {e}") from e
    archived_path = archive_dir / f"{uuid.uuid4()}_{path.name}"
    try:
        shutil.copy2(path, archived_path)
    except OSError as e:
        archived_path.unlink(missing_ok=True)
        raise ImportFileError(f"failed to archive {path.name} to {archive_dir}: {e}") from e
    logger.debug("copied %s -> %s", path, archived_path)

    tx = transaction(cursor) if cursor is not None else contextlib.nullcontext()
    try:
        with tx:
            archive = archive_store.create_archive(
                file_name=path.name,
                uploaded_by=uploaded_by,
                file_path=str(archived_path),
                upload_date=datetime.now(UTC),
            )
            cells = build_staged_cells(archive.archive_id, sheet)
            staged = content_store.add_indexed_content(cells)
    except StoreUnavailableError:
        archived_path.unlink(missing_ok=True)
        raise
    except Exception as e:
        archived_path.unlink(missing_ok=True)
        raise ImportFileError(f"error importing {path.name}: {e}") from e

    logger.info(
        "File %s imported with archive_id=%s (%d rows, %d columns)",
        path.name, archive.archive_id, len(sheet.rows), len(sheet.columns),
    )
    return ImportResult(archive=archive, staged_rows=len(sheet.rows), staged_cells=staged)
