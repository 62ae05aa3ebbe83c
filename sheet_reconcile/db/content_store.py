from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from ..models.staged_row import StagedCell, StagedRow, group_cells
from .batch_insert import BatchInsertError, BatchMetrics, batch_insert
from .errors import StoreUnavailableError

"""PostgreSQL Staged Content Store (``content_index``).

Rows are partitioned by ``archive_id``; nothing here ever reads or deletes
across archives.
"""

__all__ = [
    "CONTENT_COLUMNS",
    "PgStagedContentStore",
]

logger = logging.getLogger(__name__)

CONTENT_COLUMNS = ("archive_id", "sheet_name", "row_number", "column_index", "column_name", "cell_value")


class PgStagedContentStore:
    def __init__(
        self,
        cursor: Any,
        page_size: int = 1000,
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> None:
        self._cursor = cursor
        self._page_size = page_size
        self._metrics_callback = metrics_callback

    def add_indexed_content(self, cells: Sequence[StagedCell]) -> int:
        """Insert staged cells; the caller owns the transaction boundary."""
        rows = [
            (c.archive_id, c.sheet_name, c.row_number, c.column_index, c.column_name, c.cell_value)
            for c in cells
        ]
        try:
            return batch_insert(
                self._cursor,
                "content_index",
                CONTENT_COLUMNS,
                rows,
                page_size=self._page_size,
                metrics_callback=self._metrics_callback,
            )
        except BatchInsertError as e:
            raise StoreUnavailableError("index content", e) from e

    def get_indexed_content(self, archive_id: int) -> list[StagedRow]:
        """Staged rows of one archive, ascending row number; empty when none."""
        try:
            self._cursor.execute(
                "SELECT archive_id, sheet_name, row_number, column_index, column_name, cell_value "
                "FROM content_index WHERE archive_id = %s ORDER BY row_number, column_index",
                (archive_id,),
            )
            raw = self._cursor.fetchall()
        except Exception as e:
            raise StoreUnavailableError(f"get indexed content {archive_id}", e) from e
        cells = [
            StagedCell(
                archive_id=int(r[0]),
                sheet_name=r[1] or "",
                row_number=int(r[2]),
                column_index=int(r[3]),
                column_name=r[4] or "",
                cell_value=r[5] if r[5] is not None else "",
            )
            for r in raw
        ]
        return group_cells(cells)

    def delete_indexed_content(self, archive_id: int) -> int:
        """Delete every staged cell of the archive; returns deleted cell count (0 if already clean)."""
        try:
            self._cursor.execute("DELETE FROM content_index WHERE archive_id = %s", (archive_id,))
        except Exception as e:
            raise StoreUnavailableError(f"delete indexed content {archive_id}", e) from e
        deleted = max(int(self._cursor.rowcount or 0), 0)
        logger.debug("deleted %d staged cells for archive_id=%s", deleted, archive_id)
        return deleted
