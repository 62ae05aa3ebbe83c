from __future__ import annotations

from datetime import datetime
from typing import Any

from ..models.archive import ArchiveRecord
from .errors import StoreUnavailableError

"""PostgreSQL Archive Store (``archive_log``)."""

__all__ = [
    "PgArchiveStore",
]

_SELECT_COLUMNS = "a.archive_id, a.file_name, a.uploaded_by, a.upload_date, a.file_path"


def _row_to_archive(row: tuple[Any, ...]) -> ArchiveRecord:
    archive_id, file_name, uploaded_by, upload_date, file_path, *counts = row
    row_count, column_count = (counts + [0, 0])[:2]
    return ArchiveRecord(
        archive_id=int(archive_id),
        file_name=file_name or "",
        uploaded_by=uploaded_by or "",
        upload_date=upload_date,
        file_path=file_path or "",
        row_count=int(row_count or 0),
        column_count=int(column_count or 0),
    )


class PgArchiveStore:
    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor

    def create_archive(
        self, file_name: str, uploaded_by: str, file_path: str, upload_date: datetime
    ) -> ArchiveRecord:
        try:
            self._cursor.execute(
                "INSERT INTO archive_log (file_name, upload_date, uploaded_by, file_path) "
                "VALUES (%s, %s, %s, %s) RETURNING archive_id",
                (file_name, upload_date, uploaded_by, file_path),
            )
            (archive_id,) = self._cursor.fetchone()
        except Exception as e:
            raise StoreUnavailableError("create archive", e) from e
        return ArchiveRecord(
            archive_id=int(archive_id),
            file_name=file_name,
            uploaded_by=uploaded_by,
            upload_date=upload_date,
            file_path=file_path,
        )

    def get_archive(self, archive_id: int) -> ArchiveRecord | None:
        try:
            self._cursor.execute(
                f"SELECT {_SELECT_COLUMNS} FROM archive_log a WHERE a.archive_id = %s",
                (archive_id,),
            )
            row = self._cursor.fetchone()
        except Exception as e:
            raise StoreUnavailableError(f"get archive {archive_id}", e) from e
        return _row_to_archive(row) if row is not None else None

    def list_archives(self) -> list[ArchiveRecord]:
        """All archives, newest first, with staged row/column counts (0 once purged)."""
        try:
            self._cursor.execute(
                f"SELECT {_SELECT_COLUMNS}, "
                "COUNT(DISTINCT c.row_number), COUNT(DISTINCT c.column_index) "
                "FROM archive_log a LEFT JOIN content_index c ON c.archive_id = a.archive_id "
                "GROUP BY a.archive_id ORDER BY a.upload_date DESC, a.archive_id DESC"
            )
            rows = self._cursor.fetchall()
        except Exception as e:
            raise StoreUnavailableError("list archives", e) from e
        return [_row_to_archive(r) for r in rows]
