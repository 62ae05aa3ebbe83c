from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from ..models.archive import ArchiveRecord
from ..models.master_record import MasterRecord
from ..models.staged_row import StagedCell, StagedRow

"""Store contracts consumed by the reconciliation engine.

The PostgreSQL stores in this package implement them; tests plug in-memory
fakes. All methods raise ``StoreUnavailableError`` on I/O failure and
report "not found" through their return value, never by raising.
"""

__all__ = [
    "ArchiveStore",
    "StagedContentStore",
    "MasterRecordStore",
]


class ArchiveStore(Protocol):
    def create_archive(
        self, file_name: str, uploaded_by: str, file_path: str, upload_date: datetime
    ) -> ArchiveRecord: ...

    def get_archive(self, archive_id: int) -> ArchiveRecord | None: ...

    def list_archives(self) -> list[ArchiveRecord]: ...


class StagedContentStore(Protocol):
    def add_indexed_content(self, cells: Sequence[StagedCell]) -> int: ...

    def get_indexed_content(self, archive_id: int) -> list[StagedRow]: ...

    def delete_indexed_content(self, archive_id: int) -> int: ...


class MasterRecordStore(Protocol):
    def get_record(self, unique_key: str) -> MasterRecord | None: ...

    def add_record(self, unique_key: str, data: str) -> None: ...

    def update_record(self, unique_key: str, data: str) -> bool: ...
