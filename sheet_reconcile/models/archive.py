from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""ArchiveRecord model.

An archive is one imported source file plus its upload metadata. The record is
written once by the import step and only read afterwards; reconciliation uses
it to label classified rows with the originating file name.
"""

__all__ = [
    "ArchiveRecord",
    "UNKNOWN_FILE_NAME",
]

# Label used when the archive row has disappeared or has no file name
UNKNOWN_FILE_NAME = "Unknown File"


@dataclass(frozen=True)
class ArchiveRecord:
    """Metadata row of ``archive_log``."""
    archive_id: int  # generated on import
    file_name: str  # original file name (without archive prefix)
    uploaded_by: str
    upload_date: datetime  # UTC
    file_path: str  # path of the archived copy
    row_count: int = 0  # staged data rows (listing only)
    column_count: int = 0  # staged columns (listing only)
