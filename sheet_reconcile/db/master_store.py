from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from ..models.master_record import MasterRecord
from .errors import StoreUnavailableError

"""PostgreSQL Master Record Store (``master_data``).

Key uniqueness is enforced by the UNIQUE constraint; ``add_record`` is an
``INSERT ... ON CONFLICT DO UPDATE`` so a duplicate key overwrites instead of
failing. Both writes are single statements and therefore atomic for readers.
"""

__all__ = [
    "PgMasterRecordStore",
]


class PgMasterRecordStore:
    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor

    def get_record(self, unique_key: str) -> MasterRecord | None:
        try:
            self._cursor.execute(
                "SELECT unique_key, data, created_at, last_updated "
                "FROM master_data WHERE unique_key = %s",
                (unique_key,),
            )
            row = self._cursor.fetchone()
        except Exception as e:
            raise StoreUnavailableError(f"get master record {unique_key!r}", e) from e
        if row is None:
            return None
        return MasterRecord(unique_key=row[0], data=row[1], created_at=row[2], last_updated=row[3])

    def add_record(self, unique_key: str, data: str) -> None:
        now = datetime.now(UTC)
        try:
            self._cursor.execute(
                "INSERT INTO master_data (unique_key, data, created_at, last_updated) "
                "VALUES (%s, %s, %s, %s) "
                "ON CONFLICT (unique_key) DO UPDATE "
                "SET data = EXCLUDED.data, last_updated = EXCLUDED.last_updated",
                (unique_key, data, now, now),
            )
        except Exception as e:
            raise StoreUnavailableError(f"add master record {unique_key!r}", e) from e

    def update_record(self, unique_key: str, data: str) -> bool:
        """Overwrite the payload; False when no row has this key."""
        try:
            self._cursor.execute(
                "UPDATE master_data SET data = %s, last_updated = %s WHERE unique_key = %s",
                (data, datetime.now(UTC), unique_key),
            )
        except Exception as e:
            raise StoreUnavailableError(f"update master record {unique_key!r}", e) from e
        return (self._cursor.rowcount or 0) > 0
