from __future__ import annotations

import logging
from typing import Any

from .errors import StoreUnavailableError

"""Table bootstrap for the three stores.

``ensure_schema`` is safe to run on every start (IF NOT EXISTS everywhere).
"""

__all__ = [
    "SCHEMA_STATEMENTS",
    "ensure_schema",
]

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS archive_log (
        archive_id SERIAL PRIMARY KEY,
        file_name TEXT NOT NULL,
        upload_date TIMESTAMPTZ NOT NULL,
        uploaded_by TEXT NOT NULL,
        file_path TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS content_index (
        content_index_id BIGSERIAL PRIMARY KEY,
        archive_id INTEGER NOT NULL REFERENCES archive_log (archive_id),
        sheet_name TEXT,
        row_number INTEGER NOT NULL,
        column_index INTEGER NOT NULL,
        column_name TEXT,
        cell_value TEXT NOT NULL DEFAULT ''
    )
    """,
    "CREATE INDEX IF NOT EXISTS content_index_archive_idx ON content_index (archive_id, row_number)",
    """
    CREATE TABLE IF NOT EXISTS master_data (
        master_id BIGSERIAL PRIMARY KEY,
        unique_key TEXT UNIQUE NOT NULL,
        data TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        last_updated TIMESTAMPTZ NOT NULL
    )
    """,
)


def ensure_schema(cursor: Any) -> None:
    """Create missing tables and indexes in one transaction."""
    try:
        cursor.execute("BEGIN")
        for stmt in SCHEMA_STATEMENTS:
            cursor.execute(stmt)
        cursor.execute("COMMIT")
    except Exception as e:
        try:
            cursor.execute("ROLLBACK")
        except Exception:  # pragma: no cover
            logger.debug("rollback after schema failure also failed", exc_info=True)
        raise StoreUnavailableError("schema bootstrap", e) from e
    logger.debug("schema ready (%d statements)", len(SCHEMA_STATEMENTS))
