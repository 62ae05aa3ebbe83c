from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""Batched INSERT via ``psycopg2.extras.execute_values``.

Used for staging cells: one spreadsheet easily yields tens of thousands of
``content_index`` rows, so they go out in pages rather than one statement
per cell. Table and column names are trusted constants of the caller.
"""

__all__ = [
    "BatchInsertError",
    "BatchMetrics",
    "batch_insert",
]


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Timing of one ``batch_insert`` call."""
    batch_size: int  # Number of rows in this batch
    elapsed_seconds: float  # Time spent on execute_values call
    start_time: float  # time.time() at start
    end_time: float  # time.time() at end


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    page_size: int = 1000,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> int:
    """Insert ``rows`` into ``table`` and return the number of rows sent.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: 対象テーブル名 (サニタイズ済み想定)
    columns: 挿入列
    rows: 行シーケンス
    page_size: execute_values の page_size
    metrics_callback: receives one ``BatchMetrics`` per call. Not invoked
        when ``rows`` is empty (the function returns early).
    """
    rows_list = list(rows)
    if not rows_list:
        return 0

    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"

    start_time = time.time()
    try:
        execute_values(cursor, sql, rows_list, page_size=page_size)
    except Exception as e:
        raise BatchInsertError(str(e)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(rows_list),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )
    return len(rows_list)
