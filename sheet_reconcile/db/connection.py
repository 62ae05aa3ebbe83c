from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..models.config_models import DatabaseConfig
from .errors import StoreUnavailableError

"""psycopg2 connection handling.

接続情報の解決優先順位:
    1. `.env` で読み込まれた環境変数 (override で既存値を上書き)
       - DATABASE_URL / PGDSN があれば DSN 全体をそのまま使用
       - 個別 PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    2. config の database セクション (不足分のフォールバック)

Connections run in autocommit mode: single statements (upsert, update,
delete) commit on their own, and multi-statement units open an explicit
``BEGIN``/``COMMIT`` block through ``transaction``.
"""

__all__ = [
    "load_env_file",
    "resolve_dsn",
    "db_connection",
    "transaction",
]

logger = logging.getLogger(__name__)


def load_env_file(path: Path, override: bool = True) -> bool:
    """Load ``.env`` with python-dotenv; returns whether the file existed."""
    if not path.exists():
        return False
    load_dotenv(dotenv_path=path, override=override)
    return True


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    dsn_env = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn_env:
        return dsn_env
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def db_connection(db_cfg: DatabaseConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield a cursor on a fresh autocommit connection; closes both on exit."""
    dsn = resolve_dsn(db_cfg)
    try:
        conn = psycopg2.connect(dsn)
    except psycopg2.Error as e:
        raise StoreUnavailableError("connect", e) from e
    conn.autocommit = True
    cur = conn.cursor()
    try:
        yield cur
    finally:
        try:
            cur.close()
        finally:
            conn.close()


@contextmanager
def transaction(cursor: Any) -> Iterator[Any]:
    """Explicit transaction block on an autocommit cursor.

    COMMIT on normal exit; ROLLBACK and re-raise on any exception. A failed
    rollback is logged and does not mask the original error.
    """
    cursor.execute("BEGIN")
    try:
        yield cursor
    except BaseException:
        try:
            cursor.execute("ROLLBACK")
        except Exception:
            logger.warning("rollback failed", exc_info=True)
        raise
    else:
        cursor.execute("COMMIT")
