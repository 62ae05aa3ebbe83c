from __future__ import annotations

import argparse
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from sheet_reconcile.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from sheet_reconcile.db.archive_store import PgArchiveStore
from sheet_reconcile.db.connection import db_connection, load_env_file
from sheet_reconcile.db.content_store import PgStagedContentStore
from sheet_reconcile.db.errors import StoreUnavailableError
from sheet_reconcile.db.master_store import PgMasterRecordStore
from sheet_reconcile.db.schema import ensure_schema
from sheet_reconcile.logging.error_log import ErrorLogBuffer
from sheet_reconcile.logging.init import log_summary, set_debug, setup_logging
from sheet_reconcile.models.classification import ClassifiedRecord, UserDecision
from sheet_reconcile.models.config_models import AppConfig
from sheet_reconcile.services.engine import ReconciliationEngine
from sheet_reconcile.services.errors import DecisionApplicationError, ReconciliationError
from sheet_reconcile.services.importer import ImportFileError, import_file
from sheet_reconcile.services.session import ReviewSession
from sheet_reconcile.services.summary import render_record_line, render_summary_line

"""CLI entrypoint.

Commands:
- import FILE: archive + stage a spreadsheet/CSV, print its archive id
- archives: list imported archives
- review ID: classify staged rows and list New / Match / Disagreement
- apply ID --decisions FILE: classify, apply decisions, purge staged content
- cleanup ID: discard staged content (abandoned review)

Exit codes: 0 success, 1 fatal (config / store / import), 2 partial apply
failure (some decisions applied, then a store error).
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

DECISIONS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "default": {"type": "string"},
        "new": {"type": "string"},
        "match": {"type": "string"},
        "disagreement": {"type": "string"},
        "rows": {
            "type": "object",
            "patternProperties": {"^[0-9]+$": {"type": "string"}},
            "additionalProperties": False,
        },
    },
}


@dataclass
class Stores:
    cursor: Any
    archive_store: Any
    content_store: Any
    master_store: Any


@contextmanager
def _open_stores(cfg: AppConfig) -> Iterator[Stores]:  # pragma: no cover (thin wrapper; tests patch it)
    with db_connection(cfg.database) as cur:
        ensure_schema(cur)
        yield Stores(
            cursor=cur,
            archive_store=PgArchiveStore(cur),
            content_store=PgStagedContentStore(cur),
            master_store=PgMasterRecordStore(cur),
        )


@dataclass(frozen=True)
class DecisionPlan:
    """Decision lookup loaded from a decisions file."""
    default: UserDecision | None
    per_kind: dict[str, UserDecision]
    rows: dict[int, UserDecision]

    def __call__(self, record: ClassifiedRecord) -> UserDecision | None:
        if record.row_number in self.rows:
            return self.rows[record.row_number]
        return self.per_kind.get(record.kind.value, self.default)


def load_decisions(path: Path) -> DecisionPlan:
    if not path.exists():
        raise ConfigError(f"decisions file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    # YAML の数値キーは int になるので文字列化してから検証
    if isinstance(data, dict) and isinstance(data.get("rows"), dict):
        data["rows"] = {str(k): v for k, v in data["rows"].items()}
    try:
        jsonschema.validate(data, DECISIONS_SCHEMA)
        default = UserDecision.parse(data["default"]) if "default" in data else None
        per_kind = {k: UserDecision.parse(data[k]) for k in ("new", "match", "disagreement") if k in data}
        rows = {int(k): UserDecision.parse(v) for k, v in (data.get("rows") or {}).items()}
    except ValidationError as e:
        raise ConfigError(f"decisions validation failed: {e.message}") from e
    except ValueError as e:
        raise ConfigError(f"decisions validation failed: {e}") from e
    return DecisionPlan(default=default, per_kind=per_kind, rows=rows)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="sheet-reconcile", description="Spreadsheet master record reconciliation")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    sub = p.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Archive and stage a spreadsheet or CSV file")
    imp.add_argument("file", type=Path)
    imp.add_argument("--uploaded-by", default=None)

    sub.add_parser("archives", help="List imported archives")

    rev = sub.add_parser("review", help="Classify staged rows of an archive")
    rev.add_argument("archive_id", type=int)
    rev.add_argument("--key-column", default=None)

    app = sub.add_parser("apply", help="Apply a decisions file to an archive")
    app.add_argument("archive_id", type=int)
    app.add_argument("--decisions", type=Path, required=True)
    app.add_argument("--key-column", default=None)
    app.add_argument("--keep-staged", action="store_true", help="Do not purge staged content afterwards")

    cln = sub.add_parser("cleanup", help="Discard staged content of an archive")
    cln.add_argument("archive_id", type=int)
    return p.parse_args(argv)


def _cmd_import(args: argparse.Namespace, cfg: AppConfig, stores: Stores, logger: Any) -> int:
    result = import_file(
        args.file,
        uploaded_by=args.uploaded_by or cfg.uploaded_by,
        archive_dir=Path(cfg.archive_directory),
        archive_store=stores.archive_store,
        content_store=stores.content_store,
        cursor=stores.cursor,
        sheet_name=cfg.sheet_name,
        header_row=cfg.header_row,
    )
    log_summary(
        f"archive={result.archive.archive_id} file={result.archive.file_name} "
        f"rows={result.staged_rows} cells={result.staged_cells}"
    )
    return EXIT_SUCCESS


def _cmd_archives(stores: Stores, logger: Any) -> int:
    archives = stores.archive_store.list_archives()
    if not archives:
        logger.info("no archives")
    for a in archives:
        logger.info(
            f"archive={a.archive_id} file={a.file_name} uploaded_by={a.uploaded_by} "
            f"date={a.upload_date.isoformat() if a.upload_date else '-'} "
            f"staged_rows={a.row_count} columns={a.column_count}"
        )
    return EXIT_SUCCESS


def _cmd_review(args: argparse.Namespace, engine: ReconciliationEngine, logger: Any) -> int:
    session = ReviewSession(engine, args.archive_id, key_column=args.key_column)
    result = session.classify()
    for record in result.all_records():
        logger.info(render_record_line(record))
    log_summary(render_summary_line(result)[len("SUMMARY "):])
    return EXIT_SUCCESS


def _cmd_apply(args: argparse.Namespace, engine: ReconciliationEngine, logger: Any) -> int:
    plan = load_decisions(args.decisions)
    session = ReviewSession(engine, args.archive_id, key_column=args.key_column)
    result = session.classify()
    try:
        outcome = session.apply(plan)
    except DecisionApplicationError as e:
        logger.error(f"apply: {e}")
        log_summary(render_summary_line(result, e.outcome)[len("SUMMARY "):])
        return EXIT_PARTIAL_FAILURE
    if not args.keep_staged:
        session.cleanup()
    log_summary(render_summary_line(result, outcome)[len("SUMMARY "):])
    return EXIT_SUCCESS


def _cmd_cleanup(args: argparse.Namespace, engine: ReconciliationEngine, logger: Any) -> int:
    session = ReviewSession(engine, args.archive_id)
    deleted = session.cancel()
    logger.info(f"archive={args.archive_id} staged cells removed={deleted}")
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみシステム引数を読む (テストで main([]) を許容)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    error_log = ErrorLogBuffer()
    try:
        with _open_stores(cfg) as stores:
            engine = ReconciliationEngine(
                archive_store=stores.archive_store,
                content_store=stores.content_store,
                master_store=stores.master_store,
                config=cfg.reconciliation,
                error_log=error_log,
            )
            if args.command == "import":
                return _cmd_import(args, cfg, stores, logger)
            if args.command == "archives":
                return _cmd_archives(stores, logger)
            if args.command == "review":
                return _cmd_review(args, engine, logger)
            if args.command == "apply":
                return _cmd_apply(args, engine, logger)
            return _cmd_cleanup(args, engine, logger)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL
    except ImportFileError as e:
        logger.error(f"import: {e}")
        return EXIT_FATAL
    except StoreUnavailableError as e:
        logger.error(f"store: {e}")
        return EXIT_FATAL
    except ReconciliationError as e:
        logger.error(f"reconcile: {e}")
        return EXIT_FATAL
    finally:
        path = error_log.flush()
        if path is not None:
            logger.info(f"error log written: {path}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
