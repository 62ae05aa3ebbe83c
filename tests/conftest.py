# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from sheet_reconcile.logging.init import reset_logging
from sheet_reconcile.services.engine import ReconciliationEngine
from tests.support.memory_stores import MemoryArchiveStore, MemoryContentStore, MemoryMasterStore


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """archive_directory: ./archive
uploaded_by: tester
header_row: 1
reconciliation:
  key_column: Name
  key_column_overrides:
    orders.xlsx: OrderId
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "reconcile.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def archive_store() -> MemoryArchiveStore:
    return MemoryArchiveStore()


@pytest.fixture()
def content_store() -> MemoryContentStore:
    return MemoryContentStore()


@pytest.fixture()
def master_store() -> MemoryMasterStore:
    return MemoryMasterStore()


@pytest.fixture()
def engine(archive_store, content_store, master_store) -> ReconciliationEngine:
    return ReconciliationEngine(archive_store, content_store, master_store)


@pytest.fixture()
def people_archive(archive_store, content_store) -> int:
    """Archive 'people.xlsx' staged with John/25 and Jane/30."""
    from datetime import UTC, datetime

    archive = archive_store.create_archive(
        file_name="people.xlsx",
        uploaded_by="tester",
        file_path="/archive/x_people.xlsx",
        upload_date=datetime(2024, 1, 1, tzinfo=UTC),
    )
    content_store.stage_rows(archive.archive_id, ["Name", "Age"], [["John", "25"], ["Jane", "30"]])
    return archive.archive_id


@pytest.fixture()
def cli_stores(monkeypatch, archive_store, content_store, master_store):
    """Route the CLI's store factory to the in-memory fakes."""
    from contextlib import contextmanager

    import sheet_reconcile.cli.__main__ as cli_mod

    stores = cli_mod.Stores(
        cursor=None,
        archive_store=archive_store,
        content_store=content_store,
        master_store=master_store,
    )

    @contextmanager
    def fake_open_stores(cfg):
        yield stores

    monkeypatch.setattr(cli_mod, "_open_stores", fake_open_stores)
    return stores
