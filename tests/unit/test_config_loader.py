from __future__ import annotations

from pathlib import Path

import pytest

from sheet_reconcile.config.loader import ConfigError, load_config


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.archive_directory == "./archive"
    assert cfg.uploaded_by == "tester"
    assert cfg.header_row == 1
    assert cfg.sheet_name is None
    assert cfg.reconciliation.key_column == "Name"
    assert cfg.reconciliation.key_column_for("orders.xlsx") == "OrderId"
    assert cfg.reconciliation.key_column_for("people.xlsx") == "Name"
    assert cfg.database.port == 5432


def test_load_config_defaults(temp_workdir: Path):
    path = temp_workdir / "config" / "reconcile.yml"
    path.write_text("archive_directory: ./archive\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.uploaded_by == "operator"
    assert cfg.reconciliation.key_column is None
    assert cfg.reconciliation.key_column_overrides == {}
    assert cfg.database.dsn is None


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="config file not found"):
        load_config(temp_workdir / "config" / "nope.yml")


def test_load_config_invalid_yaml(temp_workdir: Path):
    path = temp_workdir / "config" / "reconcile.yml"
    path.write_text("archive_directory: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(path)


@pytest.mark.parametrize(
    "body",
    [
        "uploaded_by: x\n",  # archive_directory required
        "archive_directory: ./a\nunknown_key: 1\n",
        "archive_directory: ./a\nheader_row: 0\n",
        "archive_directory: ./a\nreconciliation:\n  key_column: 5\n",
        "- just\n- a list\n",
    ],
)
def test_load_config_validation_failures(temp_workdir: Path, body: str):
    path = temp_workdir / "config" / "reconcile.yml"
    path.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(path)
