from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from sheet_reconcile.cli import main as cli_main
from sheet_reconcile.cli.__main__ import DecisionPlan, load_decisions
from sheet_reconcile.config.loader import ConfigError
from sheet_reconcile.models.classification import MatchRecord, NewRecord, UserDecision


def test_missing_config_is_fatal(temp_workdir: Path, capsys):
    code = cli_main(["archives"])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_import_command(write_config, cli_stores, temp_workdir: Path, capsys):
    path = temp_workdir / "data" / "people.xlsx"
    pd.DataFrame({"Name": ["John"], "Age": ["25"]}).to_excel(path, index=False)

    code = cli_main(["import", str(path), "--uploaded-by", "carol"])

    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY archive=1 file=people.xlsx rows=1 cells=2" in out
    assert cli_stores.archive_store.archives[1].uploaded_by == "carol"
    assert len(list((temp_workdir / "archive").iterdir())) == 1


def test_import_missing_file_is_fatal(write_config, cli_stores, capsys):
    code = cli_main(["import", "data/missing.xlsx"])
    assert code == 1
    assert "ERROR import: file not found" in capsys.readouterr().out


def test_archives_command(write_config, cli_stores, people_archive, capsys):
    assert cli_main(["archives"]) == 0
    assert f"INFO archive={people_archive} file=people.xlsx uploaded_by=tester" in capsys.readouterr().out


def test_archives_empty(write_config, cli_stores, capsys):
    assert cli_main(["archives"]) == 0
    assert "INFO no archives" in capsys.readouterr().out


def test_review_command(write_config, cli_stores, people_archive, master_store, capsys):
    master_store.add_record("John", json.dumps({"Name": "John", "Age": "24"}))

    code = cli_main(["review", str(people_archive)])

    out = capsys.readouterr().out
    assert code == 0
    assert "INFO DISAGREEMENT row=1 key=John | Age: 24 → 25" in out
    assert f"SUMMARY archive={people_archive} rows=2 new=1 match=0 disagreement=1" in out


def test_review_unknown_key_column_is_fatal(write_config, cli_stores, people_archive, capsys):
    code = cli_main(["review", str(people_archive), "--key-column", "Email"])
    assert code == 1
    assert "ERROR reconcile:" in capsys.readouterr().out


def test_apply_command_applies_and_purges(write_config, cli_stores, people_archive, master_store, temp_workdir, capsys):
    master_store.add_record("John", json.dumps({"Name": "John", "Age": "24"}))
    decisions = temp_workdir / "config" / "decisions.yml"
    decisions.write_text("new: add_as_new\ndisagreement: update\n", encoding="utf-8")

    code = cli_main(["apply", str(people_archive), "--decisions", str(decisions)])

    out = capsys.readouterr().out
    assert code == 0
    assert "updated=1 added=1" in out
    assert json.loads(master_store.records["John"].data)["Age"] == "25"
    assert "Jane" in master_store.records
    assert cli_stores.content_store.cells == []


def test_apply_keep_staged(write_config, cli_stores, people_archive, temp_workdir):
    decisions = temp_workdir / "config" / "decisions.yml"
    decisions.write_text("default: ignore\n", encoding="utf-8")
    assert cli_main(["apply", str(people_archive), "--decisions", str(decisions), "--keep-staged"]) == 0
    assert len(cli_stores.content_store.cells) == 4


def test_cleanup_command(write_config, cli_stores, people_archive, master_store, capsys):
    master_store.add_record("John", "x")
    before = master_store.snapshot()
    assert cli_main(["cleanup", str(people_archive)]) == 0
    assert "staged cells removed=4" in capsys.readouterr().out
    assert master_store.snapshot() == before


def test_debug_flag(write_config, cli_stores, capsys):
    assert cli_main(["--debug", "archives"]) == 0
    assert "DEBUG debug mode enabled" in capsys.readouterr().out


def test_load_decisions(temp_workdir: Path):
    path = temp_workdir / "d.yml"
    path.write_text("default: ignore\nmatch: AddAsNew\nrows:\n  2: update\n", encoding="utf-8")
    plan = load_decisions(path)

    assert plan.rows == {2: UserDecision.UPDATE}
    assert plan(NewRecord(1, "f", 2, "k", ("A",), ("k",))) is UserDecision.UPDATE
    assert plan(MatchRecord(1, "f", 1, "k", ("A",), ("k",))) is UserDecision.ADD_AS_NEW
    assert plan(NewRecord(1, "f", 1, "k", ("A",), ("k",))) is UserDecision.IGNORE


def test_plan_without_default_leaves_records_out():
    plan = DecisionPlan(default=None, per_kind={}, rows={})
    assert plan(NewRecord(1, "f", 1, "k", ("A",), ("k",))) is None


@pytest.mark.parametrize(
    "body, message",
    [
        ("default: delete\n", "unknown decision"),
        ("colour: red\n", "decisions validation failed"),
        ("rows:\n  first: ignore\n", "decisions validation failed"),
        ("default: [\n", "invalid yaml"),
    ],
)
def test_load_decisions_rejects_bad_files(temp_workdir: Path, body: str, message: str):
    path = temp_workdir / "d.yml"
    path.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError, match=message):
        load_decisions(path)


def test_apply_with_missing_decisions_file_is_fatal(write_config, cli_stores, people_archive, capsys):
    code = cli_main(["apply", str(people_archive), "--decisions", "config/none.yml"])
    assert code == 1
    assert "ERROR config: decisions file not found" in capsys.readouterr().out
