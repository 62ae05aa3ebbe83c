from __future__ import annotations

import json
from pathlib import Path

import pandas as pd

from sheet_reconcile.logging.error_log import ErrorLogBuffer
from sheet_reconcile.models.classification import RecordKind, UserDecision
from sheet_reconcile.models.config_models import ReconciliationConfig
from sheet_reconcile.services.engine import ReconciliationEngine
from sheet_reconcile.services.importer import import_file
from sheet_reconcile.services.session import ReviewSession, ReviewState


def _write_xlsx(path: Path, frame: pd.DataFrame) -> Path:
    frame.to_excel(path, index=False)
    return path


def test_two_imports_reconcile_against_shared_master(tmp_path, archive_store, content_store, master_store):
    engine = ReconciliationEngine(
        archive_store,
        content_store,
        master_store,
        config=ReconciliationConfig(key_column="Id"),
        error_log=ErrorLogBuffer(logs_dir=tmp_path / "logs"),
    )
    first_file = _write_xlsx(
        tmp_path / "staff_jan.xlsx",
        pd.DataFrame({"Id": ["E1", "E2"], "Name": ["Ann", "Ben"], "Dept": ["Ops", "IT"]}),
    )
    first = import_file(first_file, "hr", tmp_path / "archive", archive_store, content_store)

    session = ReviewSession(engine, first.archive.archive_id)
    result = session.classify()
    assert [r.kind for r in result.all_records()] == [RecordKind.NEW, RecordKind.NEW]
    session.apply(lambda r: UserDecision.ADD_AS_NEW)
    session.cleanup()

    second_file = _write_xlsx(
        tmp_path / "staff_feb.xlsx",
        pd.DataFrame({"Dept": ["Ops", "HR", "Ops"], "Id": ["E1", "E2", "E3"], "Name": ["Ann", "Ben", "Cy"]}),
    )
    second = import_file(second_file, "hr", tmp_path / "archive", archive_store, content_store)

    session = ReviewSession(engine, second.archive.archive_id)
    result = session.classify()

    # columns were reordered; the stored payload lines up by name
    assert [r.unique_key for r in result.match_records] == ["E1"]
    (dis,) = result.disagreement_records
    assert dis.unique_key == "E2"
    assert dis.discrepancies == ("Dept: IT → HR",)
    assert [r.unique_key for r in result.new_records] == ["E3"]

    outcome = session.apply(
        lambda r: {RecordKind.NEW: UserDecision.ADD_AS_NEW, RecordKind.DISAGREEMENT: UserDecision.UPDATE}.get(r.kind)
    )
    assert (outcome.added, outcome.updated, outcome.processed) == (1, 1, 2)
    assert session.cleanup() == 9
    assert session.state is ReviewState.PURGED

    assert json.loads(master_store.records["E2"].data) == {"Dept": "HR", "Id": "E2", "Name": "Ben"}
    assert sorted(master_store.records) == ["E1", "E2", "E3"]
    assert [a.file_name for a in archive_store.list_archives()] == ["staff_feb.xlsx", "staff_jan.xlsx"]


def test_cancelled_review_keeps_master(tmp_path, engine, archive_store, content_store, master_store):
    path = tmp_path / "people.csv"
    path.write_text("Name,Age\nJohn,25\n", encoding="utf-8")
    imported = import_file(path, "x", tmp_path / "archive", archive_store, content_store)
    master_store.add_record("John", json.dumps({"Name": "John", "Age": "24"}))

    session = ReviewSession(engine, imported.archive.archive_id)
    assert len(session.classify().disagreement_records) == 1
    session.cancel()

    assert json.loads(master_store.records["John"].data)["Age"] == "24"
    assert content_store.get_indexed_content(imported.archive.archive_id) == []
