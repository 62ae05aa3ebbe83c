from __future__ import annotations

import json

import pytest

from sheet_reconcile.db.errors import StoreUnavailableError
from sheet_reconcile.logging.error_log import ErrorLogBuffer
from sheet_reconcile.models.classification import UserDecision
from sheet_reconcile.models.config_models import ReconciliationConfig
from sheet_reconcile.services.engine import ReconciliationEngine, pair_decisions
from sheet_reconcile.services.errors import KeyColumnError


def test_key_column_precedence(archive_store, content_store, master_store, people_archive):
    cfg = ReconciliationConfig(key_column="Age", key_column_overrides={"people.xlsx": "Name"})
    engine = ReconciliationEngine(archive_store, content_store, master_store, config=cfg)

    assert engine.key_column_for(people_archive, "Explicit") == "Explicit"
    assert engine.key_column_for(people_archive) == "Name"
    # unknown archive: no file name to look up, global setting applies
    assert engine.key_column_for(12345) == "Age"


def test_default_engine_uses_first_column(engine, people_archive):
    assert engine.key_column_for(people_archive) is None
    result = engine.identify_matching_records(people_archive)
    assert [r.unique_key for r in result.new_records] == ["John", "Jane"]


def test_configured_key_column_is_used(archive_store, content_store, master_store, people_archive):
    master_store.add_record("30", json.dumps({"Name": "Jane", "Age": "30"}))
    engine = ReconciliationEngine(
        archive_store, content_store, master_store, config=ReconciliationConfig(key_column="Age")
    )
    result = engine.identify_matching_records(people_archive)
    assert [r.unique_key for r in result.match_records] == ["30"]


def test_configured_key_column_missing_from_header(archive_store, content_store, master_store, people_archive):
    engine = ReconciliationEngine(
        archive_store, content_store, master_store, config=ReconciliationConfig(key_column="Email")
    )
    with pytest.raises(KeyColumnError) as exc:
        engine.identify_matching_records(people_archive)
    assert exc.value.columns == ("Name", "Age")


def test_pair_decisions_skips_none(engine, people_archive, master_store):
    master_store.add_record("John", json.dumps({"Name": "John", "Age": "24"}))
    result = engine.identify_matching_records(people_archive)

    new, match, disagreement = pair_decisions(
        result, lambda r: "update" if r.unique_key == "John" else None
    )

    assert new == []
    assert match == []
    assert [(r.unique_key, d) for r, d in disagreement] == [("John", UserDecision.UPDATE)]


def test_engine_lock_registry_is_empty_after_apply(engine, master_store, people_archive):
    result = engine.identify_matching_records(people_archive)
    engine.process_user_decisions(new_decisions=[(r, UserDecision.ADD_AS_NEW) for r in result.new_records])
    assert sorted(master_store.records) == ["Jane", "John"]
    assert len(engine.locks) == 0


def test_cleanup_is_idempotent_and_scoped(engine, content_store, people_archive):
    content_store.stage_rows(99, ["Name"], [["Other"]])

    assert engine.cleanup_indexed_content(people_archive) == 4
    assert engine.cleanup_indexed_content(people_archive) == 0
    assert engine.identify_matching_records(people_archive).total == 0
    assert engine.identify_matching_records(99).total == 1


def test_cleanup_without_apply_leaves_master_untouched(engine, master_store, people_archive):
    master_store.add_record("John", "x")
    before = master_store.snapshot()
    engine.cleanup_indexed_content(people_archive)
    assert master_store.snapshot() == before


def test_cleanup_failure_is_logged_and_raised(archive_store, content_store, master_store, monkeypatch, tmp_path):
    error_log = ErrorLogBuffer(logs_dir=tmp_path)
    engine = ReconciliationEngine(archive_store, content_store, master_store, error_log=error_log)

    def boom(archive_id):
        raise StoreUnavailableError(f"delete indexed content {archive_id}", "locked")

    monkeypatch.setattr(content_store, "delete_indexed_content", boom)
    with pytest.raises(StoreUnavailableError):
        engine.cleanup_indexed_content(3)
    (rec,) = error_log.records
    assert rec.error_type == "CLEANUP_FAILED"
    assert rec.row == -1
    assert rec.archive_id == 3
