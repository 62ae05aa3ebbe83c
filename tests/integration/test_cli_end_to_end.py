from __future__ import annotations

import json
from pathlib import Path

import pandas as pd

from sheet_reconcile.cli import main as cli_main


def test_import_review_apply_cycle(write_config, cli_stores, temp_workdir: Path, capsys):
    master = cli_stores.master_store
    master.add_record("Ann", json.dumps({"Name": "Ann", "Team": "Red"}))
    master.add_record("Ben", json.dumps({"Name": "Ben", "Team": "Blue"}))

    source = temp_workdir / "data" / "teams.xlsx"
    pd.DataFrame({"Name": ["Ann", "Ben", "Cy", ""], "Team": ["Red", "Green", "Blue", "Gold"]}).to_excel(
        source, index=False
    )

    assert cli_main(["import", str(source)]) == 0
    assert cli_main(["archives"]) == 0
    assert cli_main(["review", "1"]) == 0
    out = capsys.readouterr().out
    assert "INFO archive=1 file=teams.xlsx" in out
    assert "SUMMARY archive=1 rows=4 new=2 match=1 disagreement=1" in out
    assert "Team: Blue → Green" in out

    decisions = temp_workdir / "config" / "decisions.yml"
    decisions.write_text("default: ignore\nnew: add_as_new\ndisagreement: update\n", encoding="utf-8")
    assert cli_main(["apply", "1", "--decisions", str(decisions)]) == 0
    out = capsys.readouterr().out
    assert "ignored=1 updated=1 added=2 skipped=0" in out

    assert json.loads(master.records["Ben"].data)["Team"] == "Green"
    assert json.loads(master.records["archive-1-row-4"].data) == {"Name": "", "Team": "Gold"}
    assert "Cy" in master.records

    # applying again finds nothing staged
    assert cli_main(["review", "1"]) == 0
    assert "SUMMARY archive=1 rows=0 new=0 match=0 disagreement=0" in capsys.readouterr().out
