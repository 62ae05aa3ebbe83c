from __future__ import annotations

from sheet_reconcile.services import progress as progress_mod
from sheet_reconcile.services.progress import RowProgress


def test_progress_disabled_outside_tty(monkeypatch):
    monkeypatch.setattr(progress_mod, "is_tty_enabled", lambda: False)
    with RowProgress(10) as p:
        p.advance()
        p.advance(2, new=1)
        assert p.pbar is None
    assert p.current_row == 3


def test_progress_disabled_for_zero_rows(monkeypatch):
    monkeypatch.setattr(progress_mod, "is_tty_enabled", lambda: True)
    p = RowProgress(0)
    assert p.enabled is False
    p.close()


def test_progress_bar_in_tty(monkeypatch):
    monkeypatch.setattr(progress_mod, "is_tty_enabled", lambda: True)
    p = RowProgress(3, description="Classifying people.xlsx")
    assert p.pbar is not None
    p.advance(new=1, match=0)
    assert p.pbar.n == 1
    p.close()
    assert p.pbar is None
