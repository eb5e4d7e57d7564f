from __future__ import annotations

from modules.equipment_loans.__main__ import main
from modules.equipment_loans.sql_repository import dispose_engines


def test_init_db_creates_file(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("LOANS_DATA_DIR", str(tmp_path))
    try:
        assert main(["init-db"]) == 0
    finally:
        dispose_engines()
    assert (tmp_path / "equipment_loans.db").exists()
    assert "Tables ready" in capsys.readouterr().out


def test_sweep_with_explicit_now(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("LOANS_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("LOANS_STORAGE", "memory")
    assert main(["sweep", "--now", "2024-03-10T06:00:00Z"]) == 0
    out = capsys.readouterr().out
    assert "Scanned 0 open loan(s) at 2024-03-10T06:00:00+00:00" in out
