from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from adminstore.core.sqlite_db import SqliteDB


def _pragma(con: sqlite3.Connection, name: str) -> int | str:
    row = con.execute(f"PRAGMA {name};").fetchone()
    if row is None:
        raise AssertionError(f"missing pragma: {name}")
    return row[0]


def test_sqlite_operational_pragmas_are_applied(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ADMINSTORE_MODE", "prod")
    monkeypatch.delenv("ADMINSTORE_SQLITE_SYNCHRONOUS", raising=False)
    monkeypatch.setenv("ADMINSTORE_SQLITE_BUSY_TIMEOUT_MS", "1234")
    monkeypatch.setenv("ADMINSTORE_SQLITE_WAL_AUTOCHECKPOINT", "777")

    db = SqliteDB(path=str(tmp_path / "adminstore.db"))
    db.init_schema()

    with db.connection() as con:
        assert str(_pragma(con, "journal_mode")).lower() == "wal"

        # FULL is the prod default.
        assert int(_pragma(con, "synchronous")) == 2

        assert int(_pragma(con, "foreign_keys")) == 1
        assert int(_pragma(con, "temp_store")) == 2
        assert int(_pragma(con, "busy_timeout")) == 1234
        assert int(_pragma(con, "wal_autocheckpoint")) == 777


def test_synchronous_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ADMINSTORE_SQLITE_SYNCHRONOUS", "NORMAL")

    db = SqliteDB(path=str(tmp_path / "adminstore.db"))
    db.init_schema()

    with db.connection() as con:
        assert int(_pragma(con, "synchronous")) == 1


def test_schema_tables_exist(tmp_path: Path) -> None:
    db = SqliteDB(path=str(tmp_path / "adminstore.db"))
    db.init_schema()

    with db.connection() as con:
        names = {r[0] for r in con.execute("SELECT name FROM sqlite_master WHERE type='table';").fetchall()}
    assert {"meta", "store_state", "operation_log"} <= names


def test_schema_version_mismatch_refuses_to_start(tmp_path: Path) -> None:
    db = SqliteDB(path=str(tmp_path / "adminstore.db"))
    db.init_schema()

    with db.write_tx() as con:
        con.execute("UPDATE meta SET value='999' WHERE key='schema_version';")

    with pytest.raises(RuntimeError):
        db.init_schema()
