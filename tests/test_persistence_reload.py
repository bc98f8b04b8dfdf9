from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from adminstore.core.engine import AdminStoreEngine, EngineError
from adminstore.core.errors import RECORD_LOCKED, StoreError
from adminstore.core.height import ManualHeight
from adminstore.core.sqlite_db import SqliteDB, SqliteStateStore

OWNER = "owner-key"


def _engine(db_path: Path, h: ManualHeight, owner: str = OWNER) -> AdminStoreEngine:
    store = SqliteStateStore(db=SqliteDB(path=str(db_path)))
    return AdminStoreEngine(owner=owner, height_source=h, persist=store)


def test_state_and_log_survive_restart(tmp_path: Path) -> None:
    db = tmp_path / "adminstore.db"
    h = ManualHeight(start=5)

    eng = _engine(db, h)
    eng.add_admin(caller=OWNER, identity="w", permissions=15)
    eng.store_enhanced_data(caller="w", key="k", value=7, text="t", tags=["x"])
    eng.store_enhanced_data(caller="w", key="k", value=8, tags=["x"])
    eng.lock_data(caller="w", key="k", locked=True)
    with pytest.raises(StoreError):
        eng.store_enhanced_data(caller="w", key="k", value=9)
    eng.create_backup(caller=OWNER, snapshot_id="s1")
    eng.add_category(caller=OWNER, category="c", description="d")
    eng.toggle_pause(caller=OWNER)
    before = eng.snapshot()

    eng2 = _engine(db, h)
    assert eng2.snapshot() == before
    assert eng2.get_total_operations() == 8
    assert eng2.is_paused() is True

    rec = eng2.get_enhanced_data("k")
    assert (rec.value, rec.version, rec.locked, rec.tags) == (8, 2, True, ("x",))
    assert eng2.get_activity("w").action_count == 2
    assert eng2.get_snapshot("s1").data_count == 5
    assert eng2.get_operation(4).success is False

    # The counter continues without gaps after reload.
    eng2.toggle_pause(caller=OWNER)
    assert eng2.get_total_operations() == 9
    assert eng2.get_operation(8).operation_type == "toggle-pause"


def test_failed_mutation_is_persisted_with_old_state(tmp_path: Path) -> None:
    db = tmp_path / "adminstore.db"
    h = ManualHeight()
    eng = _engine(db, h)
    eng.store_enhanced_data(caller=OWNER, key="k", value=1)
    eng.lock_data(caller=OWNER, key="k", locked=True)
    with pytest.raises(StoreError) as ei:
        eng.delete_data(caller=OWNER, key="k")
    assert ei.value.code == RECORD_LOCKED

    store = SqliteStateStore(db=SqliteDB(path=str(db)))
    assert store.count_operations() == 3
    assert store.read_state()["total_operations"] == 3
    assert "k" in store.read_state()["records"]


def test_boot_fails_closed_on_log_mismatch(tmp_path: Path) -> None:
    db = tmp_path / "adminstore.db"
    h = ManualHeight()
    eng = _engine(db, h)
    eng.store_enhanced_data(caller=OWNER, key="k", value=1)
    eng.store_enhanced_data(caller=OWNER, key="k", value=2)

    con = sqlite3.connect(str(db))
    try:
        con.execute("DELETE FROM operation_log WHERE operation_id=1;")
        con.commit()
    finally:
        con.close()

    with pytest.raises(EngineError):
        _engine(db, h)


def test_boot_refuses_owner_mismatch(tmp_path: Path) -> None:
    db = tmp_path / "adminstore.db"
    _engine(db, ManualHeight())

    with pytest.raises(EngineError):
        _engine(db, ManualHeight(), owner="someone-else")


def test_fresh_db_writes_initial_snapshot(tmp_path: Path) -> None:
    db = tmp_path / "nested" / "adminstore.db"
    _engine(db, ManualHeight(start=3))

    store = SqliteStateStore(db=SqliteDB(path=str(db)))
    assert store.exists() is True
    st = store.read_state()
    assert st["owner"] == OWNER
    assert st["total_operations"] == 0
    assert st["height"] == 3
