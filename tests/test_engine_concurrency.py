from __future__ import annotations

import threading
from pathlib import Path

import pytest

from adminstore.core.engine import AdminStoreEngine
from adminstore.core.errors import StoreError
from adminstore.core.height import ManualHeight
from adminstore.core.sqlite_db import SqliteDB, SqliteStateStore

OWNER = "owner-key"


@pytest.mark.parametrize("persistent", [False, True])
def test_concurrent_writers_keep_log_contiguous(tmp_path: Path, persistent: bool) -> None:
    persist = SqliteStateStore(db=SqliteDB(path=str(tmp_path / "c.db"))) if persistent else None
    eng = AdminStoreEngine(owner=OWNER, height_source=ManualHeight(), persist=persist)

    writers = [f"w{i}" for i in range(5)]
    for w in writers:
        eng.add_admin(caller=OWNER, identity=w, permissions=2)

    errors: list[BaseException] = []

    def _work(w: str) -> None:
        try:
            for i in range(10):
                eng.store_enhanced_data(caller=w, key="shared", value=i)
        except BaseException as e:  # pragma: no cover
            errors.append(e)

    threads = [threading.Thread(target=_work, args=(w,)) for w in writers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert eng.get_total_operations() == 5 + 50
    assert [o.operation_id for o in eng.list_operations(limit=1000)] == list(range(55))
    assert eng.get_enhanced_data("shared").version == 50

    if persist is not None:
        assert persist.count_operations() == 55


def test_concurrent_rate_limit_never_exceeds_cap() -> None:
    eng = AdminStoreEngine(owner=OWNER, height_source=ManualHeight())
    eng.add_admin(caller=OWNER, identity="w", permissions=2)

    ok: list[int] = []
    lock = threading.Lock()

    def _work(n: int) -> None:
        for i in range(5):
            try:
                eng.store_enhanced_data(caller="w", key=f"k{n}-{i}", value=i)
            except StoreError:
                continue
            with lock:
                ok.append(1)

    threads = [threading.Thread(target=_work, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(ok) == 10
    assert eng.get_activity("w").action_count == 10
