from __future__ import annotations

import hashlib

import pytest

from adminstore.core.engine import AdminStoreEngine
from adminstore.core.errors import ALREADY_EXISTS, INVALID_INPUT, NOT_ADMIN, NOT_FOUND, StoreError
from adminstore.core.height import ManualHeight
from adminstore.core.snapshots import compute_content_hash
from adminstore.core.sqlite_db import canon_json

OWNER = "owner-key"


def test_backup_records_pre_call_operation_count(height: ManualHeight, engine: AdminStoreEngine) -> None:
    engine.store_enhanced_data(caller=OWNER, key="a", value=1)
    engine.store_enhanced_data(caller=OWNER, key="b", value=2)
    height.set(40)

    out = engine.create_backup(caller=OWNER, snapshot_id="snap-1")
    snap = engine.get_snapshot("snap-1")

    assert snap.data_count == 2
    assert engine.get_total_operations() == 3
    assert snap.created_at == 40
    assert snap.created_by == OWNER
    assert snap.content_hash == compute_content_hash(height=40, total_operations=2)
    assert out["snapshot"]["content_hash"] == snap.content_hash
    assert engine.get_last_backup_height() == 40

    op = engine.get_operation(out["operation_id"])
    assert (op.operation_type, op.key, op.new_value) == ("create-backup", "snap-1", 2)


def test_duplicate_snapshot_id_fails(engine: AdminStoreEngine) -> None:
    engine.create_backup(caller=OWNER, snapshot_id="s")
    with pytest.raises(StoreError) as ei:
        engine.create_backup(caller=OWNER, snapshot_id="s")
    assert ei.value.code == ALREADY_EXISTS
    assert engine.get_total_operations() == 1


def test_content_hash_is_stable() -> None:
    h1 = compute_content_hash(height=10, total_operations=3)
    assert h1 == compute_content_hash(height=10, total_operations=3)
    assert h1 != compute_content_hash(height=10, total_operations=4)
    assert len(h1) == 64
    assert h1 == hashlib.sha256(canon_json({"total_operations": 3, "height": 10}).encode("utf-8")).hexdigest()


def test_backup_requires_admin_bit(engine: AdminStoreEngine) -> None:
    engine.add_admin(caller=OWNER, identity="w", permissions=7)
    with pytest.raises(StoreError) as ei:
        engine.create_backup(caller="w", snapshot_id="s")
    assert ei.value.code == NOT_ADMIN

    with pytest.raises(StoreError) as ei:
        engine.get_snapshot("s")
    assert ei.value.code == NOT_FOUND


def test_add_category_overwrites(engine: AdminStoreEngine) -> None:
    engine.add_admin(caller=OWNER, identity="adm", permissions=8)
    first = engine.add_category(caller="adm", category="news", description="Daily", color="#fff")
    assert first["replaced"] is False

    second = engine.add_category(caller="adm", category="news", description="Weekly")
    assert second["replaced"] is True

    cat = engine.get_category("news")
    assert (cat.description, cat.color, cat.active) == ("Weekly", "", True)
    assert engine.get_operation(second["operation_id"]).operation_type == "add-category"


def test_category_validation(engine: AdminStoreEngine) -> None:
    for kw in (
        dict(category=""),
        dict(category="c" * 33),
        dict(category="c", description="d" * 129),
        dict(category="c", color="x" * 17),
    ):
        with pytest.raises(StoreError) as ei:
            engine.add_category(caller=OWNER, **kw)
        assert ei.value.code == INVALID_INPUT

    with pytest.raises(StoreError) as ei:
        engine.get_category("missing")
    assert ei.value.code == NOT_FOUND
