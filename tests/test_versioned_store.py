from __future__ import annotations

import pytest

from adminstore.core.engine import AdminStoreEngine
from adminstore.core.errors import INVALID_INPUT, INVALID_VALUE, NOT_ADMIN, NOT_FOUND, RECORD_LOCKED, StoreError
from adminstore.core.height import ManualHeight

OWNER = "owner-key"


def _writer(engine: AdminStoreEngine, ident: str = "w", mask: int = 2) -> str:
    engine.add_admin(caller=OWNER, identity=ident, permissions=mask)
    return ident


def test_versions_increase_per_update(height: ManualHeight, engine: AdminStoreEngine) -> None:
    w = _writer(engine)
    for n in range(1, 5):
        height.advance()
        out = engine.store_enhanced_data(caller=w, key="k1", value=n, text=f"v{n}", tags=["a"])
        assert out["record"]["version"] == n

        rec = engine.get_enhanced_data("k1")
        assert rec.version == n
        assert rec.value == n
        assert rec.updated_by == w
        assert rec.updated_at == height.current()


def test_store_audit_carries_old_and_new_value(engine: AdminStoreEngine) -> None:
    w = _writer(engine)
    engine.store_enhanced_data(caller=w, key="k", value=10)
    engine.store_enhanced_data(caller=w, key="k", value=20)

    first, second = engine.list_operations(start=1, limit=2)
    assert first.operation_type == "store-data"
    assert (first.key, first.old_value, first.new_value) == ("k", None, 10)
    assert (second.old_value, second.new_value) == (10, 20)
    assert second.performer == w


def test_value_bounds(engine: AdminStoreEngine) -> None:
    w = _writer(engine)
    engine.store_enhanced_data(caller=w, key="lo", value=0)
    engine.store_enhanced_data(caller=w, key="hi", value=1_000_000)

    for bad in (-1, 1_000_001, 1.5, "7", True, None):
        with pytest.raises(StoreError) as ei:
            engine.store_enhanced_data(caller=w, key="x", value=bad)
        assert ei.value.code == INVALID_VALUE

    assert engine.get_total_operations() == 3


def test_bounded_strings_and_tags(engine: AdminStoreEngine) -> None:
    w = _writer(engine)

    cases = [
        dict(key="", value=1),
        dict(key="k" * 65, value=1),
        dict(key="k", value=1, text="t" * 257),
        dict(key="k", value=1, tags=["a", "b", "c", "d", "e", "f"]),
        dict(key="k", value=1, tags=["x" * 33]),
        dict(key="k", value=1, tags="notalist"),
    ]
    for kw in cases:
        with pytest.raises(StoreError) as ei:
            engine.store_enhanced_data(caller=w, **kw)
        assert ei.value.code == INVALID_INPUT


def test_duplicate_tags_collapse(engine: AdminStoreEngine) -> None:
    w = _writer(engine)
    out = engine.store_enhanced_data(caller=w, key="k", value=1, tags=["b", "a", "b", "a", "c", "c", "d", "e"])
    assert out["record"]["tags"] == ["a", "b", "c", "d", "e"]
    assert engine.has_tag("k", "c") is True
    assert engine.has_tag("k", "z") is False
    assert engine.has_tag("missing", "a") is False


def test_tags_replaced_on_update(engine: AdminStoreEngine) -> None:
    w = _writer(engine)
    engine.store_enhanced_data(caller=w, key="k", value=1, tags=["old"])
    engine.store_enhanced_data(caller=w, key="k", value=2, tags=["new"])
    assert engine.has_tag("k", "old") is False
    assert engine.has_tag("k", "new") is True


def test_store_requires_write_bit(engine: AdminStoreEngine) -> None:
    r = _writer(engine, "reader", 1)
    with pytest.raises(StoreError) as ei:
        engine.store_enhanced_data(caller=r, key="k", value=1)
    assert ei.value.code == NOT_ADMIN

    with pytest.raises(StoreError) as ei:
        engine.store_enhanced_data(caller="stranger", key="k", value=1)
    assert ei.value.code == NOT_ADMIN


def test_owner_passes_permission_gates(engine: AdminStoreEngine) -> None:
    out = engine.store_enhanced_data(caller=OWNER, key="k", value=5)
    assert out["record"]["version"] == 1
    engine.lock_data(caller=OWNER, key="k", locked=True)
    assert engine.get_enhanced_data("k").locked is True


def test_locked_record_rejects_writes_with_audited_failure(engine: AdminStoreEngine) -> None:
    w = _writer(engine, "w", 15)
    engine.store_enhanced_data(caller=w, key="k", value=1)
    engine.lock_data(caller=w, key="k", locked=True)
    before = engine.get_total_operations()

    with pytest.raises(StoreError) as ei:
        engine.store_enhanced_data(caller=w, key="k", value=2)
    assert ei.value.code == RECORD_LOCKED
    assert ei.value.details["operation_id"] == before

    assert engine.get_total_operations() == before + 1
    op = engine.get_operation(before)
    assert op.operation_type == "store-data"
    assert op.success is False
    assert op.new_value == 2

    rec = engine.get_enhanced_data("k")
    assert rec.value == 1
    assert rec.version == 1

    # Failed attempts do not count toward the rate limit.
    assert engine.get_activity(w).action_count == 1

    engine.lock_data(caller=w, key="k", locked=False)
    assert engine.store_enhanced_data(caller=w, key="k", value=3)["record"]["version"] == 2


def test_lock_requires_existing_key(engine: AdminStoreEngine) -> None:
    with pytest.raises(StoreError) as ei:
        engine.lock_data(caller=OWNER, key="ghost", locked=True)
    assert ei.value.code == NOT_FOUND
    assert engine.get_total_operations() == 0


def test_lock_audit_values(engine: AdminStoreEngine) -> None:
    engine.store_enhanced_data(caller=OWNER, key="k", value=1)
    engine.lock_data(caller=OWNER, key="k", locked=True)
    engine.lock_data(caller=OWNER, key="k", locked=False)
    ops = engine.list_operations(start=1)
    assert [(o.operation_type, o.old_value, o.new_value) for o in ops] == [
        ("lock-data", 0, 1),
        ("lock-data", 1, 0),
    ]
    # Locking does not bump the version.
    assert engine.get_enhanced_data("k").version == 1


def test_delete_data(engine: AdminStoreEngine) -> None:
    d = _writer(engine, "d", 4)
    engine.store_enhanced_data(caller=OWNER, key="k", value=9)
    engine.store_enhanced_data(caller=OWNER, key="k", value=10)

    out = engine.delete_data(caller=d, key="k")
    assert out["deleted"]["value"] == 10
    with pytest.raises(StoreError) as ei:
        engine.get_enhanced_data("k")
    assert ei.value.code == NOT_FOUND

    op = engine.get_operation(out["operation_id"])
    assert (op.operation_type, op.old_value, op.new_value) == ("delete-data", 10, None)

    # A later store starts a fresh version history.
    assert engine.store_enhanced_data(caller=OWNER, key="k", value=1)["record"]["version"] == 1


def test_delete_requires_delete_bit_and_unlocked(engine: AdminStoreEngine) -> None:
    w = _writer(engine, "w", 2)
    engine.store_enhanced_data(caller=OWNER, key="k", value=1)

    with pytest.raises(StoreError) as ei:
        engine.delete_data(caller=w, key="k")
    assert ei.value.code == NOT_ADMIN

    engine.lock_data(caller=OWNER, key="k", locked=True)
    with pytest.raises(StoreError) as ei:
        engine.delete_data(caller=OWNER, key="k")
    assert ei.value.code == RECORD_LOCKED
    assert engine.get_enhanced_data("k").value == 1


def test_padded_key_is_rejected_not_merged(engine: AdminStoreEngine) -> None:
    w = _writer(engine)
    with pytest.raises(StoreError) as ei:
        engine.store_enhanced_data(caller=w, key="k ", value=1)
    assert ei.value.code == INVALID_INPUT
    assert ei.value.reason == "surrounding_whitespace"

    # The rejected call left nothing behind, so "k" is still unseen.
    out = engine.store_enhanced_data(caller=w, key="k", value=2)
    assert out["record"]["version"] == 1
    assert engine.get_enhanced_data("k").value == 2
    assert engine.list_keys() == ["k"]

    with pytest.raises(StoreError) as ei:
        engine.get_enhanced_data("k ")
    assert ei.value.code == NOT_FOUND


def test_padded_key_rejected_in_batch(engine: AdminStoreEngine) -> None:
    w = _writer(engine)
    with pytest.raises(StoreError) as ei:
        engine.batch_store(caller=w, items=[{"key": "a", "value": 1}, {"key": " b", "value": 2}])
    assert ei.value.code == INVALID_INPUT
    assert engine.list_keys() == []


def test_has_tag_on_read_never_raises(engine: AdminStoreEngine) -> None:
    w = _writer(engine)
    engine.store_enhanced_data(caller=w, key="k", value=1, tags=["a"])
    assert engine.has_tag("missing", "") is False
    assert engine.has_tag("k", "") is False
    assert engine.has_tag("k", " a") is False
    assert engine.has_tag("k", "a") is True
