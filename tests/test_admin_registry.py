from __future__ import annotations

import pytest

from adminstore.core.engine import AdminStoreEngine
from adminstore.core.errors import (
    ALREADY_EXISTS,
    CONTRACT_PAUSED,
    INVALID_INPUT,
    INVALID_PERMISSION,
    MAX_ADMINS_REACHED,
    NOT_FOUND,
    OWNER_ONLY,
    StoreError,
)
from adminstore.core.height import ManualHeight
from adminstore.core.permissions import Permission

OWNER = "owner-key"


def test_add_admin_records_entry_and_audit(engine: AdminStoreEngine) -> None:
    out = engine.add_admin(caller=OWNER, identity="alice", permissions=Permission.WRITE)
    assert out["ok"] is True
    assert out["operation_id"] == 0

    a = engine.get_admin("alice")
    assert a.permissions == 2
    assert a.active is True
    assert a.added_by == OWNER
    assert a.added_at == 1

    op = engine.get_operation(0)
    assert op.operation_type == "add-admin"
    assert op.key == "alice"
    assert op.new_value == 2
    assert op.success is True


def test_admin_count_is_real_count_and_sixth_add_fails(engine: AdminStoreEngine) -> None:
    for k in range(5):
        engine.add_admin(caller=OWNER, identity=f"admin-{k}", permissions=1)
        assert engine.get_admin_count() == k + 1

    with pytest.raises(StoreError) as ei:
        engine.add_admin(caller=OWNER, identity="admin-5", permissions=1)
    assert ei.value.code == MAX_ADMINS_REACHED
    assert engine.get_admin_count() == 5


def test_deactivated_admins_still_fill_registry(engine: AdminStoreEngine) -> None:
    for k in range(5):
        engine.add_admin(caller=OWNER, identity=f"admin-{k}", permissions=1)
    engine.deactivate_admin(caller=OWNER, identity="admin-0")

    with pytest.raises(StoreError) as ei:
        engine.add_admin(caller=OWNER, identity="late", permissions=1)
    assert ei.value.code == MAX_ADMINS_REACHED


def test_non_owner_cannot_manage_admins(engine: AdminStoreEngine) -> None:
    engine.add_admin(caller=OWNER, identity="alice", permissions=15)

    for call in (
        lambda: engine.add_admin(caller="alice", identity="bob", permissions=1),
        lambda: engine.update_admin_permissions(caller="alice", identity="alice", permissions=1),
        lambda: engine.deactivate_admin(caller="alice", identity="alice"),
    ):
        with pytest.raises(StoreError) as ei:
            call()
        assert ei.value.code == OWNER_ONLY

    # Precondition failures leave no audit trace.
    assert engine.get_total_operations() == 1


def test_duplicate_and_invalid_masks(engine: AdminStoreEngine) -> None:
    engine.add_admin(caller=OWNER, identity="alice", permissions=1)

    with pytest.raises(StoreError) as ei:
        engine.add_admin(caller=OWNER, identity="alice", permissions=1)
    assert ei.value.code == ALREADY_EXISTS

    for bad in (16, -1, True, "root"):
        with pytest.raises(StoreError) as ei:
            engine.add_admin(caller=OWNER, identity="bob", permissions=bad)
        assert ei.value.code == INVALID_PERMISSION

    with pytest.raises(StoreError) as ei:
        engine.update_admin_permissions(caller=OWNER, identity="alice", permissions=99)
    assert ei.value.code == INVALID_PERMISSION


def test_named_capabilities_are_accepted(engine: AdminStoreEngine) -> None:
    engine.add_admin(caller=OWNER, identity="alice", permissions="read,write")
    assert engine.get_admin("alice").permissions == 3

    engine.add_admin(caller=OWNER, identity="bob", permissions=["admin"])
    assert engine.get_admin("bob").permissions == 8


def test_update_permissions_preserves_other_fields(height: ManualHeight, engine: AdminStoreEngine) -> None:
    engine.add_admin(caller=OWNER, identity="alice", permissions=2)
    height.advance(5)
    engine.update_admin_permissions(caller=OWNER, identity="alice", permissions=15)

    a = engine.get_admin("alice")
    assert a.permissions == 15
    assert a.added_at == 1
    assert a.added_by == OWNER

    op = engine.get_operation(1)
    assert op.operation_type == "update-admin-permissions"
    assert (op.old_value, op.new_value) == (2, 15)
    assert op.timestamp == 6


def test_has_permission_false_for_unknown_and_deactivated(engine: AdminStoreEngine) -> None:
    assert engine.has_permission("nobody", Permission.READ) is False

    engine.add_admin(caller=OWNER, identity="alice", permissions=15)
    assert engine.has_permission("alice", Permission.ADMIN) is True

    engine.deactivate_admin(caller=OWNER, identity="alice")
    assert engine.get_admin("alice").permissions == 15
    for p in (Permission.READ, Permission.WRITE, Permission.DELETE, Permission.ADMIN):
        assert engine.has_permission("alice", p) is False


def test_has_permission_reports_registry_only_for_owner(engine: AdminStoreEngine) -> None:
    assert engine.has_permission(OWNER, Permission.ADMIN) is False


def test_missing_admin_is_not_found(engine: AdminStoreEngine) -> None:
    with pytest.raises(StoreError) as ei:
        engine.get_admin("ghost")
    assert ei.value.code == NOT_FOUND

    with pytest.raises(StoreError) as ei:
        engine.deactivate_admin(caller=OWNER, identity="ghost")
    assert ei.value.code == NOT_FOUND


def test_admin_management_blocked_while_paused(engine: AdminStoreEngine) -> None:
    engine.toggle_pause(caller=OWNER)
    with pytest.raises(StoreError) as ei:
        engine.add_admin(caller=OWNER, identity="alice", permissions=1)
    assert ei.value.code == CONTRACT_PAUSED


def test_padded_identity_is_rejected(engine: AdminStoreEngine) -> None:
    with pytest.raises(StoreError) as ei:
        engine.add_admin(caller=OWNER, identity=" alice", permissions=Permission.WRITE)
    assert ei.value.code == INVALID_INPUT
    assert engine.get_admin_count() == 0

    engine.add_admin(caller=OWNER, identity="alice", permissions=Permission.WRITE)
    assert engine.has_permission("alice", Permission.WRITE) is True
    assert engine.has_permission(" alice", Permission.WRITE) is False
    with pytest.raises(StoreError) as ei:
        engine.get_admin(" alice")
    assert ei.value.code == NOT_FOUND
