from __future__ import annotations

"""adminstore.core.engine

The store engine: one instance owns all state and serializes every public
call behind a single re-entrant lock.

Every mutating call runs the same fail-fast chain:

    pause -> permission -> structural validation -> rate limit
      -> mutation (on a draft copy) -> audit append -> persist -> swap

A StoreError raised before the mutation step leaves no trace in the audit
log. A StoreError raised inside the mutation step discards the draft but is
audited with success=False, so it consumes one operation id.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from adminstore.core.admin_registry import AdminRegistry
from adminstore.core.batch import apply_batch, check_batch
from adminstore.core.categories import CategoryRegistry, check_category_input
from adminstore.core.constants import (
    DEFAULT_RATE_WINDOW,
    INITIAL_CONTRACT_VERSION,
    MAX_BATCH,
    MAX_IDENTITY_LEN,
    MAX_KEY_LEN,
    MAX_OP_TYPE_LEN,
)
from adminstore.core.core_logging import log_event
from adminstore.core.errors import (
    BATCH_TOO_LARGE,
    INVALID_INPUT,
    INVALID_VALUE,
    NOT_ADMIN,
    OWNER_ONLY,
    RATE_LIMITED,
    StoreError,
)
from adminstore.core.height import HeightSource, ManualHeight
from adminstore.core.metrics import StoreMetrics
from adminstore.core.operation_log import OperationLog
from adminstore.core.pause_guard import PauseGuard
from adminstore.core.permissions import Permission, capability_names, parse_permissions
from adminstore.core.rate_limiter import RateLimiter
from adminstore.core.records import (
    ActivityEntry,
    AdminEntry,
    CategoryRecord,
    OperationRecord,
    SnapshotRecord,
    StoreRecord,
    bounded_str,
    checked_value,
)
from adminstore.core.single_writer import SingleWriterLock
from adminstore.core.snapshots import SnapshotManager
from adminstore.core.sqlite_db import SqliteStateStore
from adminstore.core.versioned_store import VersionedStore, check_key, check_store_input

Json = Dict[str, Any]
T = TypeVar("T")

log = logging.getLogger("adminstore.engine")


class EngineError(RuntimeError):
    pass


# Audit operation types
OP_ADD_ADMIN = "add-admin"
OP_UPDATE_ADMIN = "update-admin-permissions"
OP_DEACTIVATE_ADMIN = "deactivate-admin"
OP_TOGGLE_PAUSE = "toggle-pause"
OP_EMERGENCY_STOP = "emergency-stop"
OP_UPDATE_VERSION = "update-version"
OP_STORE = "store-data"
OP_LOCK = "lock-data"
OP_DELETE = "delete-data"
OP_BATCH_STORE = "batch-store"
OP_MULTI_LOG = "multi-log"
OP_CREATE_BACKUP = "create-backup"
OP_ADD_CATEGORY = "add-category"


@dataclass
class StoreState:
    owner: str
    contract_version: int
    pause: PauseGuard
    admins: AdminRegistry
    limiter: RateLimiter
    store: VersionedStore
    snapshots: SnapshotManager
    categories: CategoryRegistry

    @classmethod
    def initial(cls, *, owner: str, rate_window: int) -> "StoreState":
        return cls(
            owner=owner,
            contract_version=INITIAL_CONTRACT_VERSION,
            pause=PauseGuard(False),
            admins=AdminRegistry(),
            limiter=RateLimiter(window=rate_window),
            store=VersionedStore(),
            snapshots=SnapshotManager(),
            categories=CategoryRegistry(),
        )

    def copy(self) -> "StoreState":
        return StoreState(
            owner=self.owner,
            contract_version=self.contract_version,
            pause=self.pause.copy(),
            admins=self.admins.copy(),
            limiter=self.limiter.copy(),
            store=self.store.copy(),
            snapshots=self.snapshots.copy(),
            categories=self.categories.copy(),
        )

    def to_json(self, *, height: int, total_operations: int) -> Json:
        return {
            "owner": self.owner,
            "contract_version": int(self.contract_version),
            "height": int(height),
            "total_operations": int(total_operations),
            "pause": self.pause.to_json(),
            "admins": self.admins.to_json(),
            "activity": self.limiter.to_json(),
            "records": self.store.to_json(),
            "snapshots": self.snapshots.to_json(),
            "categories": self.categories.to_json(),
        }

    @classmethod
    def from_json(cls, j: Json, *, rate_window: int) -> "StoreState":
        return cls(
            owner=str(j.get("owner") or ""),
            contract_version=int(j.get("contract_version") or INITIAL_CONTRACT_VERSION),
            pause=PauseGuard.from_json(j.get("pause")),
            admins=AdminRegistry.from_json(j.get("admins")),
            limiter=RateLimiter.from_json(j.get("activity"), window=rate_window),
            store=VersionedStore.from_json(j.get("records")),
            snapshots=SnapshotManager.from_json(j.get("snapshots")),
            categories=CategoryRegistry.from_json(j.get("categories")),
        )


@dataclass(frozen=True)
class CallContext:
    caller: str
    height: int
    op: str


@dataclass
class _Outcome:
    result: Json
    # One dict per audit row: key / old_value / new_value (+ operation_type for multi-log).
    audit: List[Json] = field(default_factory=list)


def _ok(result: Json, **audit: Any) -> _Outcome:
    return _Outcome(result=result, audit=[audit])


class AdminStoreEngine:
    """Permissioned, versioned key-value store with an append-only audit log."""

    def __init__(
        self,
        *,
        owner: str,
        height_source: Optional[HeightSource] = None,
        persist: Optional[SqliteStateStore] = None,
        rate_window: int = DEFAULT_RATE_WINDOW,
        metrics: Optional[StoreMetrics] = None,
        writer_lock: Optional[SingleWriterLock] = None,
    ) -> None:
        owner_s = str(owner or "").strip()
        if not owner_s:
            raise EngineError("owner identity must be a non-empty string")

        self.owner = owner_s
        self.height_source: HeightSource = height_source or ManualHeight()
        self.metrics = metrics or StoreMetrics()
        self._persist = persist
        self._writer_lock = writer_lock
        self._rate_window = int(rate_window)
        self._lock = threading.RLock()

        if persist is not None and persist.exists():
            self._state, self._log = self._load(persist)
        else:
            self._state = StoreState.initial(owner=self.owner, rate_window=self._rate_window)
            self._log = OperationLog()
            if persist is not None:
                persist.write_state(self._state_json(height=self.height_source.current()))

        self._refresh_gauges(self.height_source.current())

    def _load(self, persist: SqliteStateStore) -> tuple[StoreState, OperationLog]:
        raw = persist.read_state()
        st = StoreState.from_json(raw, rate_window=self._rate_window)

        if st.owner != self.owner:
            raise EngineError(f"owner mismatch: db={st.owner!r} config={self.owner!r}. Refuse to start.")

        try:
            oplog = OperationLog.from_json(persist.read_operations())
        except ValueError as e:
            raise EngineError(f"db_invariant_violation: {e}. Refuse to start.") from e

        want = int(raw.get("total_operations", 0) or 0)
        if oplog.total_operations != want:
            raise EngineError(
                f"db_invariant_violation: snapshot total_operations {want} but audit log has "
                f"{oplog.total_operations} rows. Refuse to start."
            )
        return st, oplog

    def close(self) -> None:
        if self._writer_lock is not None:
            self._writer_lock.release()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _state_json(self, *, height: int, total_operations: Optional[int] = None) -> Json:
        n = self._log.total_operations if total_operations is None else int(total_operations)
        return self._state.to_json(height=height, total_operations=n)

    def _context(self, caller: Any, op: str) -> CallContext:
        c = bounded_str(caller, field="caller", max_len=MAX_IDENTITY_LEN)
        return CallContext(caller=c, height=int(self.height_source.current()), op=op)

    def _is_owner(self, caller: str) -> bool:
        return caller == self._state.owner

    def _require_owner(self, ctx: CallContext) -> None:
        if not self._is_owner(ctx.caller):
            raise StoreError(OWNER_ONLY, "owner_only", {"operation": ctx.op})

    def _require_permission(self, ctx: CallContext, required: Permission) -> None:
        # The owner passes every capability gate.
        if self._is_owner(ctx.caller):
            return
        if not self._state.admins.has_permission(ctx.caller, required):
            raise StoreError(
                NOT_ADMIN,
                "missing_permission",
                {"operation": ctx.op, "required": capability_names(required)},
            )

    def _require_rate_limit(self, ctx: CallContext) -> None:
        if not self._state.limiter.check(ctx.caller, ctx.height):
            entry = self._state.limiter.get(ctx.caller)
            raise StoreError(
                RATE_LIMITED,
                "too_many_actions",
                {
                    "max_actions": self._state.limiter.max_actions,
                    "window": self._state.limiter.window,
                    "window_start": entry.rate_window_start if entry else ctx.height,
                },
            )

    def _rejected(self, ctx: CallContext, e: StoreError) -> None:
        self.metrics.record_rejection(ctx.op, e.code)
        log_event(
            log,
            "store_op_rejected",
            level=logging.WARNING,
            op=ctx.op,
            caller=ctx.caller,
            height=ctx.height,
            code=e.code,
            reason=e.reason,
        )

    def _refresh_gauges(self, height: int) -> None:
        self.metrics.set_gauge("admins", self._state.admins.count())
        self.metrics.set_gauge("records", self._state.store.count())
        self.metrics.set_gauge("total_operations", self._log.total_operations)
        self.metrics.set_gauge("height", height)
        self.metrics.set_gauge("paused", 1 if self._state.pause.is_paused() else 0)

    def _commit(self, ctx: CallContext, state: StoreState, records: List[OperationRecord]) -> None:
        total = self._log.total_operations + len(records)
        if self._persist is not None:
            self._persist.commit(
                state.to_json(height=ctx.height, total_operations=total),
                [r.to_json() for r in records],
            )
        self._log.push(records)
        self._state = state

    def _audit_records(self, ctx: CallContext, rows: List[Json], *, success: bool) -> List[OperationRecord]:
        out: List[OperationRecord] = []
        for i, row in enumerate(rows):
            out.append(
                self._log.prepare(
                    operation_type=row.get("operation_type") or ctx.op,
                    performer=ctx.caller,
                    height=ctx.height,
                    success=success,
                    key=row.get("key"),
                    old_value=row.get("old_value"),
                    new_value=row.get("new_value"),
                    offset=i,
                )
            )
        return out

    def _run(
        self,
        ctx: CallContext,
        preconditions: Callable[[], T],
        mutate: Callable[[StoreState, T], _Outcome],
        on_failure: Optional[Callable[[T], Json]] = None,
    ) -> Json:
        """Run one mutating call. Caller must hold self._lock."""
        try:
            args = preconditions()
        except StoreError as e:
            self._rejected(ctx, e)
            raise

        draft = self._state.copy()
        try:
            outcome = mutate(draft, args)
        except StoreError as e:
            fields = on_failure(args) if on_failure is not None else {}
            recs = self._audit_records(ctx, [fields], success=False)
            self._commit(ctx, self._state, recs)
            self.metrics.record_op(ctx.op, success=False, error_code=e.code)
            self._refresh_gauges(ctx.height)
            log_event(
                log,
                "store_op",
                level=logging.WARNING,
                op=ctx.op,
                caller=ctx.caller,
                height=ctx.height,
                operation_id=recs[0].operation_id,
                success=False,
                code=e.code,
                reason=e.reason,
            )
            e.details = {**(e.details or {}), "operation_id": recs[0].operation_id}
            raise

        recs = self._audit_records(ctx, outcome.audit, success=True)
        self._commit(ctx, draft, recs)
        self.metrics.record_op(ctx.op, success=True)
        self._refresh_gauges(ctx.height)
        log_event(
            log,
            "store_op",
            op=ctx.op,
            caller=ctx.caller,
            height=ctx.height,
            operation_id=recs[0].operation_id,
            entries=len(recs) if len(recs) > 1 else None,
            success=True,
        )

        result: Json = {"ok": True, "operation_id": recs[0].operation_id, "height": ctx.height}
        if len(recs) > 1:
            result["operation_ids"] = [r.operation_id for r in recs]
        result.update(outcome.result)
        return result

    # ------------------------------------------------------------------
    # PauseGuard
    # ------------------------------------------------------------------

    def toggle_pause(self, *, caller: str) -> Json:
        with self._lock:
            ctx = self._context(caller, OP_TOGGLE_PAUSE)

            def mutate(st: StoreState, _: None) -> _Outcome:
                was = st.pause.is_paused()
                now = st.pause.toggle()
                return _ok({"paused": now}, old_value=int(was), new_value=int(now))

            return self._run(ctx, lambda: self._require_owner(ctx), mutate)

    def emergency_stop(self, *, caller: str) -> Json:
        with self._lock:
            ctx = self._context(caller, OP_EMERGENCY_STOP)

            def mutate(st: StoreState, _: None) -> _Outcome:
                was = st.pause.stop()
                return _ok({"paused": True}, old_value=int(was), new_value=1)

            return self._run(ctx, lambda: self._require_owner(ctx), mutate)

    def is_paused(self) -> bool:
        with self._lock:
            return self._state.pause.is_paused()

    # ------------------------------------------------------------------
    # Contract metadata
    # ------------------------------------------------------------------

    def update_version(self, *, caller: str, version: int) -> Json:
        with self._lock:
            ctx = self._context(caller, OP_UPDATE_VERSION)

            def pre() -> int:
                self._state.pause.require_running(ctx.op)
                self._require_owner(ctx)
                if isinstance(version, bool) or not isinstance(version, int) or version < 1:
                    raise StoreError(INVALID_VALUE, "bad_version", {"version": version})
                return int(version)

            def mutate(st: StoreState, v: int) -> _Outcome:
                old = st.contract_version
                st.contract_version = v
                return _ok({"version": v}, old_value=old, new_value=v)

            return self._run(ctx, pre, mutate)

    def get_contract_info(self) -> Json:
        with self._lock:
            st = self._state
            return {
                "owner": st.owner,
                "version": st.contract_version,
                "paused": st.pause.is_paused(),
                "total_operations": self._log.total_operations,
                "admin_count": st.admins.count(),
                "record_count": st.store.count(),
                "snapshot_count": st.snapshots.count(),
                "last_backup_height": st.snapshots.last_backup_height,
                "height": int(self.height_source.current()),
                "rate_window": st.limiter.window,
            }

    # ------------------------------------------------------------------
    # AdminRegistry
    # ------------------------------------------------------------------

    def add_admin(self, *, caller: str, identity: str, permissions: Any) -> Json:
        with self._lock:
            ctx = self._context(caller, OP_ADD_ADMIN)

            def pre():
                self._state.pause.require_running(ctx.op)
                self._require_owner(ctx)
                return self._state.admins.check_add(identity, permissions)

            def mutate(st: StoreState, args) -> _Outcome:
                ident, mask = args
                entry = st.admins.add(ident, int(mask), added_by=ctx.caller, height=ctx.height)
                return _ok({"admin": entry.to_json()}, key=ident, new_value=int(mask))

            return self._run(ctx, pre, mutate)

    def update_admin_permissions(self, *, caller: str, identity: str, permissions: Any) -> Json:
        with self._lock:
            ctx = self._context(caller, OP_UPDATE_ADMIN)

            def pre():
                self._state.pause.require_running(ctx.op)
                self._require_owner(ctx)
                return self._state.admins.check_update(identity, permissions)

            def mutate(st: StoreState, args) -> _Outcome:
                entry, mask = args
                old, new = st.admins.update_permissions(entry.identity, int(mask))
                return _ok(
                    {"admin": new.to_json()},
                    key=new.identity,
                    old_value=old.permissions,
                    new_value=new.permissions,
                )

            return self._run(ctx, pre, mutate)

    def deactivate_admin(self, *, caller: str, identity: str) -> Json:
        with self._lock:
            ctx = self._context(caller, OP_DEACTIVATE_ADMIN)

            def pre() -> AdminEntry:
                self._state.pause.require_running(ctx.op)
                self._require_owner(ctx)
                ident = bounded_str(identity, field="identity", max_len=MAX_IDENTITY_LEN)
                return self._state.admins.require(ident)

            def mutate(st: StoreState, entry: AdminEntry) -> _Outcome:
                new = st.admins.deactivate(entry.identity)
                return _ok({"admin": new.to_json()}, key=new.identity, old_value=int(entry.active), new_value=0)

            return self._run(ctx, pre, mutate)

    def get_admin(self, identity: str) -> AdminEntry:
        with self._lock:
            return self._state.admins.require(identity)

    def get_admin_count(self) -> int:
        with self._lock:
            return self._state.admins.count()

    def list_admins(self) -> List[AdminEntry]:
        with self._lock:
            return sorted(self._state.admins, key=lambda a: a.identity)

    def has_permission(self, identity: str, required: Any) -> bool:
        mask = parse_permissions(required)
        with self._lock:
            return self._state.admins.has_permission(identity, mask)

    # ------------------------------------------------------------------
    # RateLimiter
    # ------------------------------------------------------------------

    def check_rate_limit(self, identity: str) -> bool:
        with self._lock:
            return self._state.limiter.check(identity, int(self.height_source.current()))

    def get_activity(self, identity: str) -> ActivityEntry:
        with self._lock:
            return self._state.limiter.require(identity)

    # ------------------------------------------------------------------
    # VersionedStore
    # ------------------------------------------------------------------

    def store_enhanced_data(
        self,
        *,
        caller: str,
        key: str,
        value: int,
        text: str = "",
        tags: Optional[Iterable[str]] = None,
    ) -> Json:
        with self._lock:
            ctx = self._context(caller, OP_STORE)

            def pre():
                self._state.pause.require_running(ctx.op)
                self._require_permission(ctx, Permission.WRITE)
                item = check_store_input(key, value, text, tags)
                self._require_rate_limit(ctx)
                return item

            def mutate(st: StoreState, item) -> _Outcome:
                old, new = st.store.put(item, caller=ctx.caller, height=ctx.height)
                st.limiter.record(ctx.caller, ctx.height)
                return _ok(
                    {"record": new.to_json()},
                    key=item.key,
                    old_value=old.value if old is not None else None,
                    new_value=new.value,
                )

            return self._run(ctx, pre, mutate, on_failure=lambda item: {"key": item.key, "new_value": item.value})

    def lock_data(self, *, caller: str, key: str, locked: bool = True) -> Json:
        with self._lock:
            ctx = self._context(caller, OP_LOCK)

            def pre() -> StoreRecord:
                self._state.pause.require_running(ctx.op)
                self._require_permission(ctx, Permission.ADMIN)
                if not isinstance(locked, bool):
                    raise StoreError(INVALID_INPUT, "locked_not_bool", {"locked": repr(locked)})
                return self._state.store.require(check_key(key))

            def mutate(st: StoreState, rec: StoreRecord) -> _Outcome:
                _, new = st.store.set_lock(rec.key, locked)
                return _ok({"record": new.to_json()}, key=rec.key, old_value=int(rec.locked), new_value=int(new.locked))

            return self._run(ctx, pre, mutate)

    def delete_data(self, *, caller: str, key: str) -> Json:
        with self._lock:
            ctx = self._context(caller, OP_DELETE)

            def pre() -> StoreRecord:
                self._state.pause.require_running(ctx.op)
                self._require_permission(ctx, Permission.DELETE)
                return self._state.store.require(check_key(key))

            def mutate(st: StoreState, rec: StoreRecord) -> _Outcome:
                old = st.store.delete(rec.key)
                return _ok({"deleted": old.to_json()}, key=old.key, old_value=old.value)

            return self._run(ctx, pre, mutate, on_failure=lambda rec: {"key": rec.key, "old_value": rec.value})

    def get_enhanced_data(self, key: str) -> StoreRecord:
        with self._lock:
            return self._state.store.require(key)

    def has_tag(self, key: str, tag: str) -> bool:
        """False for unknown keys and for tags no record could carry."""
        with self._lock:
            return self._state.store.has_tag(key, tag)

    def list_keys(self) -> List[str]:
        with self._lock:
            return self._state.store.keys()

    # ------------------------------------------------------------------
    # BatchProcessor
    # ------------------------------------------------------------------

    def batch_store(self, *, caller: str, items: Any) -> Json:
        with self._lock:
            ctx = self._context(caller, OP_BATCH_STORE)

            def pre():
                self._state.pause.require_running(ctx.op)
                self._require_permission(ctx, Permission.WRITE)
                checked = check_batch(items)
                self._require_rate_limit(ctx)
                return checked

            def mutate(st: StoreState, checked) -> _Outcome:
                written = apply_batch(st.store, checked, caller=ctx.caller, height=ctx.height)
                st.limiter.record(ctx.caller, ctx.height)
                return _ok(
                    {"count": len(written), "records": [r.to_json() for r in written]},
                    new_value=len(written),
                )

            return self._run(ctx, pre, mutate, on_failure=lambda checked: {"new_value": len(checked)})

    # ------------------------------------------------------------------
    # OperationLog
    # ------------------------------------------------------------------

    def multi_log(self, *, caller: str, entries: Any) -> Json:
        """Append up to MAX_BATCH caller-supplied audit entries in one call."""
        with self._lock:
            ctx = self._context(caller, OP_MULTI_LOG)

            def pre() -> List[Json]:
                self._state.pause.require_running(ctx.op)
                self._require_permission(ctx, Permission.WRITE)
                if not isinstance(entries, (list, tuple)) or not entries:
                    raise StoreError(INVALID_INPUT, "entries_empty", {})
                if len(entries) > MAX_BATCH:
                    raise StoreError(BATCH_TOO_LARGE, "too_many_entries", {"max": MAX_BATCH, "count": len(entries)})
                rows: List[Json] = []
                for raw in entries:
                    if not isinstance(raw, dict):
                        raise StoreError(INVALID_INPUT, "bad_entry", {"entry": repr(raw)})
                    k = raw.get("key")
                    v = raw.get("value")
                    rows.append(
                        {
                            "operation_type": bounded_str(
                                raw.get("operation_type"), field="operation_type", max_len=MAX_OP_TYPE_LEN
                            ),
                            "key": None if k is None else bounded_str(k, field="key", max_len=MAX_KEY_LEN),
                            "new_value": None if v is None else checked_value(v),
                        }
                    )
                return rows

            def mutate(_st: StoreState, rows: List[Json]) -> _Outcome:
                return _Outcome(result={"count": len(rows)}, audit=rows)

            return self._run(ctx, pre, mutate)

    def get_operation(self, operation_id: int) -> OperationRecord:
        with self._lock:
            return self._log.get(operation_id)

    def list_operations(self, *, start: int = 0, limit: int = 100) -> List[OperationRecord]:
        with self._lock:
            return self._log.page(start=start, limit=limit)

    def operations_by(self, performer: str, *, limit: int = 100) -> List[OperationRecord]:
        with self._lock:
            return self._log.by_performer(performer, limit=limit)

    def get_total_operations(self) -> int:
        with self._lock:
            return self._log.total_operations

    # ------------------------------------------------------------------
    # SnapshotManager
    # ------------------------------------------------------------------

    def create_backup(self, *, caller: str, snapshot_id: str) -> Json:
        with self._lock:
            ctx = self._context(caller, OP_CREATE_BACKUP)

            def pre() -> str:
                self._state.pause.require_running(ctx.op)
                self._require_permission(ctx, Permission.ADMIN)
                return self._state.snapshots.check_new(snapshot_id)

            def mutate(st: StoreState, sid: str) -> _Outcome:
                rec = st.snapshots.create(
                    sid,
                    caller=ctx.caller,
                    height=ctx.height,
                    total_operations=self._log.total_operations,
                )
                return _ok({"snapshot": rec.to_json()}, key=sid, new_value=rec.data_count)

            return self._run(ctx, pre, mutate)

    def get_snapshot(self, snapshot_id: str) -> SnapshotRecord:
        with self._lock:
            return self._state.snapshots.require(snapshot_id)

    def get_last_backup_height(self) -> int:
        with self._lock:
            return self._state.snapshots.last_backup_height

    # ------------------------------------------------------------------
    # CategoryRegistry
    # ------------------------------------------------------------------

    def add_category(self, *, caller: str, category: str, description: str = "", color: str = "") -> Json:
        with self._lock:
            ctx = self._context(caller, OP_ADD_CATEGORY)

            def pre() -> CategoryRecord:
                self._state.pause.require_running(ctx.op)
                self._require_permission(ctx, Permission.ADMIN)
                return check_category_input(category, description, color)

            def mutate(st: StoreState, rec: CategoryRecord) -> _Outcome:
                old, new = st.categories.put(rec)
                return _ok({"category": new.to_json(), "replaced": old is not None}, key=new.category)

            return self._run(ctx, pre, mutate)

    def get_category(self, category: str) -> CategoryRecord:
        with self._lock:
            return self._state.categories.require(category)

    # ------------------------------------------------------------------
    # State export
    # ------------------------------------------------------------------

    def snapshot(self) -> Json:
        """Full state as JSON (same shape as the persisted snapshot)."""
        with self._lock:
            return self._state_json(height=int(self.height_source.current()))
