"""adminstore.core.records

Record types held by the store components, plus the bounded-input helpers
every mutating operation runs during structural validation.

Each record is a frozen dataclass with a JSON form (`to_json` / `from_json`).
The JSON form is what the SQLite snapshot stores and what the API returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

from adminstore.core.constants import MAX_TAG_LEN, MAX_TAGS, MAX_VALUE, MIN_VALUE
from adminstore.core.errors import INVALID_INPUT, INVALID_VALUE, StoreError

Json = Dict[str, Any]


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return default


def _opt_int(v: Any) -> Optional[int]:
    if v is None:
        return None
    return _as_int(v)


# ---------------------------------------------------------------------------
# Bounded input
# ---------------------------------------------------------------------------


def bounded_str(v: Any, *, field: str, max_len: int, allow_empty: bool = False) -> str:
    if not isinstance(v, str):
        raise StoreError(INVALID_INPUT, "not_a_string", {"field": field})
    s = v
    if not allow_empty:
        if not s.strip():
            raise StoreError(INVALID_INPUT, "empty", {"field": field})
        # Stored verbatim; reads look up the exact string.
        if s != s.strip():
            raise StoreError(INVALID_INPUT, "surrounding_whitespace", {"field": field})
    if len(s) > max_len:
        raise StoreError(INVALID_INPUT, "too_long", {"field": field, "max_len": max_len, "len": len(s)})
    return s


def checked_value(v: Any, *, field: str = "value") -> int:
    """Return v as an int inside [MIN_VALUE, MAX_VALUE] or raise invalid_value."""
    if isinstance(v, bool) or not isinstance(v, int):
        raise StoreError(INVALID_VALUE, "not_an_int", {"field": field})
    if v < MIN_VALUE or v > MAX_VALUE:
        raise StoreError(INVALID_VALUE, "out_of_range", {"field": field, "value": v, "min": MIN_VALUE, "max": MAX_VALUE})
    return v


def normalize_tags(tags: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    """Deduplicate and bound a tag collection. Returned sorted."""
    if tags is None:
        return ()
    if isinstance(tags, str):
        raise StoreError(INVALID_INPUT, "tags_not_a_list", {"field": "tags"})

    seen: set[str] = set()
    for t in tags:
        seen.add(bounded_str(t, field="tag", max_len=MAX_TAG_LEN))

    if len(seen) > MAX_TAGS:
        raise StoreError(INVALID_INPUT, "too_many_tags", {"max": MAX_TAGS, "count": len(seen)})
    return tuple(sorted(seen))


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AdminEntry:
    identity: str
    permissions: int
    added_at: int
    added_by: str
    active: bool = True

    def to_json(self) -> Json:
        return {
            "identity": self.identity,
            "permissions": int(self.permissions),
            "added_at": int(self.added_at),
            "added_by": self.added_by,
            "active": bool(self.active),
        }

    @staticmethod
    def from_json(j: Json) -> "AdminEntry":
        return AdminEntry(
            identity=str(j.get("identity", "")),
            permissions=_as_int(j.get("permissions")),
            added_at=_as_int(j.get("added_at")),
            added_by=str(j.get("added_by", "")),
            active=bool(j.get("active", False)),
        )


@dataclass(frozen=True, slots=True)
class StoreRecord:
    key: str
    value: int
    text: str
    updated_by: str
    updated_at: int
    version: int = 1
    locked: bool = False
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def to_json(self) -> Json:
        return {
            "key": self.key,
            "value": int(self.value),
            "text": self.text,
            "updated_by": self.updated_by,
            "updated_at": int(self.updated_at),
            "version": int(self.version),
            "locked": bool(self.locked),
            "tags": list(self.tags),
        }

    @staticmethod
    def from_json(j: Json) -> "StoreRecord":
        tags = j.get("tags")
        return StoreRecord(
            key=str(j.get("key", "")),
            value=_as_int(j.get("value")),
            text=str(j.get("text", "")),
            updated_by=str(j.get("updated_by", "")),
            updated_at=_as_int(j.get("updated_at")),
            version=_as_int(j.get("version"), 1),
            locked=bool(j.get("locked", False)),
            tags=tuple(sorted(str(t) for t in tags)) if isinstance(tags, list) else (),
        )


@dataclass(frozen=True, slots=True)
class OperationRecord:
    operation_id: int
    operation_type: str
    performer: str
    timestamp: int
    success: bool
    key: Optional[str] = None
    old_value: Optional[int] = None
    new_value: Optional[int] = None

    def to_json(self) -> Json:
        return {
            "operation_id": int(self.operation_id),
            "operation_type": self.operation_type,
            "key": self.key,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "performer": self.performer,
            "timestamp": int(self.timestamp),
            "success": bool(self.success),
        }

    @staticmethod
    def from_json(j: Json) -> "OperationRecord":
        key = j.get("key")
        return OperationRecord(
            operation_id=_as_int(j.get("operation_id")),
            operation_type=str(j.get("operation_type", "")),
            performer=str(j.get("performer", "")),
            timestamp=_as_int(j.get("timestamp")),
            success=bool(j.get("success", False)),
            key=None if key is None else str(key),
            old_value=_opt_int(j.get("old_value")),
            new_value=_opt_int(j.get("new_value")),
        )


@dataclass(frozen=True, slots=True)
class ActivityEntry:
    user: str
    last_action: int
    action_count: int
    rate_window_start: int

    def to_json(self) -> Json:
        return {
            "user": self.user,
            "last_action": int(self.last_action),
            "action_count": int(self.action_count),
            "rate_window_start": int(self.rate_window_start),
        }

    @staticmethod
    def from_json(j: Json) -> "ActivityEntry":
        return ActivityEntry(
            user=str(j.get("user", "")),
            last_action=_as_int(j.get("last_action")),
            action_count=_as_int(j.get("action_count")),
            rate_window_start=_as_int(j.get("rate_window_start")),
        )


@dataclass(frozen=True, slots=True)
class SnapshotRecord:
    snapshot_id: str
    created_at: int
    created_by: str
    data_count: int
    content_hash: str

    def to_json(self) -> Json:
        return {
            "snapshot_id": self.snapshot_id,
            "created_at": int(self.created_at),
            "created_by": self.created_by,
            "data_count": int(self.data_count),
            "content_hash": self.content_hash,
        }

    @staticmethod
    def from_json(j: Json) -> "SnapshotRecord":
        return SnapshotRecord(
            snapshot_id=str(j.get("snapshot_id", "")),
            created_at=_as_int(j.get("created_at")),
            created_by=str(j.get("created_by", "")),
            data_count=_as_int(j.get("data_count")),
            content_hash=str(j.get("content_hash", "")),
        )


@dataclass(frozen=True, slots=True)
class CategoryRecord:
    category: str
    description: str
    color: str
    active: bool = True

    def to_json(self) -> Json:
        return {
            "category": self.category,
            "description": self.description,
            "color": self.color,
            "active": bool(self.active),
        }

    @staticmethod
    def from_json(j: Json) -> "CategoryRecord":
        return CategoryRecord(
            category=str(j.get("category", "")),
            description=str(j.get("description", "")),
            color=str(j.get("color", "")),
            active=bool(j.get("active", False)),
        )
