from __future__ import annotations

"""Versioned key-value records.

One live record per key, overwritten in place. `put()` continues the key's
version history (1 for an unseen key); previous values are not retained here,
only in the audit log. A locked record rejects put/delete with record_locked.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Optional, Tuple

from adminstore.core.constants import MAX_KEY_LEN, MAX_TEXT_LEN
from adminstore.core.errors import NOT_FOUND, RECORD_LOCKED, StoreError
from adminstore.core.records import StoreRecord, bounded_str, checked_value, normalize_tags

Json = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class StoreInput:
    """A structurally validated write request."""

    key: str
    value: int
    text: str
    tags: Tuple[str, ...] = ()


def check_key(key: Any) -> str:
    return bounded_str(key, field="key", max_len=MAX_KEY_LEN)


def check_store_input(key: Any, value: Any, text: Any, tags: Optional[Iterable[Any]]) -> StoreInput:
    return StoreInput(
        key=check_key(key),
        value=checked_value(value),
        text=bounded_str(text, field="text", max_len=MAX_TEXT_LEN, allow_empty=True),
        tags=normalize_tags(tags),
    )


class VersionedStore:
    def __init__(self, records: Optional[Dict[str, StoreRecord]] = None) -> None:
        self._by_key: Dict[str, StoreRecord] = dict(records or {})

    # ---- reads ----

    def get(self, key: str) -> Optional[StoreRecord]:
        return self._by_key.get(key)

    def require(self, key: str) -> StoreRecord:
        rec = self._by_key.get(key)
        if rec is None:
            raise StoreError(NOT_FOUND, "key_not_found", {"key": key})
        return rec

    def has_tag(self, key: str, tag: str) -> bool:
        rec = self._by_key.get(key)
        if rec is None:
            return False
        return tag in rec.tags

    def count(self) -> int:
        return len(self._by_key)

    def keys(self) -> list[str]:
        return sorted(self._by_key)

    # ---- mutation ----

    def _require_unlocked(self, rec: Optional[StoreRecord]) -> None:
        if rec is not None and rec.locked:
            raise StoreError(RECORD_LOCKED, "record_locked", {"key": rec.key, "version": rec.version})

    def put(self, item: StoreInput, *, caller: str, height: int) -> Tuple[Optional[StoreRecord], StoreRecord]:
        old = self._by_key.get(item.key)
        self._require_unlocked(old)
        new = StoreRecord(
            key=item.key,
            value=item.value,
            text=item.text,
            updated_by=caller,
            updated_at=int(height),
            version=(old.version + 1) if old is not None else 1,
            locked=False,
            tags=item.tags,
        )
        self._by_key[item.key] = new
        return old, new

    def put_fresh(self, key: str, value: int, text: str, *, caller: str, height: int) -> Tuple[Optional[StoreRecord], StoreRecord]:
        """Write at version 1 with no tags, ignoring any prior version history."""
        old = self._by_key.get(key)
        self._require_unlocked(old)
        new = StoreRecord(
            key=key,
            value=value,
            text=text,
            updated_by=caller,
            updated_at=int(height),
            version=1,
            locked=False,
            tags=(),
        )
        self._by_key[key] = new
        return old, new

    def set_lock(self, key: str, locked: bool) -> Tuple[StoreRecord, StoreRecord]:
        old = self.require(key)
        new = replace(old, locked=bool(locked))
        self._by_key[key] = new
        return old, new

    def delete(self, key: str) -> StoreRecord:
        old = self.require(key)
        self._require_unlocked(old)
        del self._by_key[key]
        return old

    # ---- state ----

    def copy(self) -> "VersionedStore":
        return VersionedStore(self._by_key)

    def to_json(self) -> Json:
        return {k: v.to_json() for k, v in sorted(self._by_key.items())}

    @classmethod
    def from_json(cls, j: Any) -> "VersionedStore":
        records: Dict[str, StoreRecord] = {}
        if isinstance(j, dict):
            for k, v in j.items():
                if isinstance(v, dict):
                    records[str(k)] = StoreRecord.from_json(v)
        return cls(records)
