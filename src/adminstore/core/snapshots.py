from __future__ import annotations

import hashlib
from typing import Any, Dict, Optional

from adminstore.core.constants import MAX_SNAPSHOT_ID_LEN
from adminstore.core.errors import ALREADY_EXISTS, NOT_FOUND, StoreError
from adminstore.core.records import SnapshotRecord, bounded_str
from adminstore.core.sqlite_db import canon_json

Json = Dict[str, Any]


def compute_content_hash(*, height: int, total_operations: int) -> str:
    """Integrity tag for a snapshot marker.

    sha256 hex over the canonical JSON of {height, total_operations}. It pins
    the marker to a point in the log; it is not a digest of the stored data.
    """
    payload = canon_json({"height": int(height), "total_operations": int(total_operations)})
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class SnapshotManager:
    """Named backup markers. Markers copy no data and are immutable."""

    def __init__(self, snapshots: Optional[Dict[str, SnapshotRecord]] = None, *, last_backup_height: int = 0) -> None:
        self._by_id: Dict[str, SnapshotRecord] = dict(snapshots or {})
        self.last_backup_height = int(last_backup_height)

    def get(self, snapshot_id: str) -> Optional[SnapshotRecord]:
        return self._by_id.get(snapshot_id)

    def require(self, snapshot_id: str) -> SnapshotRecord:
        rec = self._by_id.get(snapshot_id)
        if rec is None:
            raise StoreError(NOT_FOUND, "snapshot_not_found", {"snapshot_id": snapshot_id})
        return rec

    def count(self) -> int:
        return len(self._by_id)

    def check_new(self, snapshot_id: Any) -> str:
        sid = bounded_str(snapshot_id, field="snapshot_id", max_len=MAX_SNAPSHOT_ID_LEN)
        if sid in self._by_id:
            raise StoreError(ALREADY_EXISTS, "snapshot_exists", {"snapshot_id": sid})
        return sid

    def create(self, snapshot_id: str, *, caller: str, height: int, total_operations: int) -> SnapshotRecord:
        rec = SnapshotRecord(
            snapshot_id=snapshot_id,
            created_at=int(height),
            created_by=caller,
            data_count=int(total_operations),
            content_hash=compute_content_hash(height=height, total_operations=total_operations),
        )
        self._by_id[snapshot_id] = rec
        self.last_backup_height = int(height)
        return rec

    def copy(self) -> "SnapshotManager":
        return SnapshotManager(self._by_id, last_backup_height=self.last_backup_height)

    def to_json(self) -> Json:
        return {
            "last_backup_height": self.last_backup_height,
            "by_id": {k: v.to_json() for k, v in sorted(self._by_id.items())},
        }

    @classmethod
    def from_json(cls, j: Any) -> "SnapshotManager":
        if not isinstance(j, dict):
            return cls()
        by_id = j.get("by_id")
        snaps: Dict[str, SnapshotRecord] = {}
        if isinstance(by_id, dict):
            for k, v in by_id.items():
                if isinstance(v, dict):
                    snaps[str(k)] = SnapshotRecord.from_json(v)
        try:
            last = int(j.get("last_backup_height", 0))
        except Exception:
            last = 0
        return cls(snaps, last_backup_height=last)
