from __future__ import annotations

"""Append-only audit trail.

Invariants:
  - operation_id starts at 0 and increases by exactly 1 per record
  - records are never removed or rewritten
  - total_operations == len(records) == next operation_id

Appends are two-phase: `prepare()` builds the next record(s) without touching
the log, the engine persists them, then `push()` makes them visible. A failed
persist therefore never leaves a gap or a phantom id in memory.
"""

from typing import Any, Dict, Iterable, List, Optional

from adminstore.core.errors import NOT_FOUND, StoreError
from adminstore.core.records import OperationRecord

Json = Dict[str, Any]


class OperationLog:
    def __init__(self, records: Optional[Iterable[OperationRecord]] = None) -> None:
        self._records: List[OperationRecord] = []
        for rec in records or []:
            self.push([rec])

    @property
    def total_operations(self) -> int:
        return len(self._records)

    def prepare(
        self,
        *,
        operation_type: str,
        performer: str,
        height: int,
        success: bool,
        key: Optional[str] = None,
        old_value: Optional[int] = None,
        new_value: Optional[int] = None,
        offset: int = 0,
    ) -> OperationRecord:
        """Build the record that would be appended `offset` slots from now."""
        return OperationRecord(
            operation_id=self.total_operations + int(offset),
            operation_type=str(operation_type),
            performer=str(performer),
            timestamp=int(height),
            success=bool(success),
            key=key,
            old_value=None if old_value is None else int(old_value),
            new_value=None if new_value is None else int(new_value),
        )

    def push(self, records: Iterable[OperationRecord]) -> None:
        for rec in records:
            expected = self.total_operations
            if rec.operation_id != expected:
                raise ValueError(f"operation log gap: expected id {expected}, got {rec.operation_id}")
            self._records.append(rec)

    def get(self, operation_id: int) -> OperationRecord:
        i = int(operation_id)
        if i < 0 or i >= len(self._records):
            raise StoreError(NOT_FOUND, "operation_not_found", {"operation_id": i})
        return self._records[i]

    def page(self, *, start: int = 0, limit: int = 100) -> List[OperationRecord]:
        s = max(0, int(start))
        n = max(0, min(int(limit), 1000))
        return self._records[s : s + n]

    def by_performer(self, performer: str, *, limit: int = 100) -> List[OperationRecord]:
        n = max(0, min(int(limit), 1000))
        if n == 0:
            return []
        out = [r for r in self._records if r.performer == performer]
        return out[-n:]

    @classmethod
    def from_json(cls, rows: Iterable[Json]) -> "OperationLog":
        return cls(OperationRecord.from_json(r) for r in rows)
