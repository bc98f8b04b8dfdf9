from __future__ import annotations

"""Admin registry.

Maps caller identities to capability masks. Entries are soft-deactivated and
never removed, so the registry doubles as a history of every admin ever added
and deactivated entries keep counting toward MAX_ADMINS.
"""

from dataclasses import replace
from typing import Any, Dict, Iterator, Optional, Tuple

from adminstore.core.constants import MAX_ADMINS, MAX_IDENTITY_LEN
from adminstore.core.errors import ALREADY_EXISTS, MAX_ADMINS_REACHED, NOT_FOUND, StoreError
from adminstore.core.permissions import Permission, grants, parse_permissions
from adminstore.core.records import AdminEntry, bounded_str

Json = Dict[str, Any]


class AdminRegistry:
    def __init__(self, entries: Optional[Dict[str, AdminEntry]] = None, *, max_admins: int = MAX_ADMINS) -> None:
        self._by_id: Dict[str, AdminEntry] = dict(entries or {})
        self._max_admins = int(max_admins)

    # ---- reads ----

    def get(self, identity: str) -> Optional[AdminEntry]:
        return self._by_id.get(identity)

    def require(self, identity: str) -> AdminEntry:
        entry = self._by_id.get(identity)
        if entry is None:
            raise StoreError(NOT_FOUND, "admin_not_found", {"identity": identity})
        return entry

    def count(self) -> int:
        return len(self._by_id)

    def has_permission(self, identity: str, required: int) -> bool:
        entry = self._by_id.get(identity)
        if entry is None or not entry.active:
            return False
        return grants(entry.permissions, required)

    def __iter__(self) -> Iterator[AdminEntry]:
        return iter(self._by_id.values())

    # ---- validation ----

    def check_add(self, identity: Any, permissions: Any) -> Tuple[str, Permission]:
        ident = bounded_str(identity, field="identity", max_len=MAX_IDENTITY_LEN)
        if len(self._by_id) >= self._max_admins:
            raise StoreError(MAX_ADMINS_REACHED, "registry_full", {"max_admins": self._max_admins})
        if ident in self._by_id:
            raise StoreError(ALREADY_EXISTS, "admin_exists", {"identity": ident})
        return ident, parse_permissions(permissions)

    def check_update(self, identity: Any, permissions: Any) -> Tuple[AdminEntry, Permission]:
        ident = bounded_str(identity, field="identity", max_len=MAX_IDENTITY_LEN)
        return self.require(ident), parse_permissions(permissions)

    # ---- mutation ----

    def add(self, identity: str, permissions: int, *, added_by: str, height: int) -> AdminEntry:
        entry = AdminEntry(
            identity=identity,
            permissions=int(permissions),
            added_at=int(height),
            added_by=added_by,
            active=True,
        )
        self._by_id[identity] = entry
        return entry

    def update_permissions(self, identity: str, permissions: int) -> Tuple[AdminEntry, AdminEntry]:
        old = self.require(identity)
        new = replace(old, permissions=int(permissions))
        self._by_id[identity] = new
        return old, new

    def deactivate(self, identity: str) -> AdminEntry:
        entry = replace(self.require(identity), active=False)
        self._by_id[identity] = entry
        return entry

    # ---- state ----

    def copy(self) -> "AdminRegistry":
        # AdminEntry is frozen; a shallow map copy is an independent draft.
        return AdminRegistry(self._by_id, max_admins=self._max_admins)

    def to_json(self) -> Json:
        return {k: v.to_json() for k, v in sorted(self._by_id.items())}

    @classmethod
    def from_json(cls, j: Any, *, max_admins: int = MAX_ADMINS) -> "AdminRegistry":
        entries: Dict[str, AdminEntry] = {}
        if isinstance(j, dict):
            for k, v in j.items():
                if isinstance(v, dict):
                    entries[str(k)] = AdminEntry.from_json(v)
        return cls(entries, max_admins=max_admins)
