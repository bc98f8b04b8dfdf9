from __future__ import annotations

"""Admin capabilities.

Capabilities are a named flag set. The numeric values are the on-disk and
on-the-wire encoding (READ=1, WRITE=2, DELETE=4, ADMIN=8), so a stored mask
round-trips through JSON as a plain int.
"""

from enum import IntFlag
from typing import Any, Iterable

from adminstore.core.errors import INVALID_PERMISSION, StoreError


class Permission(IntFlag):
    NONE = 0
    READ = 1
    WRITE = 2
    DELETE = 4
    ADMIN = 8
    ALL = READ | WRITE | DELETE | ADMIN


MAX_PERMISSION = int(Permission.ALL)

_BY_NAME = {
    "read": Permission.READ,
    "write": Permission.WRITE,
    "delete": Permission.DELETE,
    "admin": Permission.ADMIN,
    "all": Permission.ALL,
}


def parse_permissions(v: Any) -> Permission:
    """Parse a mask from an int or an iterable of capability names.

    Raises StoreError(invalid_permission) for anything outside 0..15.
    """
    if isinstance(v, bool):
        raise StoreError(INVALID_PERMISSION, "mask_not_int", {"permissions": v})

    if isinstance(v, int):
        if v < 0 or v > MAX_PERMISSION:
            raise StoreError(INVALID_PERMISSION, "mask_out_of_range", {"permissions": v, "max": MAX_PERMISSION})
        return Permission(v)

    if isinstance(v, str):
        v = [p for p in v.replace(",", " ").split() if p]

    if isinstance(v, Iterable):
        out = Permission.NONE
        for name in v:
            p = _BY_NAME.get(str(name).strip().lower())
            if p is None:
                raise StoreError(INVALID_PERMISSION, "unknown_capability", {"capability": str(name)})
            out |= p
        return out

    raise StoreError(INVALID_PERMISSION, "mask_not_int", {"permissions": repr(v)})


def capability_names(mask: int) -> list[str]:
    p = Permission(int(mask) & MAX_PERMISSION)
    return [name for name, flag in _BY_NAME.items() if name != "all" and flag in p]


def grants(mask: int, required: int) -> bool:
    return (int(mask) & int(required)) != 0
