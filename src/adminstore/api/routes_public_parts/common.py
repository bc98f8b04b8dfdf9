from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from adminstore.api.errors import ApiError
from adminstore.core.engine import AdminStoreEngine

Json = Dict[str, Any]


def _engine(request: Request) -> AdminStoreEngine:
    eng = getattr(request.app.state, "engine", None)
    if eng is None:
        raise ApiError.internal("not_ready", "engine not attached to app.state", {})
    return eng


def _int_param(v: Any, default: int) -> int:
    """Parse an int-ish query param safely."""
    if v is None:
        return int(default)
    try:
        s = str(v).strip()
        if s == "":
            return int(default)
        return int(s)
    except ValueError:
        return int(default)
