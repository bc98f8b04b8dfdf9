from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from adminstore.api.routes_public_parts.common import _engine

router = APIRouter()

Json = Dict[str, Any]


@router.get("/health")
def health(request: Request) -> Json:
    """Liveness plus a readiness flag (engine attached)."""
    eng = getattr(request.app.state, "engine", None)
    out: Json = {"ok": True, "ready": eng is not None}
    if eng is not None:
        out["paused"] = eng.is_paused()
        out["total_operations"] = eng.get_total_operations()
    return out


@router.get("/info")
def info(request: Request) -> Json:
    return {"ok": True, "contract": _engine(request).get_contract_info()}
