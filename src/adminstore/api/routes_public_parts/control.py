from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from adminstore.api.routes_public_parts.common import _engine
from adminstore.api.schemas import VersionRequest
from adminstore.api.security import require_caller

router = APIRouter()

Json = Dict[str, Any]


@router.post("/control/pause")
def toggle_pause(request: Request, caller: str = Depends(require_caller)) -> Json:
    """Owner only. Flips the pause flag; allowed while paused."""
    return _engine(request).toggle_pause(caller=caller)


@router.post("/control/emergency-stop")
def emergency_stop(request: Request, caller: str = Depends(require_caller)) -> Json:
    """Owner only. Sets paused=true regardless of the current state."""
    return _engine(request).emergency_stop(caller=caller)


@router.post("/control/version")
def update_version(request: Request, body: VersionRequest, caller: str = Depends(require_caller)) -> Json:
    return _engine(request).update_version(caller=caller, version=body.version)


@router.get("/control/paused")
def is_paused(request: Request) -> Json:
    return {"ok": True, "paused": _engine(request).is_paused()}
