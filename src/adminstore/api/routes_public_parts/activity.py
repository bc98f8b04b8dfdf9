from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from adminstore.api.routes_public_parts.common import _engine

router = APIRouter()

Json = Dict[str, Any]


@router.get("/activity/{identity}")
def get_activity(request: Request, identity: str) -> Json:
    return {"ok": True, "activity": _engine(request).get_activity(identity).to_json()}


@router.get("/activity/{identity}/rate-limit")
def check_rate_limit(request: Request, identity: str) -> Json:
    """allowed=true when the identity may perform another write-class action now."""
    return {"ok": True, "identity": identity, "allowed": _engine(request).check_rate_limit(identity)}
