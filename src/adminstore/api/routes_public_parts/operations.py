from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request

from adminstore.api.routes_public_parts.common import _engine, _int_param
from adminstore.api.schemas import MultiLogRequest
from adminstore.api.security import require_caller

router = APIRouter()

Json = Dict[str, Any]


@router.get("/operations")
def list_operations(
    request: Request,
    start: Optional[str] = None,
    limit: Optional[str] = None,
    performer: Optional[str] = None,
) -> Json:
    """Audit log page in id order, or the most recent entries of one performer."""
    eng = _engine(request)
    n = _int_param(limit, 100)
    if performer:
        ops = eng.operations_by(performer, limit=n)
    else:
        ops = eng.list_operations(start=_int_param(start, 0), limit=n)
    return {
        "ok": True,
        "total_operations": eng.get_total_operations(),
        "operations": [o.to_json() for o in ops],
    }


@router.get("/operations/{operation_id}")
def get_operation(request: Request, operation_id: int) -> Json:
    return {"ok": True, "operation": _engine(request).get_operation(operation_id).to_json()}


@router.post("/operations/multi-log")
def multi_log(request: Request, body: MultiLogRequest, caller: str = Depends(require_caller)) -> Json:
    entries = [e.model_dump() for e in body.entries]
    return _engine(request).multi_log(caller=caller, entries=entries)
