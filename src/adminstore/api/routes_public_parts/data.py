from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from adminstore.api.routes_public_parts.common import _engine
from adminstore.api.schemas import BatchStoreRequest, LockRequest, StoreDataRequest
from adminstore.api.security import require_caller

router = APIRouter()

Json = Dict[str, Any]


# Declared before /data/{key} routes so "batch" is not taken as a key.
@router.post("/data/batch")
def batch_store(request: Request, body: BatchStoreRequest, caller: str = Depends(require_caller)) -> Json:
    """Write up to 10 items all-or-nothing. Each written record restarts at version 1."""
    items = [{"key": it.key, "value": it.value, "text": it.text} for it in body.items]
    return _engine(request).batch_store(caller=caller, items=items)


@router.get("/data")
def list_keys(request: Request) -> Json:
    return {"ok": True, "keys": _engine(request).list_keys()}


@router.put("/data/{key}")
def store_data(request: Request, key: str, body: StoreDataRequest, caller: str = Depends(require_caller)) -> Json:
    """Create or overwrite a record. Returns { ok, operation_id, height, record }."""
    return _engine(request).store_enhanced_data(
        caller=caller,
        key=key,
        value=body.value,
        text=body.text,
        tags=body.tags,
    )


@router.get("/data/{key}")
def get_data(request: Request, key: str) -> Json:
    return {"ok": True, "record": _engine(request).get_enhanced_data(key).to_json()}


@router.post("/data/{key}/lock")
def lock_data(request: Request, key: str, body: LockRequest, caller: str = Depends(require_caller)) -> Json:
    return _engine(request).lock_data(caller=caller, key=key, locked=body.locked)


@router.delete("/data/{key}")
def delete_data(request: Request, key: str, caller: str = Depends(require_caller)) -> Json:
    return _engine(request).delete_data(caller=caller, key=key)


@router.get("/data/{key}/tags/{tag}")
def has_tag(request: Request, key: str, tag: str) -> Json:
    return {"ok": True, "key": key, "tag": tag, "present": _engine(request).has_tag(key, tag)}
