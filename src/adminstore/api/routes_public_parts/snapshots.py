from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from adminstore.api.routes_public_parts.common import _engine
from adminstore.api.schemas import BackupRequest
from adminstore.api.security import require_caller

router = APIRouter()

Json = Dict[str, Any]


@router.post("/snapshots")
def create_backup(request: Request, body: BackupRequest, caller: str = Depends(require_caller)) -> Json:
    return _engine(request).create_backup(caller=caller, snapshot_id=body.snapshot_id)


@router.get("/snapshots/last-height")
def last_backup_height(request: Request) -> Json:
    return {"ok": True, "last_backup_height": _engine(request).get_last_backup_height()}


@router.get("/snapshots/{snapshot_id}")
def get_snapshot(request: Request, snapshot_id: str) -> Json:
    return {"ok": True, "snapshot": _engine(request).get_snapshot(snapshot_id).to_json()}
